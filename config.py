"""Environment-driven configuration values for the SnapClean application."""

from __future__ import annotations

import os


class BaseConfig:
    SECRET_KEY = os.getenv("APP_SECRET_KEY", "dev-secret-2025")
    ENV = os.getenv("APP_ENV", "development").lower()
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH_MB", "10")) * 1024 * 1024
    ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}

    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", "")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-image")
    # 0 disables the per-edit timeout.
    EDIT_TIMEOUT_SECONDS = float(os.getenv("EDIT_TIMEOUT_SECONDS", "0"))

    DOWNLOAD_DIR = os.getenv("DOWNLOAD_DIR", "downloads")

    # In-memory editor sessions; 0 disables the limit.
    MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "200"))
    SESSION_IDLE_MINUTES = float(os.getenv("SESSION_IDLE_MINUTES", "60"))

    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = False


class DevelopmentConfig(BaseConfig):
    pass


class ProductionConfig(BaseConfig):
    SESSION_COOKIE_SECURE = True


class TestingConfig(BaseConfig):
    TESTING = True


def get_config_class() -> type[BaseConfig]:
    env = os.getenv("APP_ENV", "development").lower()
    if env == "production":
        return ProductionConfig
    if env == "testing":
        return TestingConfig
    return DevelopmentConfig


def config_values(config_class: type[BaseConfig]) -> dict:
    return {key: getattr(config_class, key) for key in dir(config_class) if key.isupper()}
