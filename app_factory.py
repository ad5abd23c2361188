"""Application factory that wires configuration, services, middleware, and routes."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

if os.getenv("LOAD_DOTENV", "1").lower() == "1":
    load_dotenv(os.getenv("DOTENV_FILE") or None)

from config import BaseConfig, config_values, get_config_class
from logging_config import configure_logging
from routes import register_routes
from services import AppServices
from services.ai import ImageEditor, build_image_editor
from services.session import EditorSession, SessionRegistry

logger = logging.getLogger(__name__)


def build_session_registry(app_config: type[BaseConfig], editor: ImageEditor) -> SessionRegistry:
    download_dir = getattr(app_config, "DOWNLOAD_DIR", "downloads")
    timeout_seconds = float(getattr(app_config, "EDIT_TIMEOUT_SECONDS", 0) or 0)

    def _new_session() -> EditorSession:
        return EditorSession(
            editor,
            notify=lambda message: logger.warning("User notice: %s", message),
            download_dir=download_dir,
            timeout_seconds=timeout_seconds,
        )

    return SessionRegistry(
        _new_session,
        max_sessions=int(getattr(app_config, "MAX_SESSIONS", 0) or 0),
        idle_seconds=float(getattr(app_config, "SESSION_IDLE_MINUTES", 0) or 0) * 60,
    )


def create_app(
    config_class: type[BaseConfig] | None = None,
    editor: ImageEditor | None = None,
) -> FastAPI:
    app = FastAPI(title="SnapClean")
    app_config = config_class or get_config_class()

    configure_logging(getattr(app_config, "LOG_LEVEL", "INFO"))

    # A missing API key fails here rather than inside the first edit request.
    if editor is None:
        editor = build_image_editor(config_values(app_config))

    app.state.services = AppServices(
        editor=editor,
        sessions=build_session_registry(app_config, editor),
    )
    app.state.config = app_config
    app.add_middleware(
        SessionMiddleware,
        secret_key=getattr(app_config, "SECRET_KEY", "dev-secret-2025"),
        same_site=getattr(app_config, "SESSION_COOKIE_SAMESITE", "Lax"),
        https_only=getattr(app_config, "SESSION_COOKIE_SECURE", False),
    )

    register_routes(app)

    if (
        getattr(app_config, "ENV", "development") == "production"
        and getattr(app_config, "SECRET_KEY", "dev-secret-2025") == "dev-secret-2025"
    ):
        logger.warning("Using default SECRET_KEY in production.")

    return app
