"""Logging configuration helpers for consistent console output."""

from __future__ import annotations

import logging
from logging.config import dictConfig

# Third-party loggers that log every HTTP round trip at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "google_genai")


def configure_logging(level: str) -> None:
    log_level = (level or "INFO").upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                }
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {"level": log_level, "handlers": ["stdout"]},
        }
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(log_level)
    sdk_level = log_level if log_level == "DEBUG" else "WARNING"
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)
