"""Factory for building the configured AI edit client."""

from __future__ import annotations

from typing import Mapping

from ..errors import ConfigurationError
from .base import ImageEditor
from .gemini import DEFAULT_MODEL, GeminiEditClient


def build_image_editor(config: Mapping[str, object]) -> ImageEditor:
    api_key = str(config.get("GEMINI_API_KEY") or "").strip()
    if not api_key:
        raise ConfigurationError(
            "GEMINI_API_KEY (or API_KEY) must be set to use the edit service."
        )
    model_name = str(config.get("GEMINI_MODEL") or DEFAULT_MODEL)
    return GeminiEditClient(api_key=api_key, model_name=model_name)


__all__ = ["GeminiEditClient", "ImageEditor", "build_image_editor"]
