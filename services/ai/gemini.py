"""Gemini-based product photo edit client."""

from __future__ import annotations

import logging
from typing import Any, Optional

from google import genai
from google.genai import types as genai_types

from ..errors import EditRequestFailed, EncodingError, NoResultError
from ..imaging import ImageRef, inline_image_to_png, read_image, resolve_mime_type
from ..timing import log_timing

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-image"

# Frames the user's instruction as a professional retouching directive.
EDIT_PROMPT_TEMPLATE = (
    "You are a professional product photo editor. "
    'Please perform the following edit on this image: "{instruction}". '
    "Ensure the product remains high-quality and the output is photorealistic."
)


def build_edit_prompt(instruction: str) -> str:
    return EDIT_PROMPT_TEMPLATE.format(instruction=instruction.strip())


class GeminiEditClient:
    """Sends one image plus an instruction to Gemini and returns the first image it replies with.

    Each call is a single attempt: no retries, no timeout, no caching. Every
    failure other than unreadable input surfaces as ``EditRequestFailed``.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_MODEL,
        client: Any = None,
    ) -> None:
        self.model_name = model_name or DEFAULT_MODEL
        self._client = client
        if self._client is None and api_key:
            self._client = genai.Client(api_key=api_key)
            logger.info("[Gemini] configured model %s", self.model_name)
        elif self._client is None:
            logger.info("[Gemini] API key not set")

    @property
    def available(self) -> bool:
        return self._client is not None

    async def request_edit(
        self,
        image_bytes: bytes,
        mime_type: str | None,
        instruction: str,
    ) -> ImageRef:
        if not instruction or not instruction.strip():
            raise ValueError("Instruction must not be blank.")
        payload = read_image(image_bytes)
        if not self.available:
            raise EditRequestFailed("AI client not configured.")

        contents = [
            genai_types.Part.from_bytes(
                data=payload, mime_type=resolve_mime_type(mime_type, payload)
            ),
            genai_types.Part.from_text(text=build_edit_prompt(instruction)),
        ]
        try:
            with log_timing(
                f"gemini generate_content {self.model_name}", logger, level=logging.DEBUG
            ) as watch:
                response = await self._client.aio.models.generate_content(
                    model=self.model_name, contents=contents
                )
            image_bytes = extract_image(response)
        except (NoResultError, EncodingError):
            raise
        except Exception as exc:
            logger.error("[Gemini] edit request failed: %s", exc)
            raise EditRequestFailed("AI edit request failed.") from exc

        logger.info(
            "[Gemini] image generated (%d bytes) in %.1f ms", len(image_bytes), watch.elapsed_ms
        )
        return ImageRef(data=image_bytes, mime_type="image/png")


def extract_image(response: Any) -> bytes:
    """Returns PNG bytes of the first inline image part, or raises NoResultError."""
    candidates = getattr(response, "candidates", None) or []
    saw_parts = False
    for candidate in candidates:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            saw_parts = True
            image_bytes = inline_image_to_png(getattr(part, "inline_data", None))
            if image_bytes:
                return image_bytes

    if not saw_parts:
        logger.warning("[Gemini] response carried no content")
        raise NoResultError("No response from AI model.")

    text = _response_text(response)
    if text:
        logger.info("[Gemini] text response: %s", text[:200])
    raise NoResultError("AI model returned no image.")


def _response_text(response: Any) -> Optional[str]:
    try:
        return getattr(response, "text", None)
    except (AttributeError, ValueError) as exc:
        logger.info("[Gemini] non-text response: %s", exc)
        return None
