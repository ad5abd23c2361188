"""Protocol definition for AI image edit clients."""

from __future__ import annotations

from typing import Protocol

from ..imaging import ImageRef


class ImageEditor(Protocol):
    @property
    def available(self) -> bool:
        ...

    async def request_edit(
        self,
        image_bytes: bytes,
        mime_type: str | None,
        instruction: str,
    ) -> ImageRef:
        ...
