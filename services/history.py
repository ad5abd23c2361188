"""In-memory, newest-first history of completed edits."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, Optional
from uuid import uuid4

from .imaging import ImageRef


@dataclass(frozen=True)
class EditedImage:
    id: str
    original: ImageRef
    edited: ImageRef
    prompt: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(cls, original: ImageRef, edited: ImageRef, prompt: str) -> "EditedImage":
        return cls(id=str(uuid4()), original=original, edited=edited, prompt=prompt)

    @property
    def original_url(self) -> str:
        return self.original.url

    @property
    def edited_url(self) -> str:
        return self.edited.url

    @property
    def timestamp(self) -> int:
        """Creation time in epoch milliseconds."""
        return int(self.created_at.timestamp() * 1000)


class EditHistory:
    """Append-only record of edits for one session; only ``clear`` removes entries."""

    def __init__(self) -> None:
        self._entries: list[EditedImage] = []

    def append(self, entry: EditedImage) -> None:
        self._entries.insert(0, entry)

    def clear(self) -> None:
        self._entries.clear()

    def get(self, entry_id: str) -> Optional[EditedImage]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    @property
    def entries(self) -> tuple[EditedImage, ...]:
        return tuple(self._entries)

    @property
    def latest(self) -> Optional[EditedImage]:
        return self._entries[0] if self._entries else None

    def __contains__(self, entry: object) -> bool:
        return any(existing is entry for existing in self._entries)

    def __iter__(self) -> Iterator[EditedImage]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
