"""Edit instruction value type and the preset catalogue."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

PRESETS: tuple[str, ...] = (
    "Remove background",
    "Add white studio background",
    "Fix lighting and shadows",
    "Enhance product colors",
    "Add a dramatic shadow",
    "Add retro film filter",
)


@dataclass(frozen=True)
class Instruction:
    """A natural-language edit directive, typed by the user or picked from the presets."""

    text: str
    preset: bool = False

    @classmethod
    def from_preset(cls, name: str) -> "Instruction":
        lookup = {preset.lower(): preset for preset in PRESETS}
        match = lookup.get((name or "").strip().lower())
        if match is None:
            raise ValueError(f"Unknown preset: {name!r}")
        return cls(text=match, preset=True)

    @classmethod
    def coerce(cls, value: Union["Instruction", str, None]) -> "Instruction":
        if isinstance(value, Instruction):
            return value
        return cls(text=value or "")

    @property
    def cleaned(self) -> str:
        return self.text.strip()

    @property
    def is_blank(self) -> bool:
        return not self.cleaned

    def __str__(self) -> str:
        return self.cleaned
