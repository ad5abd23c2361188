from __future__ import annotations

import pytest

from services.history import EditedImage, EditHistory
from services.imaging import ImageRef
from services.instructions import PRESETS, Instruction


def _entry(prompt: str) -> EditedImage:
    return EditedImage.create(
        original=ImageRef(data=b"original"),
        edited=ImageRef(data=prompt.encode("utf-8")),
        prompt=prompt,
    )


def test_append_keeps_newest_first() -> None:
    history = EditHistory()
    first, second = _entry("first"), _entry("second")

    history.append(first)
    history.append(second)

    assert history.entries == (second, first)
    assert history.latest is second
    assert len(history) == 2


def test_no_dedup_by_prompt() -> None:
    history = EditHistory()
    history.append(_entry("same"))
    history.append(_entry("same"))

    assert len(history) == 2
    assert history.entries[0].id != history.entries[1].id


def test_get_and_contains() -> None:
    history = EditHistory()
    entry = _entry("shadow")
    history.append(entry)

    assert history.get(entry.id) is entry
    assert history.get("missing") is None
    assert entry in history
    assert _entry("shadow") not in history


def test_clear_empties_history() -> None:
    history = EditHistory()
    history.append(_entry("a"))
    history.clear()

    assert len(history) == 0
    assert history.latest is None
    assert list(history) == []


def test_edited_image_is_immutable_and_timestamped() -> None:
    entry = _entry("retro")

    with pytest.raises(AttributeError):
        entry.prompt = "changed"  # type: ignore[misc]
    assert entry.timestamp > 0
    assert entry.edited_url.startswith("data:image/png;base64,")


def test_instruction_presets_and_blank_text() -> None:
    preset = Instruction.from_preset("remove BACKGROUND")

    assert preset == Instruction(text="Remove background", preset=True)
    assert preset.text in PRESETS
    assert Instruction.coerce("   ").is_blank
    assert Instruction.coerce(None).is_blank
    assert str(Instruction.coerce("  Add a shadow  ")) == "Add a shadow"
    with pytest.raises(ValueError):
        Instruction.from_preset("Make it a cat")
