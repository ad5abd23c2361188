"""Service container definitions for core app services."""

from __future__ import annotations

from dataclasses import dataclass

from .ai import ImageEditor
from .history import EditedImage, EditHistory
from .instructions import PRESETS, Instruction
from .session import EditorSession, SessionRegistry


@dataclass(frozen=True)
class AppServices:
    editor: ImageEditor
    sessions: SessionRegistry


__all__ = [
    "AppServices",
    "EditHistory",
    "EditedImage",
    "EditorSession",
    "ImageEditor",
    "Instruction",
    "PRESETS",
    "SessionRegistry",
]
