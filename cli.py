"""Command-line entry point for one-shot product photo edits."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

if os.getenv("LOAD_DOTENV", "1").lower() == "1":
    load_dotenv(os.getenv("DOTENV_FILE") or None)

from config import config_values, get_config_class
from logging_config import configure_logging
from services.ai import ImageEditor, build_image_editor
from services.errors import ConfigurationError, EncodingError
from services.imaging import trigger_download
from services.instructions import PRESETS, Instruction
from services.session import EditorSession


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snapclean", description="Edit product photos with natural-language instructions."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("presets", help="List the preset instructions.")

    edit = subparsers.add_parser("edit", help="Apply one edit to an image file.")
    edit.add_argument("image", type=Path, help="Path to the source image.")
    edit.add_argument("instruction", nargs="?", default="", help="Free-text edit instruction.")
    edit.add_argument("--preset", default="", help="Use a preset instruction instead.")
    edit.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for the edited image (defaults to DOWNLOAD_DIR).",
    )
    return parser


async def run_edit_command(
    editor: ImageEditor,
    image: Path,
    instruction: Instruction,
    output_dir: Path,
) -> Optional[Path]:
    notices: list[str] = []
    session = EditorSession(editor, notify=notices.append, download_dir=output_dir)
    session.select_image(image)
    entry = await session.run_edit(instruction)
    if entry is None:
        for notice in notices:
            print(notice, file=sys.stderr)
        return None

    target = session.download_target()
    if target is None:
        return None
    saved = trigger_download(target.image, target.filename, output_dir)
    if saved is None:
        print(f"Could not save the edited image to {output_dir}", file=sys.stderr)
    return saved


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "presets":
        for preset in PRESETS:
            print(preset)
        return 0

    app_config = get_config_class()
    configure_logging(getattr(app_config, "LOG_LEVEL", "INFO"))
    try:
        instruction = (
            Instruction.from_preset(args.preset)
            if args.preset
            else Instruction.coerce(args.instruction)
        )
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    if instruction.is_blank:
        print("An instruction or --preset is required.", file=sys.stderr)
        return 2

    try:
        editor = build_image_editor(config_values(app_config))
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    output_dir = args.output_dir or Path(getattr(app_config, "DOWNLOAD_DIR", "downloads"))
    try:
        saved = asyncio.run(run_edit_command(editor, args.image, instruction, output_dir))
    except EncodingError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    if saved is None:
        return 1
    print(saved)
    return 0


if __name__ == "__main__":
    sys.exit(main())
