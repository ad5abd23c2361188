"""Image codec helpers: reading, base64/data-URL encoding, PNG normalization, and export."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional, Union

from PIL import Image, UnidentifiedImageError

from .errors import EncodingError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}

MIME_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

# Pillow format names to MIME types.
PIL_FORMAT_MIME = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
}

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?;base64,(?P<data>.*)$", re.DOTALL)

ImageSource = Union[bytes, bytearray, memoryview, str, Path, BinaryIO]


@dataclass(frozen=True)
class ImageRef:
    """In-memory image bytes plus the MIME type needed to display or save them."""

    data: bytes = field(repr=False)
    mime_type: str = DEFAULT_MIME_TYPE
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def url(self) -> str:
        return to_data_url(self.data, self.mime_type)

    @classmethod
    def from_data_url(cls, url: str, filename: Optional[str] = None) -> "ImageRef":
        mime_type, data = parse_data_url(url)
        return cls(data=data, mime_type=mime_type, filename=filename)


def read_image(source: ImageSource) -> bytes:
    """Loads raw image bytes from bytes, a filesystem path, or a binary stream."""
    try:
        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source)
        elif isinstance(source, (str, Path)):
            data = Path(source).read_bytes()
        else:
            data = source.read()
    except (OSError, ValueError, AttributeError) as exc:
        raise EncodingError(f"Could not read image: {exc}") from exc

    if not isinstance(data, (bytes, bytearray)):
        raise EncodingError("Image source did not produce binary data.")
    if not data:
        raise EncodingError("Image is empty.")
    return bytes(data)


def encode(source: ImageSource) -> str:
    return base64.b64encode(read_image(source)).decode("ascii")


def decode(encoded: str) -> bytes:
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise EncodingError("Invalid base64 image payload.") from exc


def to_data_url(data: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    return f"data:{mime_type or DEFAULT_MIME_TYPE};base64,{encode(data)}"


def parse_data_url(url: str) -> tuple[str, bytes]:
    match = _DATA_URL_RE.match(url or "")
    if not match:
        raise EncodingError("Not a base64 data URL.")
    return match.group("mime") or DEFAULT_MIME_TYPE, decode(match.group("data"))


def sniff_mime_type(data: bytes) -> Optional[str]:
    """Detects the image MIME type from its bytes, or None if Pillow cannot identify it."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return PIL_FORMAT_MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError, ValueError):
        return None


def resolve_mime_type(declared: Optional[str], data: bytes | None = None) -> str:
    if declared and declared.startswith("image/"):
        return declared
    if data:
        detected = sniff_mime_type(data)
        if detected:
            return detected
    return DEFAULT_MIME_TYPE


def mime_for_filename(filename: str) -> Optional[str]:
    return IMAGE_MIME_TYPES.get(Path(filename or "").suffix.lower())


def extension_for_mime(content_type: str) -> str:
    return MIME_EXTENSIONS.get(content_type, ".png")


def inline_image_to_png(inline: object) -> Optional[bytes]:
    """Converts an inline model part (object or dict) holding image data to PNG bytes."""
    if not inline:
        return None

    if isinstance(inline, dict):
        mime_type = inline.get("mime_type") or inline.get("mimeType")
        data = inline.get("data")
    else:
        mime_type = getattr(inline, "mime_type", None)
        data = getattr(inline, "data", None)

    if not mime_type or not str(mime_type).startswith("image/"):
        return None
    if not data:
        return None

    if isinstance(data, str):
        try:
            data = decode(data)
        except EncodingError:
            return None

    if mime_type == "image/png":
        return bytes(data) if isinstance(data, (bytes, bytearray)) else None

    try:
        with Image.open(io.BytesIO(data)) as img:
            converted = img if img.mode in ("RGB", "RGBA") else img.convert("RGBA")
            buffer = io.BytesIO()
            converted.save(buffer, "PNG")
            return buffer.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        logger.warning("Inline image decode failed: %s", exc)
        return None


def secure_filename(name: str, default: str = "image") -> str:
    safe = (name or "").strip()
    if not safe:
        return default
    safe = Path(safe).name
    safe = safe.replace(" ", "_")
    safe = re.sub(r"[^A-Za-z0-9_.-]", "", safe)
    safe = safe.strip("._")
    return safe or default


def trigger_download(
    reference: ImageRef | str, filename: str, directory: Path | str
) -> Optional[Path]:
    """Saves an image to the download directory and returns the written path.

    Failures are logged and reported as None; nothing is retried.
    """
    try:
        ref = ImageRef.from_data_url(reference) if isinstance(reference, str) else reference
        target_dir = Path(directory)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / secure_filename(filename, default=f"download{extension_for_mime(ref.mime_type)}")
        target.write_bytes(ref.data)
    except (OSError, EncodingError) as exc:
        logger.warning("Download of %s failed: %s", filename, exc)
        return None
    logger.info("Saved %s (%d bytes)", target, ref.size)
    return target
