import io
import os
import sys
from pathlib import Path

import pytest
from PIL import Image

# Ensure project root is on sys.path so the flat modules are importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("LOAD_DOTENV", "0")
os.environ.setdefault("APP_ENV", "testing")


def make_image_bytes(color=(255, 0, 0), size=(8, 8), fmt="PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes(color=(0, 0, 255), fmt="JPEG")


@pytest.fixture
def edited_png() -> bytes:
    return make_image_bytes(color=(0, 255, 0))
