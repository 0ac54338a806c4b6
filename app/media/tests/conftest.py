"""
Test fixtures for media app.

Provides fixtures for:
- Sample images generated with Pillow (JPEG, PNG)
- Invalid files (text, empty, truncated image)
- A filesystem storage rooted in a temporary directory
"""

from __future__ import annotations

import io

import pytest
from django.core.files.storage import FileSystemStorage
from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image


def _image_bytes(fmt: str, size=(100, 80), color="red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format=fmt)
    return buffer.getvalue()


# =============================================================================
# Valid File Fixtures
# =============================================================================


@pytest.fixture
def sample_jpeg() -> SimpleUploadedFile:
    """Create a valid 100x80 JPEG image."""
    return SimpleUploadedFile(
        "photo.jpg", _image_bytes("JPEG"), content_type="image/jpeg"
    )


@pytest.fixture
def sample_png() -> SimpleUploadedFile:
    """Create a valid 100x80 PNG image."""
    return SimpleUploadedFile("image.png", _image_bytes("PNG"), content_type="image/png")


@pytest.fixture
def png_named_as_jpeg() -> SimpleUploadedFile:
    """PNG bytes with a .jpg name and a JPEG content type."""
    return SimpleUploadedFile("liar.jpg", _image_bytes("PNG"), content_type="image/jpeg")


# =============================================================================
# Invalid File Fixtures
# =============================================================================


@pytest.fixture
def text_file() -> SimpleUploadedFile:
    """Plain text pretending to be an image."""
    return SimpleUploadedFile(
        "notes.png", b"just some text, not an image\n" * 10, content_type="image/png"
    )


@pytest.fixture
def empty_file() -> SimpleUploadedFile:
    return SimpleUploadedFile("empty.png", b"", content_type="image/png")


@pytest.fixture
def truncated_png() -> SimpleUploadedFile:
    """PNG whose header is intact but whose data is cut off."""
    data = _image_bytes("PNG", size=(400, 400), color="blue")
    return SimpleUploadedFile("broken.png", data[:120], content_type="image/png")


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def temp_storage(tmp_path) -> FileSystemStorage:
    """Filesystem storage isolated to this test."""
    return FileSystemStorage(location=tmp_path, base_url="/media/")
