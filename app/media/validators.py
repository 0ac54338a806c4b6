"""
Image upload validators.

Provides content-based MIME type detection using python-magic and decode
verification using Pillow. Attachments and status images are accepted only
if their bytes are a real image of an allowed type, whatever the filename
or declared content type says.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

import magic
from django.conf import settings
from PIL import Image, UnidentifiedImageError


# =============================================================================
# Configuration
# =============================================================================

ALLOWED_IMAGE_MIME_TYPES: frozenset[str] = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
    }
)

DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB

MIME_TO_EXTENSION: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ValidationResult:
    """Result of image validation.

    Attributes:
        is_valid: Whether the file passed validation.
        mime_type: MIME type detected from content.
        size: File size in bytes.
        width: Image width in pixels (valid images only).
        height: Image height in pixels (valid images only).
        error: Human-readable error message if validation failed.
        error_code: Machine-readable error code if validation failed.
    """

    is_valid: bool
    mime_type: str | None = None
    size: int = 0
    width: int | None = None
    height: int | None = None
    error: str | None = None
    error_code: str | None = None


# =============================================================================
# Validator Class
# =============================================================================


class ImageValidator:
    """Validates image uploads.

    Example:
        validator = ImageValidator()
        result = validator.validate(uploaded_file)
        if result.is_valid:
            print(f"{result.mime_type} {result.width}x{result.height}")
        else:
            print(f"Validation failed: {result.error}")
    """

    def __init__(
        self,
        allowed_mime_types: frozenset[str] | None = None,
        max_bytes: int | None = None,
    ) -> None:
        self._allowed_mime_types = allowed_mime_types or ALLOWED_IMAGE_MIME_TYPES
        self._max_bytes = max_bytes or getattr(
            settings, "MEDIA_MAX_IMAGE_BYTES", DEFAULT_MAX_IMAGE_BYTES
        )
        self._magic = magic.Magic(mime=True)

    def validate(self, file: BinaryIO) -> ValidationResult:
        """Validate an image upload.

        Performs the following checks in order:
        1. Empty file check
        2. MIME type detection from content
        3. MIME type allowlist check
        4. File size limit check
        5. Pillow decode check

        Args:
            file: File-like object to validate. Must support read() and seek().

        Returns:
            ValidationResult with validation outcome and image info.
        """
        file.seek(0, 2)
        file_size = file.tell()
        file.seek(0)

        if file_size == 0:
            return ValidationResult(
                is_valid=False,
                error="File is empty",
                error_code="EMPTY_FILE",
            )

        mime_type = self._detect_mime_type(file)
        if mime_type not in self._allowed_mime_types:
            return ValidationResult(
                is_valid=False,
                mime_type=mime_type,
                size=file_size,
                error=f"File type '{mime_type}' is not an allowed image type",
                error_code="MIME_TYPE_NOT_ALLOWED",
            )

        if file_size > self._max_bytes:
            limit_mb = self._max_bytes // (1024 * 1024)
            return ValidationResult(
                is_valid=False,
                mime_type=mime_type,
                size=file_size,
                error=f"Image exceeds {limit_mb}MB limit",
                error_code="FILE_TOO_LARGE",
            )

        dimensions = self._read_dimensions(file)
        if dimensions is None:
            return ValidationResult(
                is_valid=False,
                mime_type=mime_type,
                size=file_size,
                error="Image could not be decoded",
                error_code="CORRUPT_IMAGE",
            )

        width, height = dimensions
        return ValidationResult(
            is_valid=True,
            mime_type=mime_type,
            size=file_size,
            width=width,
            height=height,
        )

    def _detect_mime_type(self, file: BinaryIO) -> str | None:
        """Detect MIME type from the first 2048 bytes using libmagic."""
        file.seek(0)
        header = file.read(2048)
        file.seek(0)

        if not header:
            return None
        return self._magic.from_buffer(header)

    def _read_dimensions(self, file: BinaryIO) -> tuple[int, int] | None:
        """Verify the image decodes and return its size."""
        file.seek(0)
        try:
            with Image.open(file) as image:
                image.verify()
                size = image.size
        except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError):
            return None
        finally:
            file.seek(0)
        return size


def validate_image_upload(file: BinaryIO) -> ValidationResult:
    """Validate an image upload using default settings."""
    return ImageValidator().validate(file)
