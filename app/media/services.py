"""
Image upload service.

Stores validated images through Django's default_storage (the blob store)
and returns the URL that messages and statuses carry as image_url.

Usage:
    from media.services import ImageUploadService

    uploaded = ImageUploadService().upload(request.FILES["file"], owner_id=user.id)
    messages.send_message(chat_id, user.id, image_url=uploaded.url)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.core.files.storage import default_storage

from core.exceptions import ExternalServiceError, ValidationError

from media.validators import MIME_TO_EXTENSION, ImageValidator

if TYPE_CHECKING:
    from django.core.files.uploadedfile import UploadedFile

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = "images"


@dataclass
class UploadedImage:
    url: str
    name: str
    mime_type: str
    size: int
    width: int
    height: int


class ImageUploadService:
    """
    Validate and store image uploads.

    Storage paths are images/<owner_id>/<uuid><ext>, with the extension taken
    from the detected content type, never from the client filename.
    """

    def __init__(self, validator: ImageValidator | None = None, storage=None):
        self.validator = validator or ImageValidator()
        self.storage = storage or default_storage

    def upload(self, file: UploadedFile, owner_id: int) -> UploadedImage:
        """
        Raises:
            ValidationError: Not an allowed image, too large, or undecodable
            ExternalServiceError: Storage backend failure
        """
        result = self.validator.validate(file)
        if not result.is_valid:
            raise ValidationError(
                result.error,
                error_code=result.error_code,
                details={"mime_type": result.mime_type, "size": result.size},
            )

        path = f"{UPLOAD_PREFIX}/{owner_id}/{uuid.uuid4().hex}{MIME_TO_EXTENSION[result.mime_type]}"
        try:
            name = self.storage.save(path, file)
            url = self.storage.url(name)
        except OSError as e:
            logger.error(f"Image storage failed for user {owner_id}: {e}")
            raise ExternalServiceError(
                "Image storage unavailable",
                error_code="STORAGE_ERROR",
            ) from e

        logger.info(f"User {owner_id} uploaded image {name} ({result.size} bytes)")
        return UploadedImage(
            url=url,
            name=name,
            mime_type=result.mime_type,
            size=result.size,
            width=result.width,
            height=result.height,
        )
