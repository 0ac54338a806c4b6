"""
API views for media uploads.

Provides:
- ImageUploadView: Upload an image attachment and get back its URL
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from media.serializers import ImageUploadSerializer, UploadedImageSerializer
from media.services import ImageUploadService


class ImageUploadView(APIView):
    """
    Handle image uploads.

    POST /api/v1/media/images/

    Request:
        Content-Type: multipart/form-data
        - file (required): The image to upload

    Response:
        201 Created: {"url": ..., "mime_type": ..., "size": ..., "width": ..., "height": ...}
        400 Bad Request: Not an allowed image, too large, or corrupt
        401 Unauthorized: Not authenticated

    The returned url is passed as image_url when sending a message or
    posting a status.
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    @extend_schema(
        operation_id="upload_image",
        summary="Upload image",
        description=(
            "Validates the type from content (magic bytes), enforces the 5MB "
            "limit, verifies the image decodes, and stores it."
        ),
        request=ImageUploadSerializer,
        responses={
            201: OpenApiResponse(
                response=UploadedImageSerializer,
                description="Image stored",
            ),
            400: OpenApiResponse(description="Validation error"),
            401: OpenApiResponse(description="Authentication required"),
        },
        tags=["Media - Upload"],
    )
    def post(self, request):
        serializer = ImageUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        uploaded = ImageUploadService().upload(
            serializer.validated_data["file"], owner_id=request.user.id
        )
        return Response(
            UploadedImageSerializer(uploaded).data,
            status=status.HTTP_201_CREATED,
        )
