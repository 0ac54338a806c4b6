"""
Serializers for media uploads.

Content checks (type sniffing, size, decoding) are done by
media.validators.ImageValidator inside ImageUploadService; the upload
serializer only requires that a file part is present.
"""

from rest_framework import serializers


class ImageUploadSerializer(serializers.Serializer):
    file = serializers.FileField(
        required=True,
        help_text="The image to upload (JPEG, PNG, GIF, or WebP; max 5MB)",
    )


class UploadedImageSerializer(serializers.Serializer):
    url = serializers.CharField(read_only=True)
    mime_type = serializers.CharField(read_only=True)
    size = serializers.IntegerField(read_only=True)
    width = serializers.IntegerField(read_only=True)
    height = serializers.IntegerField(read_only=True)
