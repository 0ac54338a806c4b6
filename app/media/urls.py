"""
URL configuration for media app.

URL structure:
    /api/v1/media/images/  - Upload an image (POST)
"""

from django.urls import path

from media.views import ImageUploadView

app_name = "media"

urlpatterns = [
    path("images/", ImageUploadView.as_view(), name="image-upload"),
]
