"""
Media app for image attachments.

This app provides:
- Content-based image type validation (python-magic) with a 5MB limit
- Decode verification with Pillow
- Upload to the configured storage backend, returning a URL for
  message and status image_url fields
"""
