# =============================================================================
# Django Project Configuration Package
# =============================================================================
# This package contains all Django configuration: settings, URLs, and the
# ASGI/WSGI applications.
# =============================================================================
