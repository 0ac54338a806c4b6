"""
DRF exception handler for application errors.

Services raise core.exceptions errors; this handler turns them into JSON
responses using each error's status_code, and defers everything else to
DRF's default handler.

Configured in settings:
    REST_FRAMEWORK = {
        "EXCEPTION_HANDLER": "core.handlers.api_exception_handler",
    }
"""

from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """
    Map BaseApplicationError subclasses onto HTTP responses.

    Returns:
        Response for application errors, DRF's default handling otherwise
        (None for unhandled exceptions, which Django turns into a 500).
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc}"
        )
        return Response(exc.to_dict(), status=exc.status_code)

    return exception_handler(exc, context)
