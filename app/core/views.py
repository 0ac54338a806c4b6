"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the business domain but are
essential for application infrastructure, such as health checks.
"""

from django.apps import apps
from django.http import JsonResponse


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    This endpoint is used by:
    - Docker health checks
    - Kubernetes liveness/readiness probes
    - Load balancers

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - store: per-entity row counts of the in-memory store
        - connections: number of registered WebSocket connections

    HTTP Status Codes:
        200: All systems operational
        503: Chat runtime not initialized

    Example Response:
        {
            "status": "healthy",
            "store": {"users": 3, "chats": 1, ...},
            "connections": 2
        }
    """
    health_status = {
        "status": "healthy",
        "store": None,
        "connections": 0,
    }

    try:
        chat_app = apps.get_app_config("chat")
        health_status["store"] = chat_app.store.stats()
        health_status["connections"] = chat_app.fanout.connection_count()
    except (LookupError, AttributeError):
        health_status["status"] = "unhealthy"
        return JsonResponse(health_status, status=503)

    return JsonResponse(health_status, status=200)
