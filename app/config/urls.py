"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/                       - Identity and user endpoints
        auth/session/              - Sync the signed-in user (find or create)
        users/                     - All users except the caller
        users/me/                  - Current user profile (GET/PATCH)
        users/contacts/            - Users sharing a chat with the caller
    /api/v1/chat/                  - Chat endpoints
        chats/                     - Chat list/create (direct or group)
        chats/{id}/                - Chat detail
        chats/{id}/read/           - Mark every message in the chat as read
        chats/{id}/members/        - Member list/add
        chats/{id}/members/{user}/ - Remove member
        chats/{id}/messages/       - Message list/send
        chats/{id}/invite/         - Get (or create) the group invite code
        chats/{id}/invite/regenerate/ - Replace the group invite code
        invites/join/              - Join a group with an invite code
        messages/{id}/read/        - Mark one message as read
        statuses/                  - Status feed/post
        statuses/all/              - Every active status
        statuses/users/{user}/     - One author's active statuses
        statuses/{id}/view/        - Record a status view
        presence/{user}/           - Online state and last seen
    /api/v1/media/                 - Media endpoints
        images/                    - Upload an image (returns its URL)
    /ws/chat/                      - WebSocket notifications (see config.asgi)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Identity sync, profiles, contacts
    path("", include("authentication.urls")),
    # Chat
    path("chat/", include("chat.urls")),
    # Media
    path("media/", include("media.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]
