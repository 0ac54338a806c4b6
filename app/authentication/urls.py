"""
URL configuration for authentication app.

URL structure:
    /api/v1/auth/session/    - Sync identity session (POST)
    /api/v1/users/           - User directory (GET)
    /api/v1/users/me/        - Current user (GET/PATCH)
    /api/v1/users/contacts/  - Users sharing a chat with the caller (GET)

Note:
    Included at /api/v1/ in config/urls.py.
"""

from django.urls import path

from authentication.views import (
    ContactListView,
    CurrentUserView,
    SessionSyncView,
    UserListView,
)

app_name = "authentication"

urlpatterns = [
    path("auth/session/", SessionSyncView.as_view(), name="session"),
    path("users/", UserListView.as_view(), name="user-list"),
    path("users/me/", CurrentUserView.as_view(), name="user-me"),
    path("users/contacts/", ContactListView.as_view(), name="user-contacts"),
]
