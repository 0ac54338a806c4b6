"""
URL configuration for chat API.

URL Structure:
    Chats:
        /chats/                              GET, POST
        /chats/{id}/                         GET
        /chats/{id}/read/                    POST
        /chats/{id}/members/                 GET, POST
        /chats/{id}/members/{user_id}/       DELETE
        /chats/{id}/messages/                GET, POST
        /chats/{id}/invite/                  POST
        /chats/{id}/invite/regenerate/       POST

    Invites:
        /invites/join/                       POST

    Messages:
        /messages/{id}/read/                 POST

    Statuses:
        /statuses/                           GET, POST
        /statuses/all/                       GET
        /statuses/users/{user_id}/           GET
        /statuses/{id}/view/                 POST

    Presence:
        /presence/{user_id}/                 GET

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import (
    ChatViewSet,
    InviteJoinView,
    MessageReadView,
    StatusViewSet,
    UserPresenceView,
)

router = DefaultRouter()
router.register(r"chats", ChatViewSet, basename="chat")
router.register(r"statuses", StatusViewSet, basename="status")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
    path("invites/join/", InviteJoinView.as_view(), name="invite-join"),
    path(
        "messages/<int:message_id>/read/",
        MessageReadView.as_view(),
        name="message-read",
    ),
    path("presence/<int:user_id>/", UserPresenceView.as_view(), name="presence-user"),
]
