"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - Per-user live connection for pushed chat events

Authentication:
    The identity token is passed as query parameter (?token=<jwt>) or as
    subprotocol ("jwt", <jwt>). JWTAuthMiddleware validates the token and
    attaches the user to the consumer's scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.ChatConsumer.as_asgi()),
]
