"""
ASGI entry point for the chat backend.

Serve with uvicorn:

    uvicorn config.asgi:application --app-dir app

Protocols:
    http: Django views (REST API under /api/v1/, health check, docs)
    websocket: ws/chat/, one live socket per authenticated user. Events
        pushed by chat.fanout arrive here.

The chat runtime (entity store, fan-out, services) is built by
ChatConfig.ready() during get_asgi_application(), so both protocols share
the same in-process state.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Must run before anything below touches the app registry
http_application = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

from chat.middleware import JWTAuthMiddleware  # noqa: E402
from chat.routing import websocket_urlpatterns  # noqa: E402

websocket_application = AllowedHostsOriginValidator(
    JWTAuthMiddleware(URLRouter(websocket_urlpatterns))
)

application = ProtocolTypeRouter(
    {
        "http": http_application,
        "websocket": websocket_application,
    }
)
