"""
WSGI config for the Django application.

WSGI serves the REST API only. WebSocket notifications need the ASGI
application in config.asgi, and the entity store is per process, so a
deployment runs a single ASGI worker rather than WSGI workers.

This file exposes the WSGI callable as a module-level variable named `application`.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
