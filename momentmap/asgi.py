"""
ASGI config for the momentmap project.

It exposes the ASGI callable as a module-level variable named ``application``.
Run it with an ASGI server (Daphne/Uvicorn) as a single process: all relay
state is held in memory by that process.
"""
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "momentmap.settings")

from channels.routing import ProtocolTypeRouter, URLRouter
from django.core.asgi import get_asgi_application

# Initialise Django (and the relay app) before importing consumers.
django_asgi_app = get_asgi_application()

from momentmap.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        "websocket": URLRouter(websocket_urlpatterns),
    }
)
