"""
Project-level Channels routing.

Keeping routing in the Django project package ensures `momentmap.asgi` can import it.
"""

from momentmap.relay.routing import websocket_urlpatterns

__all__ = ["websocket_urlpatterns"]
