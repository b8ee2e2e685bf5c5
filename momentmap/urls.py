"""
URL configuration for the momentmap project.

The relay itself is WebSocket-only (see routing.py); these are the read-only
HTTP helpers the map client uses.
"""
from django.urls import path

from momentmap.relay.views import content_list, place_search
from .health import status

urlpatterns = [
    path("", status),
    path("health/", status),
    path("api/content/", content_list),
    path("api/search/", place_search),
]
