"""
HTTP views around the relay.

- GET /api/content/: active content snapshot (same policy as the socket snapshot).
- GET /api/search/?keyword=...: geocoding pass-through.

The content view is async so it reads relay state on the event loop; the search
view is sync and runs in Django's thread pool while the upstream call is in flight.
"""

from __future__ import annotations

from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from .geocoding import search_places
from .runtime import get_relay


@require_http_methods(["GET"])
async def content_list(request):
    items = get_relay().content.active_snapshot()
    return JsonResponse({"items": [item.to_wire() for item in items]})


@require_http_methods(["GET"])
def place_search(request):
    # Upstream body is passed through as-is, which need not be a dict.
    return JsonResponse(search_places(request.GET.get("keyword")), safe=False)
