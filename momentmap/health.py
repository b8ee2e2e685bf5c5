from __future__ import annotations

import time

from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from momentmap.relay.runtime import get_relay


@require_http_methods(["GET"])
async def status(request):
    """
    Health/status endpoint.

    Keep it cheap: only counts from the in-memory relay, no outbound calls.
    """

    return JsonResponse(
        {
            "status": "ok",
            "message": "Moment Map relay is running",
            **get_relay().status(),
            "ts": int(time.time()),
        }
    )
