"""
Place-suggestion pass-through to the third-party geocoding API.

The upstream response is returned verbatim. Every failure (missing keyword,
transport error, unparseable body) collapses to {"status": -1, "message": ...}.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from .config import RelaySettings, config

logger = logging.getLogger(__name__)


def failure(message: str) -> dict:
    return {"status": -1, "message": message}


def search_places(keyword: Optional[str], settings: Optional[RelaySettings] = None) -> Any:
    settings = settings or config
    keyword = (keyword or "").strip()
    if not keyword:
        return failure("keyword is required")

    params = {"keyword": keyword, "region": settings.GEOCODER_REGION, "output": "json"}
    if settings.GEOCODER_KEY:
        params["key"] = settings.GEOCODER_KEY

    try:
        resp = requests.get(settings.GEOCODER_URL, params=params, timeout=settings.GEOCODER_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.warning("Geocoder call failed: %s", e)
        return failure(str(e))

    try:
        return resp.json()
    except ValueError as e:
        logger.warning("Geocoder returned non-JSON body (HTTP %s): %s", resp.status_code, e)
        return failure(f"invalid response from geocoder: {e}")
