"""
Process-wide relay state.

All maps live for the life of the process and are discarded on exit. The relay
is created at app startup (see apps.py); tests build their own with
`build_relay()` so nothing leaks between them.
"""

from __future__ import annotations

from typing import Optional

from .config import RelaySettings, config
from .content import ContentStore
from .direct import DirectRouter
from .dispatcher import EventRelay
from .presence import PresenceRegistry
from .rooms import RoomDirectory
from .session import SessionTable


def build_relay(settings: Optional[RelaySettings] = None, **overrides) -> EventRelay:
    settings = settings or config
    presence = overrides.pop("presence", None) or PresenceRegistry()
    components = {
        "sessions": SessionTable(),
        "presence": presence,
        "content": ContentStore(),
        "rooms": RoomDirectory(
            presence,
            history_limit=settings.RELAY_ROOM_HISTORY_LIMIT,
            idle_grace_seconds=settings.RELAY_ROOM_IDLE_GRACE_SECONDS,
        ),
        "direct": DirectRouter(presence, keep_history=settings.RELAY_KEEP_DIRECT_HISTORY),
        "sweep_interval_seconds": settings.RELAY_SWEEP_INTERVAL_SECONDS,
    }
    components.update(overrides)
    return EventRelay(**components)


_relay: Optional[EventRelay] = None


def get_relay() -> EventRelay:
    global _relay
    if _relay is None:
        _relay = build_relay()
    return _relay
