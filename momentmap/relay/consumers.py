"""
WebSocket consumer for the map relay.

Key behavior:
- URL: /ws/relay/
- One consumer (and one ConnectionSession) per socket; all sockets share the
  process-wide EventRelay.
- Client frames: {"type": <event kind>, "data": {...}}.
- Outbound frames are drained from the session's queue by a writer task, so
  relay handlers never wait on a slow client.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from channels.generic.websocket import AsyncWebsocketConsumer

from .dispatcher import EventRelay
from .runtime import get_relay
from .session import ConnectionSession

logger = logging.getLogger(__name__)


class RelayConsumer(AsyncWebsocketConsumer):
    def __init__(self, *args: Any, relay: Optional[EventRelay] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.relay: EventRelay = relay or get_relay()
        self.session: Optional[ConnectionSession] = None
        self._writer_task: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        await self.accept()
        self.session = self.relay.connect()
        self._writer_task = asyncio.create_task(self._drain_outbound(self.session))
        self.relay.ensure_maintenance()

    async def disconnect(self, close_code: int) -> None:
        if self.session is not None:
            logger.info("Connection closed: %s (code=%s)", self.session.connection_id, close_code)
            self.relay.disconnect(self.session)
        if self._writer_task:
            self._writer_task.cancel()
            self._writer_task = None

    async def receive(self, text_data: Optional[str] = None, bytes_data: Optional[bytes] = None) -> None:
        if not text_data or self.session is None:
            return

        try:
            msg = json.loads(text_data)
        except json.JSONDecodeError:
            logger.debug("Ignoring non-JSON frame from %s", self.session.connection_id)
            return
        if not isinstance(msg, dict):
            return

        try:
            self.relay.dispatch(self.session, msg.get("type"), msg.get("data"))
        except Exception:
            logger.exception("Handler for %r failed on %s", msg.get("type"), self.session.connection_id)

    async def _drain_outbound(self, session: ConnectionSession) -> None:
        try:
            while True:
                event = await session.outbound.get()
                await self.send_json(event)
        except asyncio.CancelledError:
            return
        except Exception:
            # Socket is gone; the transport will deliver the disconnect.
            logger.debug("Writer for %s stopped", session.connection_id, exc_info=True)

    async def send_json(self, payload: Dict[str, Any]) -> None:
        await self.send(text_data=json.dumps(payload, separators=(",", ":"), ensure_ascii=False))
