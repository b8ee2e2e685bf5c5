"""
Connection sessions and their outbound buffers.

Every accepted WebSocket gets a ConnectionSession holding a server-assigned
connection id, the participant id it announced (if any) and an unbounded queue
that the consumer's writer task drains into the socket. Broadcasting is a
`put_nowait` into those queues, so relay handlers never suspend while they
mutate shared state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

from .helpers import new_id
from .models import OutboundEvent

logger = logging.getLogger(__name__)


def make_event(kind: str, data: Any = None) -> Dict[str, Any]:
    return OutboundEvent(type=kind, data=data).model_dump(mode="json")


class ConnectionSession:
    """Represents one connected client."""

    def __init__(self, connection_id: Optional[str] = None):
        self.connection_id = connection_id or new_id()
        self.participant_id: Optional[str] = None
        self.outbound: asyncio.Queue = asyncio.Queue()
        self.is_open = True

    def push(self, event: Dict[str, Any]) -> bool:
        if not self.is_open:
            return False
        self.outbound.put_nowait(event)
        return True

    def close(self) -> None:
        self.is_open = False

    def __repr__(self) -> str:
        return f"<ConnectionSession {self.connection_id} participant={self.participant_id}>"


class SessionTable:
    """
    Open sessions keyed by connection id.

    Sends to a connection id that is no longer open are silent no-ops.
    """

    def __init__(self):
        self._sessions: Dict[str, ConnectionSession] = {}

    def open(self, connection_id: Optional[str] = None) -> ConnectionSession:
        session = ConnectionSession(connection_id)
        self._sessions[session.connection_id] = session
        return session

    def close(self, connection_id: str) -> Optional[ConnectionSession]:
        session = self._sessions.pop(connection_id, None)
        if session:
            session.close()
        return session

    def send(self, connection_id: Optional[str], event: Dict[str, Any]) -> bool:
        session = self._sessions.get(connection_id) if connection_id else None
        if session is None:
            logger.debug("Dropping %s for closed connection %s", event.get("type"), connection_id)
            return False
        return session.push(event)

    def send_many(self, connection_ids: Iterable[str], event: Dict[str, Any]) -> int:
        return sum(1 for cid in list(connection_ids) if self.send(cid, event))

    def send_all(self, event: Dict[str, Any]) -> int:
        return self.send_many(self._sessions.keys(), event)

    def __len__(self) -> int:
        return len(self._sessions)
