"""
Event relay: the single place inbound client events are turned into state
changes and outbound broadcasts.

Key behavior:
- Each handler runs to completion without awaiting, so the shared maps are
  never observed half-updated on the single event loop.
- Broadcasts are fire-and-forget pushes into per-connection outbound queues.
- Malformed or out-of-context events are dropped without telling the client.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Type

from pydantic import BaseModel, ValidationError

from .content import ContentStore
from .direct import DirectRouter
from .models import (
    AnnounceRequest,
    ContentItem,
    DirectMessageRequest,
    JoinRoomRequest,
    LeaveRoomRequest,
    PublishContentRequest,
    RoomMessageRequest,
)
from .presence import PresenceRegistry
from .rooms import Room, RoomDirectory
from .session import ConnectionSession, SessionTable, make_event

logger = logging.getLogger(__name__)


class EventRelay:
    def __init__(
        self,
        *,
        sessions: SessionTable,
        presence: PresenceRegistry,
        content: ContentStore,
        rooms: RoomDirectory,
        direct: DirectRouter,
        sweep_interval_seconds: float = 60,
    ):
        self.sessions = sessions
        self.presence = presence
        self.content = content
        self.rooms = rooms
        self.direct = direct
        self.sweep_interval_seconds = sweep_interval_seconds
        self._maintenance_task: Optional[asyncio.Task] = None

        self.content.subscribe(self._broadcast_expired)

        self._handlers: Dict[str, tuple[Type[BaseModel], Callable[[ConnectionSession, Any], None]]] = {
            "announce": (AnnounceRequest, self.announce),
            "publishContent": (PublishContentRequest, self.publish_content),
            "joinRoom": (JoinRoomRequest, self.join_room),
            "roomMessage": (RoomMessageRequest, self.room_message),
            "leaveRoom": (LeaveRoomRequest, self.leave_room),
            "directMessage": (DirectMessageRequest, self.direct_message),
        }

    # Connection lifecycle

    def connect(self) -> ConnectionSession:
        session = self.sessions.open()
        logger.info("Connection opened: %s", session.connection_id)
        session.push(make_event("connected", {"connectionId": session.connection_id}))
        return session

    def disconnect(self, session: ConnectionSession) -> None:
        """Tear down everything tied to this connection. Expiry timers keep running."""
        self.sessions.close(session.connection_id)

        if session.participant_id:
            self.presence.remove(session.participant_id, connection_id=session.connection_id)
            logger.info("Participant left: %s (%s)", session.participant_id, session.connection_id)
        self._broadcast_presence_count()

        for room in self.rooms.disconnect_cleanup(session.connection_id):
            self._broadcast_member_count(room)

    def dispatch(self, session: ConnectionSession, kind: Any, payload: Any) -> bool:
        """
        Validate and route one inbound event. Returns False if it was dropped.
        """
        entry = self._handlers.get(kind) if isinstance(kind, str) else None
        if entry is None:
            logger.info("Dropping unknown event %r from %s", kind, session.connection_id)
            return False
        model, handler = entry
        try:
            request = model.model_validate(payload if payload is not None else {})
        except ValidationError as e:
            logger.info("Dropping malformed %s from %s: %s", kind, session.connection_id, e.errors())
            return False
        handler(session, request)
        return True

    # Handlers

    def announce(self, session: ConnectionSession, request: AnnounceRequest) -> None:
        record = self.presence.announce(
            request.participant_id,
            nickname=request.nickname,
            avatar=request.avatar,
            status=request.status,
            connection_id=session.connection_id,
        )
        session.participant_id = record.participant_id
        logger.info("Participant joined: %s (%s)", record.nickname, record.participant_id)

        self._broadcast_presence_count()
        snapshot = [item.to_wire() for item in self.content.active_snapshot()]
        self.sessions.send(session.connection_id, make_event("contentSnapshot", snapshot))

    def publish_content(self, session: ConnectionSession, request: PublishContentRequest) -> None:
        item = self.content.publish(request)
        logger.info("Content published: %r (%s, %ss, private=%s)", item.title, item.id, item.duration, item.is_private)
        self.sessions.send_all(make_event("contentPublished", item.to_wire()))

    def join_room(self, session: ConnectionSession, request: JoinRoomRequest) -> None:
        room = self.rooms.join(request.room_id, session.connection_id)
        history = {"roomId": room.room_id, "messages": [m.to_wire() for m in room.history]}
        self.sessions.send(session.connection_id, make_event("roomHistory", history))
        self._broadcast_member_count(room)
        logger.info("Connection %s joined room %s", session.connection_id, room.room_id)

    def room_message(self, session: ConnectionSession, request: RoomMessageRequest) -> None:
        message = self.rooms.post_message(request.room_id, session.connection_id, request.content)
        if message is None:
            return
        room = self.rooms.get(request.room_id)
        self.sessions.send_many(room.members, make_event("roomMessagePosted", message.to_wire()))

    def leave_room(self, session: ConnectionSession, request: LeaveRoomRequest) -> None:
        room = self.rooms.leave(request.room_id, session.connection_id)
        if room is None:
            return
        self._broadcast_member_count(room)
        logger.info("Connection %s left room %s", session.connection_id, room.room_id)

    def direct_message(self, session: ConnectionSession, request: DirectMessageRequest) -> None:
        delivery = self.direct.send(session.connection_id, request.target_participant_id, request.content)
        if delivery is None:
            return
        event = make_event("directMessageDelivered", delivery.message.to_wire())
        if delivery.target_connection_id and delivery.target_connection_id != session.connection_id:
            self.sessions.send(delivery.target_connection_id, event)
        # Echo so the sender's own timeline shows the message.
        self.sessions.send(session.connection_id, event)

    # Background maintenance

    def sweep(self, now: Optional[int] = None) -> None:
        """Backstop expiry pass plus idle-room reclamation."""
        self.content.sweep(now)
        self.rooms.reclaim_idle(now)

    def ensure_maintenance(self) -> None:
        """Start the periodic sweep on the running loop if it is not already running."""
        if self._maintenance_task is None or self._maintenance_task.done():
            self._maintenance_task = asyncio.get_running_loop().create_task(self._maintenance_loop())

    async def _maintenance_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.sweep_interval_seconds)
                self.sweep()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Relay sweep failed; will retry next interval")

    def stop_maintenance(self) -> None:
        if self._maintenance_task is not None:
            self._maintenance_task.cancel()
            self._maintenance_task = None

    # Status

    def status(self) -> Dict[str, int]:
        return {"presenceCount": len(self.presence), "contentCount": len(self.content)}

    # Broadcast helpers

    def _broadcast_presence_count(self) -> None:
        self.sessions.send_all(make_event("presenceCount", len(self.presence)))

    def _broadcast_member_count(self, room: Room) -> None:
        event = make_event("roomMemberCount", {"roomId": room.room_id, "count": room.member_count})
        self.sessions.send_many(room.members, event)

    def _broadcast_expired(self, item: ContentItem) -> None:
        self.sessions.send_all(make_event("contentExpired", item.id))
