"""
Named chat rooms with bounded history.

Rooms are created lazily on first join. Members are connection ids, so one
participant with two tabs open counts twice. History is a FIFO ring; once it
holds `history_limit` messages the oldest is evicted on every post.

Empty rooms keep their history. When `idle_grace_seconds` is set,
`reclaim_idle` drops rooms that have stayed empty at least that long.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional, Set

from .helpers import now_ms
from .models import RoomMessage
from .presence import PresenceRegistry

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


@dataclass
class Room:
    room_id: str
    history: Deque[RoomMessage]
    members: Set[str] = field(default_factory=set)
    empty_since: Optional[int] = None

    @property
    def member_count(self) -> int:
        return len(self.members)


class RoomDirectory:
    def __init__(
        self,
        presence: PresenceRegistry,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        idle_grace_seconds: Optional[float] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self._presence = presence
        self._history_limit = history_limit
        self._idle_grace_seconds = idle_grace_seconds
        self._clock = clock
        self._rooms: Dict[str, Room] = {}

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def join(self, room_id: str, connection_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id=room_id, history=deque(maxlen=self._history_limit))
            self._rooms[room_id] = room
            logger.info("Room created: %s", room_id)
        room.members.add(connection_id)
        room.empty_since = None
        return room

    def post_message(self, room_id: str, connection_id: str, content: str) -> Optional[RoomMessage]:
        """
        Append a message from the participant bound to connection_id.

        Returns None (and stores nothing) when the connection has no announced
        identity or the room does not exist.
        """
        author = self._presence.resolve(connection_id)
        if author is None:
            logger.debug("Room message from unbound connection %s dropped", connection_id)
            return None
        room = self._rooms.get(room_id)
        if room is None:
            logger.debug("Room message for unknown room %s dropped", room_id)
            return None
        message = RoomMessage(
            room_id=room_id,
            nickname=author.nickname,
            avatar=author.avatar,
            content=content,
            timestamp=self._clock(),
        )
        room.history.append(message)
        return message

    def leave(self, room_id: str, connection_id: str) -> Optional[Room]:
        """Remove a member. Returns the room only if membership actually changed."""
        room = self._rooms.get(room_id)
        if room is None or connection_id not in room.members:
            return None
        self._discard(room, connection_id)
        return room

    def disconnect_cleanup(self, connection_id: str) -> List[Room]:
        """Drop connection_id from every room; returns the rooms it was in."""
        affected = [room for room in self._rooms.values() if connection_id in room.members]
        for room in affected:
            self._discard(room, connection_id)
        return affected

    def reclaim_idle(self, now: Optional[int] = None) -> List[str]:
        if self._idle_grace_seconds is None:
            return []
        now = self._clock() if now is None else now
        cutoff = now - self._idle_grace_seconds * 1000
        reclaimed = [
            room_id
            for room_id, room in self._rooms.items()
            if not room.members and room.empty_since is not None and room.empty_since <= cutoff
        ]
        for room_id in reclaimed:
            del self._rooms[room_id]
        if reclaimed:
            logger.info("Reclaimed %d idle room(s): %s", len(reclaimed), ", ".join(reclaimed))
        return reclaimed

    def _discard(self, room: Room, connection_id: str) -> None:
        room.members.discard(connection_id)
        if not room.members:
            room.empty_since = self._clock()

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms
