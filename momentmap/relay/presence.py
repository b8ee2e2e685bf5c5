"""
Presence tracking: who has announced an identity, and on which connection.

Design:
- One dict keyed by participant id holds the participant record.
- One dict keyed by connection id points back at the participant currently
  bound to that connection.

Re-announcing a participant id from another connection rebinds it; the
superseded connection no longer resolves to anyone. The registry's size is
always the number of bound, still-connected participants.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional

from .helpers import now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParticipantRecord:
    participant_id: str
    nickname: str
    avatar: Optional[str]
    status: Optional[str]
    connection_id: str
    joined_at: int

    def to_wire(self) -> Dict[str, Any]:
        return {
            "participantId": self.participant_id,
            "nickname": self.nickname,
            "avatar": self.avatar,
            "status": self.status,
            "connectionId": self.connection_id,
            "joinedAt": self.joined_at,
        }


class PresenceRegistry:
    def __init__(self, clock: Callable[[], int] = now_ms):
        self._clock = clock
        self._participants: Dict[str, ParticipantRecord] = {}
        self._by_connection: Dict[str, str] = {}

    def announce(
        self,
        participant_id: str,
        *,
        nickname: str,
        avatar: Optional[str],
        status: Optional[str],
        connection_id: str,
    ) -> ParticipantRecord:
        """
        Insert or overwrite the record for participant_id.

        Safe to call repeatedly; joined_at is kept from the first announce.
        """
        # A connection speaks for one participant at a time.
        previous_id = self._by_connection.get(connection_id)
        if previous_id is not None and previous_id != participant_id:
            self.remove(previous_id, connection_id=connection_id)

        existing = self._participants.get(participant_id)
        if existing is None:
            record = ParticipantRecord(
                participant_id=participant_id,
                nickname=nickname,
                avatar=avatar,
                status=status,
                connection_id=connection_id,
                joined_at=self._clock(),
            )
        else:
            if existing.connection_id != connection_id:
                self._by_connection.pop(existing.connection_id, None)
                logger.info(
                    "Participant %s rebound from %s to %s",
                    participant_id,
                    existing.connection_id,
                    connection_id,
                )
            record = replace(
                existing,
                nickname=nickname,
                avatar=avatar,
                status=status,
                connection_id=connection_id,
            )

        self._participants[participant_id] = record
        self._by_connection[connection_id] = participant_id
        return record

    def lookup(self, participant_id: str) -> Optional[ParticipantRecord]:
        return self._participants.get(participant_id)

    def resolve(self, connection_id: str) -> Optional[ParticipantRecord]:
        """Participant currently bound to connection_id, if any."""
        participant_id = self._by_connection.get(connection_id)
        if participant_id is None:
            return None
        return self._participants.get(participant_id)

    def remove(self, participant_id: str, *, connection_id: Optional[str] = None) -> bool:
        """
        Delete a participant record.

        With connection_id, only removes the record while it is still bound to
        that connection. Returns True when something was removed.
        """
        record = self._participants.get(participant_id)
        if record is None:
            return False
        if connection_id is not None and record.connection_id != connection_id:
            return False
        del self._participants[participant_id]
        if self._by_connection.get(record.connection_id) == participant_id:
            del self._by_connection[record.connection_id]
        return True

    def __len__(self) -> int:
        return len(self._participants)
