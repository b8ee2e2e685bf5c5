"""
One-to-one messages routed by participant id.

Delivery only reaches a target that is connected right now; nothing is queued
for offline participants. The router can also keep a per-pair conversation log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .helpers import conversation_key, now_ms
from .models import DirectMessage
from .presence import PresenceRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delivery:
    message: DirectMessage
    sender_connection_id: str
    # None when the target is offline.
    target_connection_id: Optional[str]


class DirectRouter:
    def __init__(
        self,
        presence: PresenceRegistry,
        *,
        keep_history: bool = True,
        clock: Callable[[], int] = now_ms,
    ):
        self._presence = presence
        self._keep_history = keep_history
        self._clock = clock
        self._conversations: Dict[str, List[DirectMessage]] = {}

    def send(self, sender_connection_id: str, target_participant_id: str, content: str) -> Optional[Delivery]:
        """
        Build a direct message from the participant bound to sender_connection_id.

        Returns None when the sender has not announced an identity.
        """
        sender = self._presence.resolve(sender_connection_id)
        if sender is None:
            logger.debug("Direct message from unbound connection %s dropped", sender_connection_id)
            return None

        message = DirectMessage(
            sender=sender.participant_id,
            recipient=target_participant_id,
            nickname=sender.nickname,
            avatar=sender.avatar,
            content=content,
            timestamp=self._clock(),
        )
        if self._keep_history:
            key = conversation_key(sender.participant_id, target_participant_id)
            self._conversations.setdefault(key, []).append(message)

        target = self._presence.lookup(target_participant_id)
        return Delivery(
            message=message,
            sender_connection_id=sender_connection_id,
            target_connection_id=target.connection_id if target else None,
        )

    def history(self, a: str, b: str) -> List[DirectMessage]:
        return list(self._conversations.get(conversation_key(a, b), ()))
