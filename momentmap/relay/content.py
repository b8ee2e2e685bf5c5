"""
Ephemeral, location-anchored content items ("bubbles").

Each public item gets a one-shot expiry timer when it is published. A periodic
sweep removes anything whose window has closed but whose timer has not fired
(lost or delayed callbacks). Both paths go through `remove`, which is a no-op
for an id that is already gone, so every item is announced as expired at most
once.

Validity policy, shared by `active_snapshot` and `sweep`:
- private items never expire and are always part of the snapshot;
- a public item is active while `now < created_at + duration * 1000`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from .helpers import new_id, now_ms
from .models import ContentItem, PublishContentRequest

logger = logging.getLogger(__name__)

ExpiryListener = Callable[[ContentItem], None]


class TimerHandle(Protocol):
    def cancel(self) -> Any: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def loop_scheduler(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Schedule callback on the running event loop after `delay` seconds."""
    return asyncio.get_running_loop().call_later(delay, callback)


class ContentStore:
    def __init__(
        self,
        *,
        clock: Callable[[], int] = now_ms,
        scheduler: Scheduler = loop_scheduler,
    ):
        self._clock = clock
        self._scheduler = scheduler
        # Insertion ordered: publish order is snapshot order.
        self._items: Dict[str, ContentItem] = {}
        self._timers: Dict[str, TimerHandle] = {}
        self._listeners: List[ExpiryListener] = []

    def subscribe(self, listener: ExpiryListener) -> None:
        """Register a callback invoked once for every expired item."""
        self._listeners.append(listener)

    def publish(self, request: PublishContentRequest) -> ContentItem:
        """Stamp id and creation time, store the item and arm its expiry timer."""
        item = ContentItem(
            id=new_id(),
            title=request.title,
            body=request.body,
            location=request.location,
            author=request.author,
            created_at=self._clock(),
            duration=request.duration,
            is_private=request.is_private,
        )
        self._items[item.id] = item
        if not item.is_private:
            delay = max(0, item.expires_at - self._clock()) / 1000
            self._timers[item.id] = self._scheduler(delay, lambda: self._expire(item.id))
        return item

    def get(self, item_id: str) -> Optional[ContentItem]:
        return self._items.get(item_id)

    def remove(self, item_id: str) -> Optional[ContentItem]:
        """Remove an item; returns None if it was already removed."""
        item = self._items.pop(item_id, None)
        timer = self._timers.pop(item_id, None)
        if timer is not None:
            timer.cancel()
        return item

    def is_active(self, item: ContentItem, now: int) -> bool:
        return item.is_private or item.expires_at > now

    def active_snapshot(self, now: Optional[int] = None) -> List[ContentItem]:
        now = self._clock() if now is None else now
        return [item for item in self._items.values() if self.is_active(item, now)]

    def sweep(self, now: Optional[int] = None) -> List[ContentItem]:
        """Remove every public item whose window has closed. Returns what was removed."""
        now = self._clock() if now is None else now
        stale = [item.id for item in self._items.values() if not self.is_active(item, now)]
        removed: List[ContentItem] = []
        for item_id in stale:
            item = self.remove(item_id)
            if item is not None:
                removed.append(item)
                self._notify(item)
        if removed:
            logger.info("Sweep removed %d expired item(s)", len(removed))
        return removed

    def _expire(self, item_id: str) -> None:
        # The timer has fired; its handle is spent.
        self._timers.pop(item_id, None)
        item = self.remove(item_id)
        if item is None:
            return
        logger.info("Content expired: %r (%s)", item.title, item.id)
        self._notify(item)

    def _notify(self, item: ContentItem) -> None:
        for listener in self._listeners:
            try:
                listener(item)
            except Exception:
                logger.exception("Expiry listener failed for %s", item.id)

    def __len__(self) -> int:
        return len(self._items)
