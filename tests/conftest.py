from __future__ import annotations

from typing import Callable, List

import pytest

from momentmap.relay.content import ContentStore
from momentmap.relay.direct import DirectRouter
from momentmap.relay.dispatcher import EventRelay
from momentmap.relay.presence import PresenceRegistry
from momentmap.relay.rooms import RoomDirectory
from momentmap.relay.session import ConnectionSession, SessionTable

T0 = 1_700_000_000_000


class FakeClock:
    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeTimer:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Collects timers instead of arming them; tests fire them explicitly."""

    def __init__(self):
        self.timers: List[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def fire_all(self) -> None:
        for timer in list(self.timers):
            if not timer.cancelled:
                timer.callback()

    @property
    def pending(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]


def drain(session: ConnectionSession) -> list[dict]:
    events = []
    while not session.outbound.empty():
        events.append(session.outbound.get_nowait())
    return events


def of_type(events: list[dict], kind: str) -> list:
    return [e["data"] for e in events if e["type"] == kind]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def presence(clock) -> PresenceRegistry:
    return PresenceRegistry(clock=clock)


@pytest.fixture
def content(clock, scheduler) -> ContentStore:
    return ContentStore(clock=clock, scheduler=scheduler)


@pytest.fixture
def rooms(presence, clock) -> RoomDirectory:
    return RoomDirectory(presence, clock=clock, idle_grace_seconds=30)


@pytest.fixture
def relay(presence, content, rooms, clock) -> EventRelay:
    return EventRelay(
        sessions=SessionTable(),
        presence=presence,
        content=content,
        rooms=rooms,
        direct=DirectRouter(presence, clock=clock),
    )
