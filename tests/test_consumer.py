import asyncio

import pytest
import pytest_asyncio
from channels.testing import WebsocketCommunicator

from momentmap.relay.config import RelaySettings
from momentmap.relay.content import ContentStore
from momentmap.relay.consumers import RelayConsumer
from momentmap.relay.runtime import build_relay


FAST_SWEEP = RelaySettings(RELAY_SWEEP_INTERVAL_SECONDS=0.2)


class LostTimer:
    def cancel(self):
        pass


@pytest_asyncio.fixture
async def live_relay():
    relay = build_relay(FAST_SWEEP)
    yield relay
    relay.stop_maintenance()


@pytest_asyncio.fixture
async def relay_without_timers():
    relay = build_relay(FAST_SWEEP, content=ContentStore(scheduler=lambda delay, callback: LostTimer()))
    yield relay
    relay.stop_maintenance()


async def open_client(relay, participant_id=None, nickname="anon"):
    client = WebsocketCommunicator(RelayConsumer.as_asgi(relay=relay), "/ws/relay/")
    connected, _ = await client.connect()
    assert connected
    hello = await client.receive_json_from()
    assert hello["type"] == "connected"
    if participant_id:
        await client.send_json_to(
            {"type": "announce", "data": {"participantId": participant_id, "nickname": nickname}}
        )
    return client


async def next_of(client, kind, timeout=2):
    while True:
        event = await client.receive_json_from(timeout=timeout)
        if event["type"] == kind:
            return event["data"]


@pytest.mark.asyncio
async def test_announce_publish_and_timer_expiry(live_relay):
    alice = await open_client(live_relay, "u1", "Alice")
    assert await next_of(alice, "presenceCount") == 1
    assert await next_of(alice, "contentSnapshot") == []

    await alice.send_json_to({"type": "publishContent", "data": {"title": "sunset", "duration": 1}})
    item = await next_of(alice, "contentPublished")
    assert item["title"] == "sunset"

    assert await next_of(alice, "contentExpired", timeout=3) == item["id"]
    assert live_relay.content.active_snapshot() == []
    await alice.disconnect()


@pytest.mark.asyncio
async def test_sweep_backstop_expires_when_timer_is_lost(relay_without_timers):
    alice = await open_client(relay_without_timers, "u1")
    await alice.send_json_to({"type": "publishContent", "data": {"title": "lost", "duration": 1}})
    item = await next_of(alice, "contentPublished")
    assert [i.id for i in relay_without_timers.content.active_snapshot()] == [item["id"]]

    assert await next_of(alice, "contentExpired", timeout=3) == item["id"]
    assert len(relay_without_timers.content) == 0
    await alice.disconnect()


@pytest.mark.asyncio
async def test_room_and_direct_messages_between_clients(live_relay):
    alice = await open_client(live_relay, "u1", "Alice")
    bob = await open_client(live_relay, "u2", "Bob")

    await alice.send_json_to({"type": "joinRoom", "data": {"roomId": "beach"}})
    await next_of(alice, "roomHistory")
    await bob.send_json_to({"type": "joinRoom", "data": {"roomId": "beach"}})
    await next_of(bob, "roomHistory")
    assert await next_of(alice, "roomMemberCount") == {"roomId": "beach", "count": 1}
    assert await next_of(alice, "roomMemberCount") == {"roomId": "beach", "count": 2}

    await bob.send_json_to({"type": "roomMessage", "data": {"roomId": "beach", "content": "waves!"}})
    posted = await next_of(alice, "roomMessagePosted")
    assert (posted["nickname"], posted["content"]) == ("Bob", "waves!")

    await alice.send_json_to({"type": "directMessage", "data": {"targetParticipantId": "u2", "content": "hi bob"}})
    received = await next_of(bob, "directMessageDelivered")
    echoed = await next_of(alice, "directMessageDelivered")
    assert received == echoed
    assert received["from"] == "u1"

    await bob.disconnect()
    assert await next_of(alice, "roomMemberCount") == {"roomId": "beach", "count": 1}
    await alice.disconnect()


@pytest.mark.asyncio
async def test_garbage_frames_are_ignored(live_relay):
    client = await open_client(live_relay)
    await client.send_to(text_data="not json")
    await client.send_to(text_data="[1, 2]")
    await client.send_json_to({"type": "roomMessage", "data": {"roomId": "x", "content": "hi"}})
    assert await client.receive_nothing(timeout=0.2)
    await client.disconnect()


@pytest.mark.asyncio
async def test_disconnect_releases_presence(live_relay):
    alice = await open_client(live_relay, "u1")
    bob = await open_client(live_relay, "u2")
    await next_of(alice, "presenceCount")

    await bob.disconnect()
    await asyncio.sleep(0)
    assert live_relay.presence.lookup("u2") is None
    assert len(live_relay.sessions) == 1
    await alice.disconnect()


@pytest.mark.asyncio
async def test_non_finite_duration_keeps_connection_usable(live_relay):
    alice = await open_client(live_relay, "u1")
    await next_of(alice, "contentSnapshot")

    await alice.send_to(text_data='{"type":"publishContent","data":{"title":"x","duration":Infinity}}')
    await alice.send_to(text_data='{"type":"publishContent","data":{"title":"x","duration":1e400}}')
    await alice.send_json_to({"type": "joinRoom", "data": {"roomId": "plaza"}})
    assert (await next_of(alice, "roomHistory"))["messages"] == []
    assert len(live_relay.content) == 0

    await alice.disconnect()
    await asyncio.sleep(0)
    assert live_relay.presence.lookup("u1") is None
    assert len(live_relay.presence) == 0
    assert len(live_relay.sessions) == 0


@pytest.mark.asyncio
async def test_failing_handler_does_not_drop_connection(live_relay, monkeypatch):
    def broken_publish(request):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(live_relay.content, "publish", broken_publish)
    alice = await open_client(live_relay, "u1")
    await next_of(alice, "contentSnapshot")

    await alice.send_json_to({"type": "publishContent", "data": {"title": "x", "duration": 5}})
    await alice.send_json_to({"type": "joinRoom", "data": {"roomId": "plaza"}})
    assert (await next_of(alice, "roomHistory"))["roomId"] == "plaza"

    await alice.disconnect()
    await asyncio.sleep(0)
    assert len(live_relay.presence) == 0
    assert len(live_relay.sessions) == 0


@pytest.mark.asyncio
async def test_project_routing_serves_relay():
    from momentmap.asgi import application
    from momentmap.relay.runtime import get_relay

    client = WebsocketCommunicator(application, "/ws/relay/")
    connected, _ = await client.connect()
    assert connected
    assert (await client.receive_json_from())["type"] == "connected"
    await client.disconnect()
    get_relay().stop_maintenance()
