from __future__ import annotations

import pytest
from fastapi.websockets import WebSocketState

from ghostmedia.realtime import EventRouter, PresenceTracker, build_event

from conftest import DummyWebSocket


class BrokenWebSocket(DummyWebSocket):
    async def send_json(self, payload) -> None:
        raise RuntimeError("socket is gone")


def test_build_event_wraps_payload() -> None:
    assert build_event("pong") == {"type": "pong", "payload": {}}
    assert build_event("onlineUsers", ["a"]) == {"type": "onlineUsers", "payload": ["a"]}


@pytest.mark.anyio("asyncio")
async def test_emit_to_offline_user_is_a_noop() -> None:
    presence = PresenceTracker()
    router = EventRouter(presence)
    bystander = DummyWebSocket()
    await presence.register("bob", bystander)

    delivered = await router.emit_to_user("alice", "newMessage", {"content": "hi"})

    assert delivered == 0
    assert bystander.sent == []


@pytest.mark.anyio("asyncio")
async def test_emit_reaches_every_device_in_the_room_only() -> None:
    presence = PresenceTracker()
    router = EventRouter(presence)
    phone, laptop, other = DummyWebSocket("phone"), DummyWebSocket("laptop"), DummyWebSocket("other")
    await presence.register("alice", phone)
    await presence.register("alice", laptop)
    await presence.register("bob", other)

    delivered = await router.emit_to_user("alice", "friendRequestEvent", {"sender": "bob"})

    assert delivered == 2
    assert phone.sent == [{"type": "friendRequestEvent", "payload": {"sender": "bob"}}]
    assert laptop.sent == phone.sent
    assert other.sent == []


@pytest.mark.anyio("asyncio")
async def test_emit_to_users_deduplicates_recipients() -> None:
    presence = PresenceTracker()
    router = EventRouter(presence)
    socket = DummyWebSocket()
    await presence.register("alice", socket)

    await router.emit_to_users(["alice", "alice", "ghost"], "messageDeleted", {"messageId": 3})

    assert socket.events() == ["messageDeleted"]


@pytest.mark.anyio("asyncio")
async def test_closed_or_failing_sockets_are_skipped() -> None:
    presence = PresenceTracker()
    router = EventRouter(presence)
    healthy, closed, broken = DummyWebSocket("healthy"), DummyWebSocket("closed"), BrokenWebSocket("broken")
    closed.application_state = WebSocketState.DISCONNECTED
    for socket in (healthy, closed, broken):
        await presence.attach(socket)

    delivered = await router.broadcast("postDeleted", {"postId": 9})

    assert delivered == 1
    assert healthy.events() == ["postDeleted"]
    assert closed.sent == []


@pytest.mark.anyio("asyncio")
async def test_events_on_one_connection_keep_emission_order() -> None:
    presence = PresenceTracker()
    router = EventRouter(presence)
    socket = DummyWebSocket()
    await presence.register("alice", socket)

    for name in ("first", "second", "third"):
        await router.emit_to_user("alice", name)

    assert socket.events() == ["first", "second", "third"]
