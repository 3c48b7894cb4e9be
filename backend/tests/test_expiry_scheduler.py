from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from ghostmedia.realtime import EventRouter, ExpiryScheduler, PresenceTracker

from app.models import Message, Post
from app.services import messaging
from app.services.ghosts import GhostReaper, resolve_expiration

from conftest import DummyWebSocket


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _settle(scheduler: ExpiryScheduler) -> None:
    for _ in range(50):
        if not scheduler.pending:
            return
        await asyncio.sleep(0.01)


@pytest.fixture()
def realtime():
    presence = PresenceTracker()
    return presence, EventRouter(presence), ExpiryScheduler()


@pytest.mark.anyio("asyncio")
async def test_past_deadline_fires_on_next_iteration() -> None:
    scheduler = ExpiryScheduler()
    fired: list[tuple[int, str]] = []

    async def on_fire(item_id, kind) -> None:
        fired.append((item_id, kind))

    scheduler.arm(7, "message", _now() - timedelta(minutes=5), on_fire)
    assert fired == []

    await asyncio.sleep(0)
    await _settle(scheduler)

    assert fired == [(7, "message")]
    assert scheduler.pending == 0


@pytest.mark.anyio("asyncio")
async def test_failing_callback_is_logged_and_swallowed(caplog) -> None:
    scheduler = ExpiryScheduler()

    async def on_fire(item_id, kind) -> None:
        raise OperationalError("UPDATE messages", {}, Exception("store unavailable"))

    with caplog.at_level(logging.ERROR):
        scheduler.arm(1, "message", _now(), on_fire)
        await _settle(scheduler)

    assert any("Expiry of message 1 failed" in record.getMessage() for record in caplog.records)


@pytest.mark.anyio("asyncio")
async def test_shutdown_drops_armed_timers(caplog) -> None:
    scheduler = ExpiryScheduler()
    fired: list[int] = []

    async def on_fire(item_id, kind) -> None:
        fired.append(item_id)

    scheduler.arm(1, "post", _now() + timedelta(hours=1), on_fire)
    scheduler.arm(2, "post", _now() + timedelta(hours=2), on_fire)
    assert scheduler.pending == 2

    with caplog.at_level(logging.WARNING):
        await scheduler.shutdown()

    assert fired == []
    assert scheduler.pending == 0
    assert any("Dropping 2 armed expiration(s)" in record.getMessage() for record in caplog.records)


def test_resolve_expiration_defaults_and_normalises() -> None:
    assert resolve_expiration(False, _now(), 60) is None

    naive = datetime(2030, 1, 1, 12, 0)
    assert resolve_expiration(True, naive, 60) == naive.replace(tzinfo=timezone.utc)

    before = _now()
    default = resolve_expiration(True, None, 60)
    assert before + timedelta(seconds=59) <= default <= _now() + timedelta(seconds=61)


@pytest.mark.anyio("asyncio")
async def test_unread_ghost_message_expires_and_notifies_both(realtime, session_factory, make_user) -> None:
    presence, router, scheduler = realtime
    make_user("alice")
    make_user("bob")
    alice, bob = DummyWebSocket("alice"), DummyWebSocket("bob")
    await presence.register("alice", alice)
    await presence.register("bob", bob)

    with session_factory() as session:
        message = Message(
            sender="alice",
            receiver="bob",
            content="boo",
            is_ghost=True,
            expires_at=_now() - timedelta(seconds=5),
        )
        session.add(message)
        session.commit()
        reaper = GhostReaper(session_factory, router, scheduler)
        assert reaper.schedule_message(message) is True
        message_id = message.id

    await _settle(scheduler)

    with session_factory() as session:
        assert session.get(Message, message_id).is_deleted is True

    expected = {
        "type": "messageExpired",
        "payload": {"messageId": message_id, "sender": "alice", "receiver": "bob", "reason": "expired"},
    }
    assert alice.sent == [expected]
    assert bob.sent == [expected]


@pytest.mark.anyio("asyncio")
async def test_ghost_message_read_before_its_timer_is_left_alone(realtime, session_factory) -> None:
    presence, router, scheduler = realtime
    socket = DummyWebSocket()
    await presence.register("alice", socket)
    reaper = GhostReaper(session_factory, router, scheduler)

    with session_factory() as session:
        message = Message(
            sender="alice",
            receiver="bob",
            content="seen",
            is_ghost=True,
            expires_at=_now() + timedelta(seconds=0.2),
        )
        session.add(message)
        session.commit()
        assert reaper.schedule_message(message) is True
        message_id = message.id
    assert scheduler.pending == 1

    with session_factory() as session:
        assert await messaging.mark_messages_read(session, router, [message_id], "bob") == 1

    await _settle(scheduler)

    assert scheduler.pending == 0
    with session_factory() as session:
        stored = session.get(Message, message_id)
        assert stored.is_read is True
        assert stored.is_deleted is False
    assert socket.events() == ["messagesRead"]


@pytest.mark.anyio("asyncio")
async def test_ghost_message_not_yet_due_is_skipped(realtime, session_factory) -> None:
    presence, router, scheduler = realtime

    with session_factory() as session:
        message = Message(
            sender="alice",
            receiver="bob",
            content="later",
            is_ghost=True,
            expires_at=_now() + timedelta(hours=1),
        )
        session.add(message)
        session.commit()
        message_id = message.id

    reaper = GhostReaper(session_factory, router, scheduler)
    assert await reaper.expire_message(message_id) is False


@pytest.mark.anyio("asyncio")
async def test_missing_items_and_plain_content_are_ignored(realtime, session_factory) -> None:
    presence, router, scheduler = realtime
    reaper = GhostReaper(session_factory, router, scheduler)

    assert await reaper.expire_message(404) is False
    assert await reaper.expire_post(404) is False

    with session_factory() as session:
        post = Post(username="alice", content="permanent")
        session.add(post)
        session.commit()
        assert reaper.schedule_post(post) is False
        post_id = post.id

    assert await reaper.expire_post(post_id) is False


@pytest.mark.anyio("asyncio")
async def test_ghost_post_expiry_deletes_and_broadcasts(realtime, session_factory) -> None:
    presence, router, scheduler = realtime
    watcher = DummyWebSocket("watcher")
    await presence.attach(watcher)

    with session_factory() as session:
        post = Post(
            username="alice",
            content="now you see me",
            is_ghost=True,
            expires_at=_now() - timedelta(seconds=1),
        )
        session.add(post)
        session.commit()
        reaper = GhostReaper(session_factory, router, scheduler)
        reaper.schedule_post(post)
        post_id = post.id

    await _settle(scheduler)

    with session_factory() as session:
        assert session.get(Post, post_id) is None
    assert watcher.sent == [
        {"type": "postDeleted", "payload": {"postId": post_id, "username": "alice", "reason": "expired"}}
    ]


@pytest.mark.anyio("asyncio")
async def test_store_failure_at_fire_time_is_logged(realtime, caplog) -> None:
    presence, router, scheduler = realtime

    class FailingSession:
        def get(self, *args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        def close(self) -> None:
            pass

    reaper = GhostReaper(lambda: FailingSession(), router, scheduler)

    with caplog.at_level(logging.ERROR):
        assert await reaper.expire_message(5) is False

    assert any("Failed to expire ghost message 5" in record.getMessage() for record in caplog.records)
