"""Friend request lifecycle exercised directly against the service layer."""

from __future__ import annotations

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from ghostmedia.realtime import EventRouter, PresenceTracker

from app.models import Friendship, FriendshipStatus
from app.services import friendships

from conftest import DummyWebSocket


@pytest.fixture()
def people(make_user) -> None:
    for name in ("alice", "bob", "carol"):
        make_user(name)


@pytest.fixture()
async def wired():
    presence = PresenceTracker()
    sockets = {name: DummyWebSocket(name) for name in ("alice", "bob")}
    for name, socket in sockets.items():
        await presence.register(name, socket)
    return EventRouter(presence), sockets


def _records(db_session) -> list[Friendship]:
    return list(db_session.execute(select(Friendship)).scalars())


@pytest.mark.anyio("asyncio")
async def test_send_request_creates_pending_and_notifies_both(db_session, people, wired) -> None:
    router, sockets = wired

    request = await friendships.send_request(db_session, router, "alice", "bob")

    assert request.status == FriendshipStatus.PENDING
    assert (request.user_low, request.user_high) == ("alice", "bob")
    assert sockets["bob"].sent == [
        {
            "type": "friendRequestEvent",
            "payload": {
                "sender": "alice",
                "receiver": "bob",
                "message": "alice sent you a friend request",
                "requestId": request.id,
            },
        }
    ]
    assert sockets["alice"].events() == ["friendRequestSent"]


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize(
    "first, second, expected",
    [
        ("alice", "bob", {"status": "pending", "direction": "sent"}),
        ("bob", "alice", {"status": "pending", "direction": "received"}),
    ],
)
async def test_duplicate_request_conflicts_in_either_direction(
    db_session, people, wired, first, second, expected
) -> None:
    router, _ = wired
    await friendships.send_request(db_session, router, "alice", "bob")

    with pytest.raises(HTTPException) as excinfo:
        await friendships.send_request(db_session, router, first, second)

    assert excinfo.value.status_code == 409
    for key, value in expected.items():
        assert excinfo.value.detail[key] == value
    assert len(_records(db_session)) == 1


@pytest.mark.anyio("asyncio")
async def test_request_between_friends_reports_already_friends(db_session, people, wired) -> None:
    router, _ = wired
    request = await friendships.send_request(db_session, router, "alice", "bob")
    await friendships.respond_to_request(db_session, router, request.id, "bob", "accept")

    with pytest.raises(HTTPException) as excinfo:
        await friendships.send_request(db_session, router, "bob", "alice")

    assert excinfo.value.status_code == 409
    assert excinfo.value.detail["status"] == "accepted"


@pytest.mark.anyio("asyncio")
async def test_self_and_unknown_targets_are_rejected(db_session, people, wired) -> None:
    router, _ = wired

    with pytest.raises(HTTPException) as self_request:
        await friendships.send_request(db_session, router, "alice", "alice")
    with pytest.raises(HTTPException) as unknown:
        await friendships.send_request(db_session, router, "alice", "zed")

    assert self_request.value.status_code == 400
    assert unknown.value.status_code == 404


@pytest.mark.anyio("asyncio")
async def test_only_the_receiver_may_respond(db_session, people, wired) -> None:
    router, sockets = wired
    request = await friendships.send_request(db_session, router, "alice", "bob")

    for intruder in ("alice", "carol"):
        with pytest.raises(HTTPException) as excinfo:
            await friendships.respond_to_request(db_session, router, request.id, intruder, "accept")
        assert excinfo.value.status_code == 403

    db_session.refresh(request)
    assert request.status == FriendshipStatus.PENDING
    assert "friendStatusChange" not in sockets["alice"].events()


@pytest.mark.anyio("asyncio")
async def test_accept_notifies_both_parties_and_is_final(db_session, people, wired) -> None:
    router, sockets = wired
    request = await friendships.send_request(db_session, router, "alice", "bob")

    result = await friendships.respond_to_request(db_session, router, request.id, "bob", "accept")

    assert result == "accepted"
    alice_event = sockets["alice"].sent[-1]
    bob_event = sockets["bob"].sent[-1]
    assert alice_event["type"] == bob_event["type"] == "friendStatusChange"
    assert alice_event["payload"]["message"] == "bob accepted your friend request"
    assert bob_event["payload"]["action"] == "accepted"

    with pytest.raises(HTTPException) as excinfo:
        await friendships.respond_to_request(db_session, router, request.id, "bob", "decline")
    assert excinfo.value.status_code == 400


@pytest.mark.anyio("asyncio")
async def test_decline_removes_the_request(db_session, people, wired) -> None:
    router, _ = wired
    request = await friendships.send_request(db_session, router, "alice", "bob")

    assert await friendships.respond_to_request(db_session, router, request.id, "bob", "decline") == "declined"

    assert _records(db_session) == []
    assert friendships.query_status(db_session, "alice", "bob").status == "none"


@pytest.mark.anyio("asyncio")
async def test_invalid_action_is_a_validation_error(db_session, people, wired) -> None:
    router, _ = wired
    request = await friendships.send_request(db_session, router, "alice", "bob")

    with pytest.raises(HTTPException) as excinfo:
        await friendships.respond_to_request(db_session, router, request.id, "bob", "maybe")

    assert excinfo.value.status_code == 400


@pytest.mark.anyio("asyncio")
async def test_cancel_is_limited_to_the_sender_of_a_pending_request(db_session, people, wired) -> None:
    router, _ = wired
    request = await friendships.send_request(db_session, router, "alice", "bob")
    request_id = request.id

    with pytest.raises(HTTPException) as excinfo:
        friendships.cancel_request(db_session, request_id, "bob")
    assert excinfo.value.status_code == 403

    friendships.cancel_request(db_session, request_id, "alice")
    assert _records(db_session) == []

    with pytest.raises(HTTPException) as missing:
        friendships.cancel_request(db_session, request_id, "alice")
    assert missing.value.status_code == 404


@pytest.mark.anyio("asyncio")
async def test_unfriend_requires_an_accepted_link_and_a_participant(db_session, people, wired) -> None:
    router, sockets = wired
    request = await friendships.send_request(db_session, router, "alice", "bob")

    with pytest.raises(HTTPException) as pending:
        await friendships.unfriend(db_session, router, request.id, "alice")
    assert pending.value.status_code == 400

    await friendships.respond_to_request(db_session, router, request.id, "bob", "accept")
    with pytest.raises(HTTPException) as outsider:
        await friendships.unfriend(db_session, router, request.id, "carol")
    assert outsider.value.status_code == 403

    assert await friendships.unfriend(db_session, router, request.id, "bob") == "alice"
    assert _records(db_session) == []
    assert sockets["alice"].sent[-1]["payload"]["action"] == "unfriended"

    # A fresh request is possible once the friendship is gone.
    again = await friendships.send_request(db_session, router, "bob", "alice")
    assert again.status == FriendshipStatus.PENDING


@pytest.mark.anyio("asyncio")
async def test_status_and_listings_follow_the_viewer(db_session, people, wired) -> None:
    router, _ = wired
    request = await friendships.send_request(db_session, router, "alice", "bob")
    await friendships.send_request(db_session, router, "carol", "alice")

    assert friendships.query_status(db_session, "alice", "bob").direction == "sent"
    assert friendships.query_status(db_session, "bob", "alice").direction == "received"
    assert [item.sender for item in friendships.list_received_requests(db_session, "alice")] == ["carol"]
    assert [item.receiver for item in friendships.list_sent_requests(db_session, "alice")] == ["bob"]

    await friendships.respond_to_request(db_session, router, request.id, "bob", "accept")
    for first, second in (("alice", "bob"), ("bob", "alice")):
        assert friendships.query_status(db_session, first, second).status == "accepted"
    status = friendships.query_status(db_session, "bob", "alice")
    assert status.friendship_id == request.id
    assert [friend.username for friend in friendships.list_friends(db_session, "alice")] == ["bob"]
    assert [friend.username for friend in friendships.list_friends(db_session, "bob")] == ["alice"]


def test_pair_normalization_is_order_independent() -> None:
    assert Friendship.normalize_pair("bob", "alice") == Friendship.normalize_pair("alice", "bob")


@pytest.mark.anyio("asyncio")
async def test_pairs_that_only_look_alike_are_independent(db_session, make_user, wired) -> None:
    router, _ = wired
    for name in ("a|b", "c", "a", "b|c"):
        make_user(name)

    await friendships.send_request(db_session, router, "a|b", "c")
    second = await friendships.send_request(db_session, router, "a", "b|c")

    assert second.status == FriendshipStatus.PENDING
    assert len(_records(db_session)) == 2
    assert friendships.query_status(db_session, "b|c", "a").direction == "received"
    assert friendships.query_status(db_session, "a", "c").status == "none"
