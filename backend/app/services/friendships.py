"""Friend relationship lifecycle: request, respond, cancel and unfriend."""

from __future__ import annotations

import logging
from typing import Iterable

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ghostmedia.realtime import EventRouter

from app.models import FriendRequestAction, Friendship, FriendshipStatus, User
from app.schemas.friends import (
    FriendRead,
    FriendshipStatusRead,
    ReceivedFriendRequestRead,
    SentFriendRequestRead,
)

logger = logging.getLogger(__name__)

FRIEND_STATUS_EVENT = "friendStatusChange"


def find_relationship(db: Session, first: str, second: str) -> Friendship | None:
    """Return the record for the unordered pair, in either direction."""

    low, high = Friendship.normalize_pair(first, second)
    stmt = select(Friendship).where(Friendship.user_low == low, Friendship.user_high == high)
    return db.execute(stmt).scalar_one_or_none()


def _require_friendship(db: Session, friendship_id: int, detail: str) -> Friendship:
    friendship = db.get(Friendship, friendship_id)
    if friendship is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return friendship


def _conflict(existing: Friendship, sender: str) -> HTTPException:
    if existing.status == FriendshipStatus.ACCEPTED:
        detail = {
            "message": "You are already friends with this user",
            "status": FriendshipStatus.ACCEPTED.value,
        }
    elif existing.sender == sender:
        detail = {
            "message": "Friend request already sent",
            "status": FriendshipStatus.PENDING.value,
            "direction": "sent",
        }
    else:
        detail = {
            "message": "This user has already sent you a request",
            "status": FriendshipStatus.PENDING.value,
            "direction": "received",
        }
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


def _ensure_users_exist(db: Session, usernames: Iterable[str]) -> None:
    wanted = set(usernames)
    stmt = select(User.username).where(User.username.in_(wanted))
    found = set(db.execute(stmt).scalars())
    if found != wanted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


async def send_request(
    db: Session, router: EventRouter, sender: str, receiver: str
) -> Friendship:
    if not sender or not receiver:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sender and receiver are required")
    if sender == receiver:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot send a friend request to yourself",
        )
    _ensure_users_exist(db, (sender, receiver))

    existing = find_relationship(db, sender, receiver)
    if existing is not None:
        raise _conflict(existing, sender)

    request = Friendship(sender=sender, receiver=receiver, status=FriendshipStatus.PENDING)
    request.sync_pair()
    db.add(request)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent request for the same pair.
        db.rollback()
        existing = find_relationship(db, sender, receiver)
        if existing is not None:
            raise _conflict(existing, sender) from None
        raise
    db.refresh(request)
    logger.info("Friend request %s: %s -> %s", request.id, sender, receiver)

    await router.emit_to_user(
        receiver,
        "friendRequestEvent",
        {
            "sender": sender,
            "receiver": receiver,
            "message": f"{sender} sent you a friend request",
            "requestId": request.id,
        },
    )
    await router.emit_to_user(
        sender,
        "friendRequestSent",
        {"receiver": receiver, "requestId": request.id},
    )
    return request


async def respond_to_request(
    db: Session,
    router: EventRouter,
    request_id: int,
    acting_user: str,
    action: str,
) -> str:
    """Accept or decline a pending request; returns the resulting status."""

    if not acting_user or not action:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required information")
    request = _require_friendship(db, request_id, "Friend request not found")
    if request.receiver != acting_user:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to respond to this request",
        )
    try:
        choice = FriendRequestAction(action)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action") from None
    if request.status != FriendshipStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Friend request is no longer pending")

    sender, receiver = request.sender, request.receiver
    if choice is FriendRequestAction.ACCEPT:
        request.status = FriendshipStatus.ACCEPTED
        db.add(request)
        db.commit()
        result = "accepted"
        sender_message = f"{receiver} accepted your friend request"
        receiver_message = f"You accepted {sender}'s friend request"
    else:
        db.delete(request)
        db.commit()
        result = "declined"
        sender_message = f"{receiver} declined your friend request"
        receiver_message = f"You declined {sender}'s friend request"
    logger.info("Friend request %s %s by %s", request_id, result, acting_user)

    base = {"usernames": [sender, receiver], "action": result, "friendshipId": request_id}
    await router.emit_to_user(sender, FRIEND_STATUS_EVENT, {**base, "message": sender_message})
    await router.emit_to_user(receiver, FRIEND_STATUS_EVENT, {**base, "message": receiver_message})
    return result


def cancel_request(db: Session, request_id: int, acting_user: str) -> None:
    if not acting_user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required information")
    request = _require_friendship(db, request_id, "Friend request not found")
    if request.sender != acting_user:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to cancel this request",
        )
    if request.status != FriendshipStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only pending requests can be cancelled",
        )
    db.delete(request)
    db.commit()
    logger.info("Friend request %s cancelled by %s", request_id, acting_user)


async def unfriend(
    db: Session, router: EventRouter, friendship_id: int, acting_user: str
) -> str:
    """Remove an accepted friendship; returns the former friend's username."""

    if not acting_user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required information")
    friendship = _require_friendship(db, friendship_id, "Friendship not found")
    if acting_user not in (friendship.sender, friendship.receiver):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to remove this friendship",
        )
    if friendship.status != FriendshipStatus.ACCEPTED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This is not an active friendship",
        )

    other = friendship.other_party(acting_user)
    db.delete(friendship)
    db.commit()
    logger.info("Friendship %s removed by %s", friendship_id, acting_user)

    base = {"usernames": [acting_user, other], "action": "unfriended", "friendshipId": friendship_id}
    await router.emit_to_user(
        acting_user,
        FRIEND_STATUS_EVENT,
        {**base, "message": f"You removed {other} from your friends list"},
    )
    await router.emit_to_user(
        other,
        FRIEND_STATUS_EVENT,
        {**base, "message": f"{acting_user} removed you from their friends list"},
    )
    return other


def query_status(db: Session, current_user: str, other_user: str) -> FriendshipStatusRead:
    """Describe the relationship as seen by *current_user*."""

    if not current_user or not other_user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Both usernames are required")
    friendship = find_relationship(db, current_user, other_user)
    if friendship is None:
        return FriendshipStatusRead(status="none")
    direction = "none"
    if friendship.status == FriendshipStatus.PENDING:
        direction = "sent" if friendship.sender == current_user else "received"
    return FriendshipStatusRead(
        status=friendship.status.value,
        direction=direction,
        updated_at=friendship.updated_at,
        friendship_id=friendship.id,
    )


def _profile_pictures(db: Session, usernames: Iterable[str]) -> dict[str, str]:
    wanted = set(usernames)
    if not wanted:
        return {}
    stmt = select(User.username, User.profile_picture).where(User.username.in_(wanted))
    return {username: picture or "" for username, picture in db.execute(stmt)}


def list_received_requests(db: Session, username: str) -> list[ReceivedFriendRequestRead]:
    stmt = (
        select(Friendship)
        .where(Friendship.receiver == username, Friendship.status == FriendshipStatus.PENDING)
        .order_by(Friendship.created_at.asc(), Friendship.id.asc())
    )
    requests = db.execute(stmt).scalars().all()
    pictures = _profile_pictures(db, (request.sender for request in requests))
    return [
        ReceivedFriendRequestRead(
            id=request.id,
            sender=request.sender,
            created_at=request.created_at,
            profile_picture=pictures.get(request.sender, ""),
        )
        for request in requests
    ]


def list_sent_requests(db: Session, username: str) -> list[SentFriendRequestRead]:
    stmt = (
        select(Friendship)
        .where(Friendship.sender == username, Friendship.status == FriendshipStatus.PENDING)
        .order_by(Friendship.created_at.asc(), Friendship.id.asc())
    )
    requests = db.execute(stmt).scalars().all()
    pictures = _profile_pictures(db, (request.receiver for request in requests))
    return [
        SentFriendRequestRead(
            id=request.id,
            receiver=request.receiver,
            created_at=request.created_at,
            profile_picture=pictures.get(request.receiver, ""),
        )
        for request in requests
    ]


def list_friends(db: Session, username: str) -> list[FriendRead]:
    stmt = select(Friendship).where(
        Friendship.status == FriendshipStatus.ACCEPTED,
        or_(Friendship.sender == username, Friendship.receiver == username),
    )
    links = db.execute(stmt).scalars().all()
    others = {link.id: link.other_party(username) for link in links}
    pictures = _profile_pictures(db, others.values())
    friends = [
        FriendRead(
            id=link.id,
            username=others[link.id],
            profile_picture=pictures.get(others[link.id], ""),
            since=link.updated_at,
        )
        for link in links
    ]
    friends.sort(key=lambda friend: friend.username.lower())
    return friends
