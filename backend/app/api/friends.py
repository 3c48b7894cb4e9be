"""Friend request and friendship endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ghostmedia.realtime import EventRouter

from app.api.deps import get_event_router
from app.database import get_db
from app.schemas import (
    ActingUser,
    ActionResult,
    FriendRead,
    FriendRequestAnswer,
    FriendRequestCreate,
    FriendRequestResult,
    FriendshipStatusRead,
    ReceivedFriendRequestRead,
    SentFriendRequestRead,
)
from app.services import friendships

router = APIRouter(tags=["friends"])


@router.post(
    "/sendFriendRequest",
    response_model=FriendRequestResult,
    status_code=status.HTTP_201_CREATED,
)
async def send_friend_request(
    payload: FriendRequestCreate,
    db: Session = Depends(get_db),
    events: EventRouter = Depends(get_event_router),
) -> FriendRequestResult:
    request = await friendships.send_request(db, events, payload.sender, payload.receiver)
    return FriendRequestResult(
        message="Friend request sent successfully",
        status=request.status.value,
        request_id=request.id,
    )


@router.post("/respondToFriendRequest/{request_id}", response_model=FriendRequestResult)
async def respond_to_friend_request(
    request_id: int,
    payload: FriendRequestAnswer,
    db: Session = Depends(get_db),
    events: EventRouter = Depends(get_event_router),
) -> FriendRequestResult:
    result = await friendships.respond_to_request(
        db, events, request_id, payload.username, payload.action
    )
    return FriendRequestResult(
        message=f"Friend request {result}",
        status=result,
        request_id=request_id,
    )


@router.delete("/cancelFriendRequest/{request_id}", response_model=ActionResult)
def cancel_friend_request(
    request_id: int,
    payload: ActingUser,
    db: Session = Depends(get_db),
) -> ActionResult:
    friendships.cancel_request(db, request_id, payload.username)
    return ActionResult(message="Friend request cancelled successfully")


@router.delete("/unfriend/{friendship_id}", response_model=ActionResult)
async def remove_friend(
    friendship_id: int,
    payload: ActingUser,
    db: Session = Depends(get_db),
    events: EventRouter = Depends(get_event_router),
) -> ActionResult:
    await friendships.unfriend(db, events, friendship_id, payload.username)
    return ActionResult(message="Friend removed successfully")


@router.get("/checkFriendshipStatus/{current_user}/{other_user}", response_model=FriendshipStatusRead)
def check_friendship_status(
    current_user: str,
    other_user: str,
    db: Session = Depends(get_db),
) -> FriendshipStatusRead:
    return friendships.query_status(db, current_user, other_user)


@router.get("/friendRequests/{username}", response_model=list[ReceivedFriendRequestRead])
def list_received_requests(username: str, db: Session = Depends(get_db)) -> list[ReceivedFriendRequestRead]:
    return friendships.list_received_requests(db, username)


@router.get("/sentFriendRequests/{username}", response_model=list[SentFriendRequestRead])
def list_sent_requests(username: str, db: Session = Depends(get_db)) -> list[SentFriendRequestRead]:
    return friendships.list_sent_requests(db, username)


@router.get("/friends/{username}", response_model=list[FriendRead])
def list_friends(username: str, db: Session = Depends(get_db)) -> list[FriendRead]:
    return friendships.list_friends(db, username)
