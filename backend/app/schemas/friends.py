"""Schemas for friend requests and friendships."""

from datetime import datetime

from pydantic import constr

from app.schemas.common import CamelModel


class FriendRequestCreate(CamelModel):
    sender: constr(strip_whitespace=True, min_length=1)
    receiver: constr(strip_whitespace=True, min_length=1)


class FriendRequestAnswer(CamelModel):
    action: constr(strip_whitespace=True, min_length=1)
    username: constr(strip_whitespace=True, min_length=1)


class ActingUser(CamelModel):
    """Identifies the user performing a delete-style action."""

    username: constr(strip_whitespace=True, min_length=1)


class FriendRequestResult(CamelModel):
    message: str
    status: str
    request_id: int | None = None


class FriendshipStatusRead(CamelModel):
    """Relationship between two users as seen by the first of them."""

    status: str
    direction: str = "none"
    updated_at: datetime | None = None
    friendship_id: int | None = None


class ReceivedFriendRequestRead(CamelModel):
    id: int
    sender: str
    created_at: datetime
    profile_picture: str = ""


class SentFriendRequestRead(CamelModel):
    id: int
    receiver: str
    created_at: datetime
    profile_picture: str = ""


class FriendRead(CamelModel):
    id: int
    username: str
    profile_picture: str = ""
    since: datetime
