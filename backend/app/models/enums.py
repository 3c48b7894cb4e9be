from __future__ import annotations

from enum import Enum


class UserStatus(str, Enum):
    """Moderation state of an account."""

    ACTIVE = "active"
    BANNED = "banned"


class FriendshipStatus(str, Enum):
    """Stored lifecycle states for friend relationships.

    Declined, cancelled and unfriended relationships are deleted rather than
    stored.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"


class FriendRequestAction(str, Enum):
    """Answers a receiver can give to a pending friend request."""

    ACCEPT = "accept"
    DECLINE = "decline"


class ExpiryKind(str, Enum):
    """Kinds of ghost content handled by the expiry scheduler."""

    MESSAGE = "message"
    POST = "post"
