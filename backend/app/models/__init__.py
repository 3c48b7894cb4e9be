"""Database models package."""

from .base import Base
from .enums import ExpiryKind, FriendRequestAction, FriendshipStatus, UserStatus
from .social import Friendship, Message, Post, User, utcnow

__all__ = [
    "Base",
    "User",
    "Post",
    "Friendship",
    "Message",
    "UserStatus",
    "FriendshipStatus",
    "FriendRequestAction",
    "ExpiryKind",
    "utcnow",
]
