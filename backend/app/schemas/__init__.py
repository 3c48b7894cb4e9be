"""Pydantic schemas for API payloads."""

from .admin import (
    AdminLogin,
    AdminToken,
    PostPage,
    UserDeletionResult,
    UserPage,
    UserStatusResult,
    UserStatusUpdate,
)
from .common import ActionResult, CamelModel
from .friends import (
    ActingUser,
    FriendRead,
    FriendRequestAnswer,
    FriendRequestCreate,
    FriendRequestResult,
    FriendshipStatusRead,
    ReceivedFriendRequestRead,
    SentFriendRequestRead,
)
from .messages import (
    ConversationRead,
    MarkReadRequest,
    MarkReadResult,
    MessageCreate,
    MessageRead,
    TypingNotice,
)
from .posts import PostCreate, PostRead, PostResult, PostUpdate
from .users import (
    LoginRequest,
    LoginResponse,
    ProfileImageUpdate,
    PublicUser,
    RegisterResponse,
    UserCreate,
    UserProfileUpdate,
    UserRead,
)

__all__ = [
    "ActionResult",
    "ActingUser",
    "AdminLogin",
    "AdminToken",
    "CamelModel",
    "ConversationRead",
    "FriendRead",
    "FriendRequestAnswer",
    "FriendRequestCreate",
    "FriendRequestResult",
    "FriendshipStatusRead",
    "LoginRequest",
    "LoginResponse",
    "MarkReadRequest",
    "MarkReadResult",
    "MessageCreate",
    "MessageRead",
    "PostCreate",
    "PostPage",
    "PostRead",
    "PostResult",
    "PostUpdate",
    "ProfileImageUpdate",
    "PublicUser",
    "ReceivedFriendRequestRead",
    "RegisterResponse",
    "SentFriendRequestRead",
    "TypingNotice",
    "UserCreate",
    "UserDeletionResult",
    "UserPage",
    "UserProfileUpdate",
    "UserRead",
    "UserStatusResult",
    "UserStatusUpdate",
]
