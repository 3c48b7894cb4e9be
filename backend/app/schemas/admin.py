"""Schemas for moderation endpoints."""

from pydantic import BaseModel

from app.models.enums import UserStatus
from app.schemas.common import CamelModel
from app.schemas.posts import PostRead
from app.schemas.users import UserRead


class AdminLogin(BaseModel):
    username: str
    password: str


class AdminToken(BaseModel):
    message: str
    success: bool = True
    token: str


class UserStatusUpdate(BaseModel):
    status: UserStatus


class UserStatusResult(BaseModel):
    message: str
    user: UserRead


class UserPage(CamelModel):
    users: list[UserRead]
    current_page: int
    total_pages: int
    total_users: int


class PostPage(CamelModel):
    posts: list[PostRead]
    current_page: int
    total_pages: int
    total_posts: int


class UserDeletionResult(CamelModel):
    message: str
    user_id: int
    username: str
    posts_deleted: int
    friendships_deleted: int
    messages_deleted: int
