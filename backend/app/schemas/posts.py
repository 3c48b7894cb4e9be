"""Schemas for feed posts."""

from datetime import datetime

from pydantic import AliasChoices, Field, constr

from app.schemas.common import CamelModel


class PostCreate(CamelModel):
    username: constr(strip_whitespace=True, min_length=1)
    content: constr(strip_whitespace=True, min_length=1)
    is_ghost: bool = Field(
        default=False,
        validation_alias=AliasChoices("ghostMode", "isGhost", "is_ghost"),
    )
    expiration_date: datetime | None = None
    user_avatar: str | None = None


class PostUpdate(CamelModel):
    username: constr(strip_whitespace=True, min_length=1)
    content: constr(strip_whitespace=True, min_length=1)
    is_ghost: bool = Field(
        default=False,
        validation_alias=AliasChoices("isGhost", "ghostMode", "is_ghost"),
    )
    expiration_date: datetime | None = None


class PostRead(CamelModel):
    id: int
    username: str
    content: str
    user_avatar: str | None = None
    is_ghost: bool = False
    expires_at: datetime | None = None
    is_edited: bool = False
    created_at: datetime
    updated_at: datetime


class PostResult(CamelModel):
    message: str
    post: PostRead
