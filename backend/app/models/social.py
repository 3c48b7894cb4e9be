from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SAEnum,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import FriendshipStatus, UserStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Application user. Other records refer to users by username."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    profile_picture: Mapped[str] = mapped_column(Text, default="", nullable=False)
    status: Mapped[UserStatus] = mapped_column(
        SAEnum(
            UserStatus,
            name="user_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        default=UserStatus.ACTIVE,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class Post(Base):
    """Feed entry owned by its author."""

    __tablename__ = "posts"
    __table_args__ = (Index("ix_posts_username_created", "username", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    user_avatar: Mapped[str | None] = mapped_column(Text)
    is_ghost: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_edited: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class Friendship(Base):
    """Relationship between two users.

    ``sender``/``receiver`` keep who asked whom; ``user_low``/``user_high``
    hold the same two names in sorted order and are unique together, so a
    pair can hold only one record.
    """

    __tablename__ = "friendships"
    __table_args__ = (UniqueConstraint("user_low", "user_high", name="uq_friendship_pair"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    sender: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    receiver: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_low: Mapped[str] = mapped_column(String(64), nullable=False)
    user_high: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[FriendshipStatus] = mapped_column(
        SAEnum(
            FriendshipStatus,
            name="friendship_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        default=FriendshipStatus.PENDING,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    @staticmethod
    def normalize_pair(first: str, second: str) -> tuple[str, str]:
        return (first, second) if first < second else (second, first)

    def sync_pair(self) -> None:
        self.user_low, self.user_high = self.normalize_pair(self.sender, self.receiver)

    def other_party(self, username: str) -> str:
        return self.receiver if self.sender == username else self.sender


class Message(Base):
    """Direct message between two users."""

    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_sender_receiver", "sender", "receiver"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    sender: Mapped[str] = mapped_column(String(64), nullable=False)
    receiver: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_ghost: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def involves(self, username: str) -> bool:
        return username in (self.sender, self.receiver)
