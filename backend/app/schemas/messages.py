"""Schemas for direct messages."""

from datetime import datetime

from pydantic import AliasChoices, Field, constr

from app.schemas.common import CamelModel


class MessageCreate(CamelModel):
    """Payload shared by the REST endpoint and the ``sendMessage`` event."""

    sender: constr(strip_whitespace=True, min_length=1)
    receiver: constr(strip_whitespace=True, min_length=1) = Field(
        validation_alias=AliasChoices("receiver", "recipient"),
    )
    content: constr(strip_whitespace=True, min_length=1)
    is_ghost: bool = False
    expiration_date: datetime | None = None


class MessageRead(CamelModel):
    id: int
    sender: str
    receiver: str
    content: str
    is_read: bool = False
    read_at: datetime | None = None
    is_deleted: bool = False
    is_ghost: bool = False
    expires_at: datetime | None = None
    created_at: datetime


class ConversationRead(CamelModel):
    """Latest message and unread count for one conversation partner."""

    recipient_id: str
    last_message: str
    timestamp: datetime
    unread: int = 0


class MarkReadRequest(CamelModel):
    """Payload of the ``markMessagesRead`` event."""

    message_ids: list[int] = Field(default_factory=list)
    username: constr(strip_whitespace=True, min_length=1)


class MarkReadResult(CamelModel):
    message: str
    count: int


class TypingNotice(CamelModel):
    sender: constr(strip_whitespace=True, min_length=1)
    receiver: constr(strip_whitespace=True, min_length=1)
