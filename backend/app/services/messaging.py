"""Direct message operations shared by the REST and realtime surfaces."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ghostmedia.realtime import EventRouter

from app.config import get_settings
from app.models import Message, User, utcnow
from app.schemas import ConversationRead, MessageCreate, MessageRead
from app.services.ghosts import GhostReaper, resolve_expiration

logger = logging.getLogger(__name__)

settings = get_settings()


def serialize_message(message: Message) -> dict:
    return MessageRead.model_validate(message).model_dump(mode="json", by_alias=True)


def _ensure_users_exist(db: Session, usernames: Iterable[str]) -> None:
    wanted = set(usernames)
    found = set(db.execute(select(User.username).where(User.username.in_(wanted))).scalars())
    if found != wanted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


async def send_message(
    db: Session,
    router: EventRouter,
    ghosts: GhostReaper,
    payload: MessageCreate,
) -> Message:
    if len(payload.content) > settings.message_max_length:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is too long")
    _ensure_users_exist(db, (payload.sender, payload.receiver))

    message = Message(
        sender=payload.sender,
        receiver=payload.receiver,
        content=payload.content,
        is_ghost=payload.is_ghost,
        expires_at=resolve_expiration(
            payload.is_ghost, payload.expiration_date, settings.ghost_message_ttl_seconds
        ),
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    ghosts.schedule_message(message)

    body = serialize_message(message)
    await router.emit_to_user(message.receiver, "newMessage", body)
    await router.emit_to_user(message.sender, "messageSent", body)
    return message


async def _notify_read(router: EventRouter, messages: Iterable[Message], reader: str) -> None:
    by_sender: dict[str, list[int]] = defaultdict(list)
    for message in messages:
        by_sender[message.sender].append(message.id)
    for sender, ids in by_sender.items():
        await router.emit_to_user(sender, "messagesRead", {"messageIds": ids, "reader": reader})


def _apply_read(db: Session, messages: list[Message]) -> None:
    now = utcnow()
    for message in messages:
        message.is_read = True
        message.read_at = now
        db.add(message)
    db.commit()


async def mark_messages_read(
    db: Session, router: EventRouter, message_ids: Iterable[int], username: str
) -> int:
    """Mark the given messages read on behalf of their receiver."""

    ids = list(dict.fromkeys(message_ids))
    if not ids:
        return 0
    stmt = select(Message).where(
        Message.id.in_(ids),
        Message.receiver == username,
        Message.is_read.is_(False),
        Message.is_deleted.is_(False),
    )
    messages = list(db.execute(stmt).scalars())
    if not messages:
        return 0
    _apply_read(db, messages)
    await _notify_read(router, messages, username)
    return len(messages)


async def mark_conversation_read(
    db: Session, router: EventRouter, sender: str, recipient: str
) -> int:
    """Mark everything *sender* sent to *recipient* as read."""

    stmt = select(Message).where(
        Message.sender == sender,
        Message.receiver == recipient,
        Message.is_read.is_(False),
        Message.is_deleted.is_(False),
    )
    messages = list(db.execute(stmt).scalars())
    if messages:
        _apply_read(db, messages)
        await _notify_read(router, messages, recipient)
    return len(messages)


async def fetch_conversation(
    db: Session, router: EventRouter, viewer: str, other: str
) -> list[Message]:
    """Return the visible history between two users, reading incoming messages."""

    _ensure_users_exist(db, (viewer, other))
    stmt = (
        select(Message)
        .where(
            or_(
                (Message.sender == viewer) & (Message.receiver == other),
                (Message.sender == other) & (Message.receiver == viewer),
            ),
            Message.is_deleted.is_(False),
        )
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    messages = list(db.execute(stmt).scalars())
    await mark_conversation_read(db, router, other, viewer)
    return messages


def list_conversations(db: Session, username: str) -> list[ConversationRead]:
    stmt = (
        select(Message)
        .where(
            or_(Message.sender == username, Message.receiver == username),
            Message.is_deleted.is_(False),
        )
        .order_by(Message.created_at.desc(), Message.id.desc())
    )
    conversations: dict[str, ConversationRead] = {}
    for message in db.execute(stmt).scalars():
        other = message.receiver if message.sender == username else message.sender
        unread = 1 if message.receiver == username and not message.is_read else 0
        entry = conversations.get(other)
        if entry is None:
            conversations[other] = ConversationRead(
                recipient_id=other,
                last_message=message.content,
                timestamp=message.created_at,
                unread=unread,
            )
        else:
            entry.unread += unread
    return list(conversations.values())


async def delete_message(
    db: Session, router: EventRouter, message_id: int, username: str
) -> Message:
    """Soft-delete a message on behalf of either participant."""

    message = db.get(Message, message_id)
    if message is None or message.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    if not message.involves(username):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to delete this message",
        )
    message.is_deleted = True
    db.add(message)
    db.commit()
    logger.info("Message %s deleted by %s", message_id, username)

    await router.emit_to_users(
        [message.sender, message.receiver],
        "messageDeleted",
        {"messageId": message.id, "deletedBy": username, "reason": "deleted"},
    )
    return message
