"""Expiry of ghost posts and ghost messages."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ghostmedia.realtime import EventRouter, ExpiryScheduler, as_utc

from app.database import get_db_session
from app.models import ExpiryKind, Message, Post, utcnow

logger = logging.getLogger(__name__)

# Timers may wake marginally before the stored deadline.
EXPIRY_TOLERANCE = timedelta(seconds=1)

EXPIRED_REASON = "expired"


def resolve_expiration(
    is_ghost: bool, requested: datetime | None, default_ttl_seconds: int
) -> datetime | None:
    """Return the expiration to store for new or edited content."""

    if not is_ghost:
        return None
    if requested is not None:
        return as_utc(requested)
    return utcnow() + timedelta(seconds=default_ttl_seconds)


def _not_due(expires_at: datetime | None) -> bool:
    if expires_at is None:
        return False
    return as_utc(expires_at) - utcnow() > EXPIRY_TOLERANCE


class GhostReaper:
    """Arms and carries out expiry of ghost content.

    Each expiry re-reads the item and leaves it untouched when it is gone,
    already consumed, or no longer due.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        router: EventRouter,
        scheduler: ExpiryScheduler,
    ) -> None:
        self._session_factory = session_factory
        self._router = router
        self._scheduler = scheduler

    def schedule_message(self, message: Message) -> bool:
        if not message.is_ghost or message.expires_at is None:
            return False
        self._scheduler.arm(message.id, ExpiryKind.MESSAGE.value, message.expires_at, self.expire_message)
        return True

    def schedule_post(self, post: Post) -> bool:
        if not post.is_ghost or post.expires_at is None:
            return False
        self._scheduler.arm(post.id, ExpiryKind.POST.value, post.expires_at, self.expire_post)
        return True

    async def expire_message(self, message_id: Any, kind: str = ExpiryKind.MESSAGE.value) -> bool:
        try:
            with get_db_session(self._session_factory) as db:
                message = db.get(Message, message_id)
                if message is None or not message.is_ghost:
                    return False
                if message.is_read or message.is_deleted:
                    logger.debug("Ghost message %s already consumed", message_id)
                    return False
                if _not_due(message.expires_at):
                    return False
                message.is_deleted = True
                db.commit()
                sender, receiver = message.sender, message.receiver
        except SQLAlchemyError:
            logger.exception("Failed to expire ghost message %s", message_id)
            return False

        logger.info("Ghost message %s expired", message_id)
        await self._router.emit_to_users(
            [sender, receiver],
            "messageExpired",
            {
                "messageId": message_id,
                "sender": sender,
                "receiver": receiver,
                "reason": EXPIRED_REASON,
            },
        )
        return True

    async def expire_post(self, post_id: Any, kind: str = ExpiryKind.POST.value) -> bool:
        try:
            with get_db_session(self._session_factory) as db:
                post = db.get(Post, post_id)
                if post is None or not post.is_ghost:
                    return False
                if _not_due(post.expires_at):
                    return False
                author = post.username
                db.delete(post)
                db.commit()
        except SQLAlchemyError:
            logger.exception("Failed to expire ghost post %s", post_id)
            return False

        logger.info("Ghost post %s by %s expired", post_id, author)
        await self._router.broadcast(
            "postDeleted",
            {"postId": post_id, "username": author, "reason": EXPIRED_REASON},
        )
        return True
