"""HTTP endpoints for direct messages."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ghostmedia.realtime import EventRouter

from app.api.deps import get_event_router, get_ghost_reaper
from app.database import get_db
from app.schemas import (
    ActingUser,
    ActionResult,
    ConversationRead,
    MarkReadResult,
    MessageCreate,
    MessageRead,
)
from app.services import messaging
from app.services.ghosts import GhostReaper

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/conversations/{username}", response_model=list[ConversationRead])
def list_conversations(username: str, db: Session = Depends(get_db)) -> list[ConversationRead]:
    return messaging.list_conversations(db, username)


@router.get("/{sender}/{recipient}", response_model=list[MessageRead])
async def read_conversation(
    sender: str,
    recipient: str,
    db: Session = Depends(get_db),
    events: EventRouter = Depends(get_event_router),
) -> list[MessageRead]:
    """History between *sender* (the viewer) and *recipient*."""

    messages = await messaging.fetch_conversation(db, events, sender, recipient)
    return [MessageRead.model_validate(message) for message in messages]


@router.post("", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def create_message(
    payload: MessageCreate,
    db: Session = Depends(get_db),
    events: EventRouter = Depends(get_event_router),
    ghosts: GhostReaper = Depends(get_ghost_reaper),
) -> MessageRead:
    message = await messaging.send_message(db, events, ghosts, payload)
    return MessageRead.model_validate(message)


@router.put("/read/{sender}/{recipient}", response_model=MarkReadResult)
async def mark_read(
    sender: str,
    recipient: str,
    db: Session = Depends(get_db),
    events: EventRouter = Depends(get_event_router),
) -> MarkReadResult:
    count = await messaging.mark_conversation_read(db, events, sender, recipient)
    return MarkReadResult(message="Messages marked as read", count=count)


@router.delete("/{message_id}", response_model=ActionResult)
async def delete_message(
    message_id: int,
    payload: ActingUser,
    db: Session = Depends(get_db),
    events: EventRouter = Depends(get_event_router),
) -> ActionResult:
    await messaging.delete_message(db, events, message_id, payload.username)
    return ActionResult(message="Message deleted successfully")
