"""WebSocket endpoint carrying realtime notifications and client events."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Dict, TypeVar

from fastapi import APIRouter, WebSocket
from fastapi.exceptions import HTTPException
from fastapi.websockets import WebSocketDisconnect, WebSocketState
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ghostmedia.realtime import RealtimeHub, build_event, safe_send_json

from app.config import get_settings
from app.database import get_db_session
from app.schemas import MarkReadRequest, MessageCreate, TypingNotice
from app.services import messaging

router = APIRouter(tags=["ws"])

settings = get_settings()

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def iter_keepalive_messages(
    websocket: WebSocket,
    receiver: Callable[[], Awaitable[T]],
    *,
    timeout_seconds: float | int | None,
    ping_interval_seconds: float | int | None,
    ping_payload: Dict[str, Any] | None = None,
) -> AsyncIterator[T]:
    """Yield frames from *receiver*; ping the client while it stays quiet.

    Pings go out once the socket has been idle for *ping_interval_seconds*
    and then at most once per interval until the client speaks again.
    """

    ping = ping_payload or build_event("ping")
    wait = float(timeout_seconds or 0) or None
    interval = float(ping_interval_seconds or 0)
    quiet_since = time.monotonic()
    pinged_at: float | None = None

    while websocket.application_state == WebSocketState.CONNECTED:
        try:
            message = await asyncio.wait_for(receiver(), timeout=wait)
        except asyncio.TimeoutError:
            now = time.monotonic()
            since = quiet_since if pinged_at is None else pinged_at
            if now - since < interval:
                continue
            if not await safe_send_json(websocket, ping):
                return
            pinged_at = now
            continue
        except (RuntimeError, WebSocketDisconnect):
            return

        quiet_since = time.monotonic()
        pinged_at = None
        yield message


@dataclass
class _Connection:
    """Per-socket state: the user the client identified as, if any."""

    websocket: WebSocket
    hub: RealtimeHub
    username: str | None = None


async def _send_error(websocket: WebSocket, detail: Any) -> None:
    await safe_send_json(websocket, {"type": "error", "detail": detail})


async def _broadcast_online_users(hub: RealtimeHub) -> None:
    if settings.broadcast_online_users:
        await hub.router.broadcast("onlineUsers", hub.presence.online_users())


def _session_factory(websocket: WebSocket):
    return getattr(websocket.app.state, "session_factory", None)


async def _handle_user_connected(conn: _Connection, payload: Any) -> None:
    if isinstance(payload, dict):
        payload = payload.get("username")
    username = payload.strip() if isinstance(payload, str) else ""
    if not username:
        await _send_error(conn.websocket, "Username is required")
        return

    if conn.username and conn.username != username:
        await conn.hub.presence.unregister(conn.username, conn.websocket)
    conn.username = username
    await conn.hub.presence.register(username, conn.websocket)
    await conn.hub.router.send(conn.websocket, "refreshFriendRequests", {"username": username})
    await _broadcast_online_users(conn.hub)


async def _handle_send_message(conn: _Connection, payload: Any) -> None:
    data = MessageCreate.model_validate(payload)
    ghosts = conn.websocket.app.state.ghosts
    with get_db_session(_session_factory(conn.websocket)) as db:
        await messaging.send_message(db, conn.hub.router, ghosts, data)


async def _handle_mark_read(conn: _Connection, payload: Any) -> None:
    data = MarkReadRequest.model_validate(payload)
    with get_db_session(_session_factory(conn.websocket)) as db:
        await messaging.mark_messages_read(db, conn.hub.router, data.message_ids, data.username)


async def _handle_typing(conn: _Connection, payload: Any) -> None:
    notice = TypingNotice.model_validate(payload)
    await conn.hub.router.emit_to_user(notice.receiver, "userTyping", {"sender": notice.sender})


async def _handle_stop_typing(conn: _Connection, payload: Any) -> None:
    notice = TypingNotice.model_validate(payload)
    await conn.hub.router.emit_to_user(
        notice.receiver, "userStoppedTyping", {"sender": notice.sender}
    )


async def _handle_new_post(conn: _Connection, payload: Any) -> None:
    if not isinstance(payload, dict):
        await _send_error(conn.websocket, "Post payload must be a JSON object")
        return
    await conn.hub.router.broadcast("postAdded", payload)


async def _handle_ping(conn: _Connection, payload: Any) -> None:
    await conn.hub.router.send(conn.websocket, "pong")


async def _handle_pong(conn: _Connection, payload: Any) -> None:
    return None


HANDLERS: dict[str, Callable[[_Connection, Any], Awaitable[None]]] = {
    "userConnected": _handle_user_connected,
    "sendMessage": _handle_send_message,
    "markMessagesRead": _handle_mark_read,
    "typing": _handle_typing,
    "stopTyping": _handle_stop_typing,
    "newPost": _handle_new_post,
    "ping": _handle_ping,
    "pong": _handle_pong,
}


async def _dispatch(conn: _Connection, event: str, payload: Any) -> None:
    """Run the handler for *event*, reporting failures to the client only."""

    handler = HANDLERS.get(event)
    if handler is None:
        await _send_error(conn.websocket, "Unsupported event type")
        return
    try:
        await handler(conn, payload)
    except HTTPException as exc:
        await _send_error(conn.websocket, exc.detail)
    except ValidationError as exc:
        await _send_error(conn.websocket, exc.errors(include_url=False, include_context=False))
    except SQLAlchemyError:
        logger.exception("Realtime %s handler failed", event)
        await _send_error(conn.websocket, "Server error")
    except Exception:
        logger.exception("Unexpected error in realtime %s handler", event)
        await _send_error(conn.websocket, "Server error")


@router.websocket("/ws")
async def websocket_events(websocket: WebSocket) -> None:
    """Realtime channel shared by every client.

    Clients announce themselves with ``userConnected`` to join their
    personal room. Unidentified sockets still receive broadcasts.
    """

    hub: RealtimeHub = websocket.app.state.realtime
    await websocket.accept()
    await hub.presence.attach(websocket)
    conn = _Connection(websocket=websocket, hub=hub)

    try:
        async for raw_message in iter_keepalive_messages(
            websocket,
            websocket.receive_text,
            timeout_seconds=settings.websocket_keepalive_timeout_seconds,
            ping_interval_seconds=settings.websocket_keepalive_ping_interval_seconds,
        ):
            if raw_message.strip().lower() == "ping":
                await hub.router.send(websocket, "pong")
                continue
            try:
                frame = json.loads(raw_message)
            except json.JSONDecodeError:
                await _send_error(websocket, "Invalid message format")
                continue

            if not isinstance(frame, dict):
                await _send_error(websocket, "Message payload must be a JSON object")
                continue

            event = frame.get("type")
            if not isinstance(event, str) or not event:
                await _send_error(websocket, "Message type must be provided")
                continue

            await _dispatch(conn, event, frame.get("payload"))
    finally:
        went_offline = False
        if conn.username:
            went_offline = await hub.presence.unregister(conn.username, websocket)
        await hub.presence.detach(websocket)
        if went_offline:
            await _broadcast_online_users(hub)
