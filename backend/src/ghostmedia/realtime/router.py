"""Named event delivery to user rooms or to every connected client."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from fastapi.websockets import WebSocketDisconnect, WebSocketState

from .presence import PresenceTracker

logger = logging.getLogger(__name__)


def build_event(event: str, payload: Any = None) -> dict[str, Any]:
    """Wrap *payload* in the frame format shared by all outbound events."""

    return {"type": event, "payload": payload if payload is not None else {}}


async def safe_send_json(websocket: Any, data: dict[str, Any]) -> bool:
    """Safely send JSON data through websocket, handling disconnections gracefully.

    Returns True if message was sent successfully, False otherwise.
    """
    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_json(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug("Failed to send websocket message: %s", e)
        return False


class EventRouter:
    """Fire-and-forget delivery on top of :class:`PresenceTracker` rooms.

    Payloads are opaque to the router. Nothing is queued for offline users and
    no delivery is acknowledged.
    """

    def __init__(self, presence: PresenceTracker) -> None:
        self._presence = presence

    async def send(self, connection: Any, event: str, payload: Any = None) -> bool:
        return await safe_send_json(connection, build_event(event, payload))

    async def emit_to_user(self, username: str, event: str, payload: Any = None) -> int:
        sockets = await self._presence.room_members(username)
        if not sockets:
            logger.debug("Skipping %s for offline user %s", event, username)
            return 0
        return await self._deliver(sockets, build_event(event, payload))

    async def emit_to_users(
        self, usernames: Iterable[str], event: str, payload: Any = None
    ) -> int:
        delivered = 0
        for username in dict.fromkeys(usernames):
            delivered += await self.emit_to_user(username, event, payload)
        return delivered

    async def broadcast(self, event: str, payload: Any = None) -> int:
        sockets = await self._presence.connections()
        return await self._deliver(sockets, build_event(event, payload))

    async def _deliver(self, sockets: Iterable[Any], frame: dict[str, Any]) -> int:
        delivered = 0
        for socket in sockets:
            if await safe_send_json(socket, frame):
                delivered += 1
        return delivered
