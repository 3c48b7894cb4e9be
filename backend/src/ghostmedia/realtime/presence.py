"""Tracking of online users and their per-user delivery rooms."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Set

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Maps usernames to live connections.

    Every accepted connection is *attached* so that broadcasts reach it even
    before the client identifies itself. Identified connections additionally
    join the room named after their username. Room membership accumulates
    across devices while the presence table keeps the most recent connection.
    """

    def __init__(self) -> None:
        self._connections: Set[Any] = set()
        self._online: Dict[str, Any] = {}
        self._rooms: Dict[str, Set[Any]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def attach(self, connection: Any) -> None:
        async with self._lock:
            self._connections.add(connection)

    async def detach(self, connection: Any) -> None:
        async with self._lock:
            self._connections.discard(connection)

    async def register(self, username: str, connection: Any) -> bool:
        """Join *connection* to the user's room.

        Returns ``True`` when the user was offline before this call.
        """

        async with self._lock:
            came_online = username not in self._online
            self._connections.add(connection)
            self._online[username] = connection
            self._rooms[username].add(connection)
        logger.info("User %s connected (%d device(s))", username, len(self._rooms[username]))
        return came_online

    async def unregister(self, username: str, connection: Any) -> bool:
        """Remove *connection* from the user's room.

        Returns ``True`` when the user has no connection left and went offline.
        """

        async with self._lock:
            sockets = self._rooms.get(username)
            if not sockets or connection not in sockets:
                return False
            sockets.discard(connection)
            if sockets:
                if self._online.get(username) is connection:
                    self._online[username] = next(iter(sockets))
                return False
            self._rooms.pop(username, None)
            self._online.pop(username, None)
        logger.info("User %s disconnected", username)
        return True

    def is_online(self, username: str) -> bool:
        return username in self._online

    def online_users(self) -> list[str]:
        return sorted(self._online)

    def connection_for(self, username: str) -> Any | None:
        return self._online.get(username)

    async def room_members(self, username: str) -> list[Any]:
        async with self._lock:
            return list(self._rooms.get(username, ()))

    async def connections(self) -> list[Any]:
        async with self._lock:
            return list(self._connections)

    async def clear(self) -> None:
        async with self._lock:
            self._connections.clear()
            self._online.clear()
            self._rooms.clear()
