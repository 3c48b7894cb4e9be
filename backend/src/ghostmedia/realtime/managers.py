"""Lifecycle container wiring the realtime components together."""

from __future__ import annotations

import logging

from .presence import PresenceTracker
from .router import EventRouter
from .scheduler import ExpiryScheduler

logger = logging.getLogger(__name__)


class RealtimeHub:
    """Owns presence, routing and expiry state for one process.

    A hub is created at application startup and stopped at shutdown; nothing
    here survives a restart.
    """

    def __init__(self) -> None:
        self.presence = PresenceTracker()
        self.router = EventRouter(self.presence)
        self.scheduler = ExpiryScheduler()
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        self._started = True
        logger.info("Realtime hub started")

    async def stop(self) -> None:
        await self.scheduler.shutdown()
        await self.presence.clear()
        self._started = False
        logger.info("Realtime hub stopped")


__all__ = ["RealtimeHub"]
