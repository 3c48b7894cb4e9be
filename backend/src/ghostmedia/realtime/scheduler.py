"""One-shot deferred actions for self-expiring content."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

ExpiryCallback = Callable[[Any, str], Awaitable[None]]


def as_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime (naive values are taken as UTC)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ExpiryScheduler:
    """Arms timers that run an expiry callback once.

    Timers live only in this process. They are never cancelled one by one;
    callbacks re-check the stored item before acting. Shutting down drops
    whatever is still armed.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def arm(
        self,
        item_id: Any,
        kind: str,
        fire_at: datetime,
        on_fire: ExpiryCallback,
    ) -> asyncio.Task[None]:
        """Schedule *on_fire(item_id, kind)* to run at *fire_at*.

        A time in the past fires on the next loop iteration.
        """

        delay = (as_utc(fire_at) - datetime.now(timezone.utc)).total_seconds()
        delay = max(delay, 0.0)
        task = asyncio.get_running_loop().create_task(
            self._run(item_id, kind, delay, on_fire),
            name=f"expiry:{kind}:{item_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Armed %s expiry for %s in %.2fs", kind, item_id, delay)
        return task

    async def _run(self, item_id: Any, kind: str, delay: float, on_fire: ExpiryCallback) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        try:
            await on_fire(item_id, kind)
        except asyncio.CancelledError:  # pragma: no cover - cooperative cancellation
            raise
        except Exception:
            logger.exception("Expiry of %s %s failed", kind, item_id)

    async def shutdown(self) -> None:
        tasks = [task for task in self._tasks if not task.done()]
        if tasks:
            logger.warning("Dropping %d armed expiration(s) on shutdown", len(tasks))
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()
