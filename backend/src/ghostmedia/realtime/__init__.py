"""Realtime helpers for presence, room delivery and content expiry."""

from .managers import RealtimeHub  # noqa: F401
from .presence import PresenceTracker  # noqa: F401
from .router import EventRouter, build_event, safe_send_json  # noqa: F401
from .scheduler import ExpiryScheduler, as_utc  # noqa: F401

__all__ = [
    "RealtimeHub",
    "PresenceTracker",
    "EventRouter",
    "ExpiryScheduler",
    "build_event",
    "safe_send_json",
    "as_utc",
]
