"""Application service helpers."""

from .ghosts import GhostReaper, resolve_expiration

__all__ = [
    "GhostReaper",
    "resolve_expiration",
]
