"""Core utilities for the GhostMedia backend."""

from .security import (
    create_access_token,
    create_admin_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)

__all__ = [
    "create_access_token",
    "create_admin_token",
    "decode_access_token",
    "get_password_hash",
    "verify_password",
]
