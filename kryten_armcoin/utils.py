"""Shared utility helpers for kryten-armcoin."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

_TRUTHY_FLAGS = ("1", "true")


def normalize_username(username: str) -> str:
    """Canonical identity key for a chat user (case-insensitive)."""
    return username.strip().lower()


def env_flag(value: Any) -> bool:
    """Interpret a boolean-like environment value.

    Only the exact literals ``"1"`` and ``"true"`` count as true.
    """
    if value is None:
        return False
    return str(value) in _TRUTHY_FLAGS


def now_utc() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)
