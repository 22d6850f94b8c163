"""Utility helpers for the Filmazia service."""

from __future__ import annotations

import secrets
import string
from datetime import datetime, timezone


_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(length: int = 13) -> str:
    """Return a random lowercase base36 identifier."""

    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps (as SQLite returns them) as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
