"""Utility functions for time handling.

All timestamps are UTC and timezone-aware. Readings are persisted as
ISO-8601 strings with a "+00:00" offset via iso_now() / to_iso_utc().
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    """Return current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def iso_now(*, timespec: str | None = None) -> str:
    """Return current UTC time as an ISO8601 string (timezone-aware)."""
    now = utc_now()
    if timespec:
        return now.isoformat(timespec=timespec)
    return now.isoformat()


def coerce_datetime(value: Any) -> datetime | None:
    """
    Coerce value to datetime, returning None on failure.

    Naive values are assumed to be UTC; aware values are converted to UTC.
    A trailing "Z" is accepted.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        return parsed.astimezone(timezone.utc)
    return parsed.replace(tzinfo=timezone.utc)


def to_iso_utc(value: Any) -> str | None:
    """Normalize a source-supplied timestamp to a UTC ISO string, or None if unparseable."""
    parsed = coerce_datetime(value)
    if parsed is None:
        return None
    return parsed.isoformat()
