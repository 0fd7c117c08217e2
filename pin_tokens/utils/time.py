"""UTC time helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def ms_delta(ms: int) -> timedelta:
    """Convert a millisecond duration into a ``timedelta``."""
    return timedelta(milliseconds=ms)
