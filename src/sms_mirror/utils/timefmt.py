"""Human-readable message timestamps, similar to what Android Messages uses."""

from __future__ import annotations

import time
from datetime import datetime, timedelta

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS
WEEK_MS = 7 * DAY_MS

# Latest instant a local datetime can hold everywhere (9999-12-30)
MAX_MS = 253402128000000

# Separates the day from the time of day (eg. Yesterday・11:29 PM)
DAY_SEPARATOR = "・"


def now_ms() -> int:
    """Get the current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def _local(ms: int) -> datetime:
    """Convert to local time, clamping values datetime cannot represent."""
    return datetime.fromtimestamp(min(max(ms, 0), MAX_MS) / 1000)


def _clock(dt: datetime) -> str:
    """Format a time of day as '9:05 PM'."""
    hour = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {meridiem}"


def _month_day(dt: datetime) -> str:
    return f"{dt.strftime('%b')} {dt.day}"


def _is_yesterday(dt: datetime, now: datetime, diff: int) -> bool:
    """Check if dt falls on the calendar day before now."""
    if diff < DAY_MS and dt.day != now.day:
        return True
    return dt.date() == now.date() - timedelta(days=1)


def format_time(time_ms: int, now: int | None = None) -> str:
    """
    Return a human-readable timestamp.

    Args:
        time_ms: Milliseconds since the epoch (local time).
        now: The current time in milliseconds; defaults to the wall clock.
    """
    if now is None:
        now = now_ms()
    diff = now - time_ms

    if diff < MINUTE_MS:
        return "Just now"
    if diff < HOUR_MS:
        return f"{diff // MINUTE_MS} mins"

    dt = _local(time_ms)
    if _is_yesterday(dt, _local(now), diff):
        return f"Yesterday{DAY_SEPARATOR}{_clock(dt)}"
    if diff < DAY_MS:
        return _clock(dt)
    if diff < WEEK_MS:
        return f"{dt.strftime('%A')}{DAY_SEPARATOR}{_clock(dt)}"
    return _month_day(dt)


def format_time_short(time_ms: int, now: int | None = None) -> str:
    """Return a short timestamp, for conversation summaries."""
    if now is None:
        now = now_ms()
    diff = now - time_ms

    if diff < MINUTE_MS:
        return "Just now"
    if diff < HOUR_MS:
        return f"{diff // MINUTE_MS} mins"

    dt = _local(time_ms)
    if diff < WEEK_MS:
        return dt.strftime("%a")
    return _month_day(dt)
