"""
Temporal rules shared by booking and rescheduling.

Every function here is total: malformed dates or times never raise, they
resolve to the conservative answer (slot hidden, reschedule forbidden).
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, tzinfo

LOCKOUT_HOURS = 24

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")


def slot_instant(date_str: str, time_str: str, tz: tzinfo | None) -> datetime | None:
    """Combine a YYYY-MM-DD day and an HH:MM time into an instant, or None if either is unparsable."""
    try:
        # Backend dates sometimes arrive as full ISO timestamps; only the day matters.
        day = date.fromisoformat(date_str.strip().split("T", 1)[0])
        match = _TIME_RE.match(time_str)
        if not match:
            return None
        hour, minute = int(match.group(1)), int(match.group(2))
        return datetime.combine(day, time(hour, minute), tzinfo=tz)
    except (AttributeError, TypeError, ValueError):
        return None


def _delta_from_now(date_str: str, time_str: str, now: datetime) -> timedelta | None:
    try:
        instant = slot_instant(date_str, time_str, now.tzinfo)
        if instant is None:
            return None
        return instant - now
    except (AttributeError, TypeError):
        return None


def is_past_slot(date_str: str, time_str: str, now: datetime) -> bool:
    delta = _delta_from_now(date_str, time_str, now)
    if delta is None:
        return True
    return delta < timedelta(0)


def is_within_hours(date_str: str, time_str: str, now: datetime, hours: float) -> bool:
    delta = _delta_from_now(date_str, time_str, now)
    if delta is None:
        return True
    return timedelta(0) < delta <= timedelta(hours=hours)


def is_within_24_hours(date_str: str, time_str: str, now: datetime) -> bool:
    """True if the slot starts in the future but no more than 24 hours from now."""
    return is_within_hours(date_str, time_str, now, LOCKOUT_HOURS)


def is_reschedule_locked(
    date_str: str,
    time_str: str,
    now: datetime,
    hours: float = LOCKOUT_HOURS,
) -> bool:
    """
    True if an existing appointment can no longer be changed.
    Unlike is_within_24_hours, appointments that already started are locked too.
    """
    delta = _delta_from_now(date_str, time_str, now)
    if delta is None:
        return True
    return delta <= timedelta(hours=hours)
