from __future__ import annotations

import re

_PART_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([a-zA-Z]*)")
MINUTES_PER_DAY = 24 * 60


def parse_duration_minutes(value: int | str | None) -> int:
    """
    Parse a service duration into minutes.
    Accepts integers and salon-style strings: "30 minutes", "1 hour", "1 hour 30 minutes", "90".
    Unknown units contribute nothing. Fractional amounts are truncated, so "1.5 hours" is 60.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)

    text = str(value).strip().lower()
    if text.isdigit():
        return int(text)

    minutes = 0
    for amount, unit in _PART_RE.findall(text):
        if unit.startswith("h"):
            minutes += int(float(amount)) * 60
        elif unit.startswith("m"):
            minutes += int(float(amount))
    return minutes


def compute_end_time(start_time: str, duration_minutes: int) -> str:
    """HH:MM end time for a start time plus duration. Raises ValueError on a malformed start or a next-day end."""
    hours_str, _, minutes_str = start_time.strip().partition(":")
    total = int(hours_str) * 60 + int(minutes_str[:2]) + duration_minutes
    if total >= MINUTES_PER_DAY:
        raise ValueError(f"{start_time} plus {duration_minutes} minutes runs past midnight")
    return f"{total // 60:02d}:{total % 60:02d}"


def time_to_minutes(value: str) -> int:
    hours_str, _, minutes_str = value.strip().partition(":")
    return int(hours_str) * 60 + int(minutes_str[:2])


def format_duration(minutes: int) -> str:
    hours, mins = divmod(max(minutes, 0), 60)
    hour_part = f"{hours} hour{'s' if hours > 1 else ''}"
    minute_part = f"{mins} minute{'s' if mins != 1 else ''}"
    if hours and mins:
        return f"{hour_part} {minute_part}"
    if hours:
        return hour_part
    return minute_part
