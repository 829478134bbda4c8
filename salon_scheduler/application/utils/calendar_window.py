from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

DEFAULT_WINDOW_DAYS = 7


@dataclass(frozen=True)
class CalendarDay:
    day: str  # short weekday label, e.g. "Mon"
    date: int  # day of month
    full_date: str  # YYYY-MM-DD


def selectable_dates(today: date, days: int = DEFAULT_WINDOW_DAYS) -> list[CalendarDay]:
    """Rolling window of bookable days starting today."""
    window: list[CalendarDay] = []
    for offset in range(max(days, 0)):
        current = today + timedelta(days=offset)
        window.append(
            CalendarDay(
                day=current.strftime("%a"),
                date=current.day,
                full_date=current.isoformat(),
            )
        )
    return window


def is_iso_day(value: str) -> bool:
    try:
        date.fromisoformat(value)
        return True
    except (TypeError, ValueError):
        return False
