from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SlotKey:
    professional_id: str
    date: str  # YYYY-MM-DD


@dataclass(frozen=True)
class TimeSlot:
    id: str
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    is_booked: bool = False
