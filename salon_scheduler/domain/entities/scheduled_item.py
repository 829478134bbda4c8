from __future__ import annotations

from dataclasses import dataclass

from salon_scheduler.domain.entities.service_item import ParticipantTag


@dataclass(frozen=True)
class ScheduledItem:
    service_name: str
    price: float
    duration_minutes: int
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM, start_time + duration
    professional_id: str
    professional_name: str
    participant: ParticipantTag | None = None
