from __future__ import annotations

from dataclasses import dataclass

PRIMARY_CATEGORY = "Primary"
DEFAULT_MEMBER_CATEGORY = "Adult"


@dataclass(frozen=True)
class ParticipantTag:
    member_name: str
    member_category: str = DEFAULT_MEMBER_CATEGORY


@dataclass(frozen=True)
class ServiceItem:
    name: str
    unit_price: float
    duration_minutes: int
    participant: ParticipantTag | None = None  # group bookings only
