from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from salon_scheduler.domain.entities.scheduled_item import ScheduledItem


class SubmissionStatus(str, Enum):
    submitted = "submitted"
    partial_failure = "partial_failure"
    slot_conflict = "slot_conflict"
    transport_error = "transport_error"
    policy_violation = "policy_violation"
    local_fallback = "local_fallback"


@dataclass(frozen=True)
class FailedItem:
    index: int
    item: ScheduledItem
    reason: str  # "slot_conflict", "transport_error", "rejected", "not_attempted"


@dataclass(frozen=True)
class RescheduleChange:
    date: str
    start_time: str
    end_time: str
    professional_id: str


@dataclass(frozen=True)
class GroupBookingReceipt:
    booking_id: str
    created_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SubmissionResult:
    status: SubmissionStatus
    created_ids: list[str] = field(default_factory=list)
    failed: list[FailedItem] = field(default_factory=list)
    booking_id: str | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status == SubmissionStatus.submitted
