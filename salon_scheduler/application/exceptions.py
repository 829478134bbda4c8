from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from salon_scheduler.domain.entities.submission import FailedItem


class SchedulingError(RuntimeError):
    """Base class for every failure the scheduling engine reports."""
    kind = "scheduling_error"


class ValidationError(SchedulingError):
    """Raised when input is incomplete (no slot selected, missing professional assignment)."""
    kind = "validation_error"


class PolicyViolation(SchedulingError):
    """Raised when a temporal rule forbids the action (24h lockout, past slot). Not retryable."""
    kind = "policy_violation"


class SlotConflict(SchedulingError):
    """Raised when the backend reports the slot was taken between fetch and submit."""
    kind = "slot_conflict"

    def __init__(self, message: str, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


class TransportError(SchedulingError):
    """Raised when the salon backend is unreachable or fails (timeouts, network errors, 5xx)."""
    kind = "transport_error"


class PartialBatchFailure(SchedulingError):
    """Raised when sequential submission created some appointments but not all."""
    kind = "partial_batch_failure"

    def __init__(self, created_ids: list[str], failed: list["FailedItem"]) -> None:
        super().__init__(
            f"{len(created_ids)} appointment(s) created, {len(failed)} failed"
        )
        self.created_ids = list(created_ids)
        self.failed = list(failed)
