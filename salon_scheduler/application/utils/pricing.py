from __future__ import annotations

from collections.abc import Iterable

from salon_scheduler.domain.entities.scheduled_item import ScheduledItem


def total(scheduled: Iterable[ScheduledItem], pending: ScheduledItem | None = None) -> float:
    """Sum of item prices; `pending` is the current, not yet advanced selection."""
    amount = sum(item.price for item in scheduled)
    if pending is not None:
        amount += pending.price
    return amount
