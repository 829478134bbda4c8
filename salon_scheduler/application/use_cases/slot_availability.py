from __future__ import annotations

import logging
from datetime import datetime, timedelta

from salon_scheduler.application.exceptions import TransportError
from salon_scheduler.application.ports.slot_gateway import SlotGatewayPort
from salon_scheduler.application.utils.calendar_window import is_iso_day
from salon_scheduler.application.utils.duration import time_to_minutes
from salon_scheduler.application.utils.temporal_policy import is_past_slot
from salon_scheduler.domain.entities.time_slot import SlotKey, TimeSlot


class SlotAvailabilityService:
    """
    Slot retrieval for one booking session.
    Results are cached per (professional, date) for the lifetime of the session;
    failed retrievals are logged, return no slots and are not cached.
    """

    def __init__(self, gateway: SlotGatewayPort, min_lead_minutes: int = 0) -> None:
        self._gateway = gateway
        self._min_lead_minutes = min_lead_minutes
        self._cache: dict[SlotKey, list[TimeSlot]] = {}
        self._logger = logging.getLogger(__name__)

    def get_slots(self, professional_id: str, date: str) -> list[TimeSlot]:
        if not professional_id or not professional_id.strip() or not is_iso_day(date):
            self._logger.warning(
                "Slot lookup without professional or valid date",
                extra={"professional_id": professional_id, "date": date},
            )
            return []

        key = SlotKey(professional_id=professional_id, date=date)
        cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        try:
            slots = self._gateway.list_slots(professional_id, date)
        except TransportError as e:
            self._logger.error(
                "Error fetching time slots",
                extra={"professional_id": professional_id, "date": date, "error": str(e)},
            )
            return []

        self._cache[key] = list(slots)
        self._logger.debug(
            "Fetched slots",
            extra={"professional_id": professional_id, "date": date, "slot_count": len(slots)},
        )
        return list(slots)

    def is_cached(self, professional_id: str, date: str) -> bool:
        return SlotKey(professional_id=professional_id, date=date) in self._cache

    def invalidate(self, professional_id: str, date: str) -> None:
        self._cache.pop(SlotKey(professional_id=professional_id, date=date), None)

    def available_slots(
        self,
        professional_id: str,
        date: str,
        duration_minutes: int,
        now: datetime,
    ) -> list[TimeSlot]:
        return filter_slots(
            self.get_slots(professional_id, date),
            date,
            duration_minutes,
            now,
            min_lead_minutes=self._min_lead_minutes,
        )


def free_window_minutes(slot: TimeSlot, slots: list[TimeSlot]) -> int:
    """Length of the free run starting at `slot`: the slot plus unbooked slots that follow back-to-back."""
    try:
        start = time_to_minutes(slot.start_time)
        end = time_to_minutes(slot.end_time)
    except (AttributeError, ValueError):
        return 0
    if end <= start:
        return 0

    free_by_start: dict[int, int] = {}
    for other in slots:
        if other.is_booked:
            continue
        try:
            other_start = time_to_minutes(other.start_time)
            other_end = time_to_minutes(other.end_time)
        except (AttributeError, ValueError):
            continue
        if other_end > other_start:
            free_by_start[other_start] = max(free_by_start.get(other_start, 0), other_end)

    while end in free_by_start and free_by_start[end] > end:
        end = free_by_start[end]
    return end - start


def filter_slots(
    slots: list[TimeSlot],
    date: str,
    duration_minutes: int,
    now: datetime,
    min_lead_minutes: int = 0,
) -> list[TimeSlot]:
    """Slots that can be offered for a service of `duration_minutes` starting now or later."""
    eligible: list[TimeSlot] = []
    for slot in slots:
        if slot.is_booked:
            continue
        slot_date = slot.date or date
        if is_past_slot(slot_date, slot.start_time, now):
            continue
        if min_lead_minutes > 0 and is_past_slot(slot_date, slot.start_time, now + timedelta(minutes=min_lead_minutes)):
            continue
        if free_window_minutes(slot, slots) < duration_minutes:
            continue
        eligible.append(slot)
    return eligible
