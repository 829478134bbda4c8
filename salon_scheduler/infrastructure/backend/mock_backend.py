from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from salon_scheduler.application.exceptions import SlotConflict, TransportError
from salon_scheduler.application.ports.appointment_backend import AppointmentBackendPort
from salon_scheduler.application.ports.professional_directory import ProfessionalDirectoryPort
from salon_scheduler.application.ports.slot_gateway import SlotGatewayPort
from salon_scheduler.application.utils.duration import time_to_minutes
from salon_scheduler.domain.entities.contact import ContactInfo
from salon_scheduler.domain.entities.professional import Professional
from salon_scheduler.domain.entities.scheduled_item import ScheduledItem
from salon_scheduler.domain.entities.submission import GroupBookingReceipt, RescheduleChange
from salon_scheduler.domain.entities.time_slot import TimeSlot

DEFAULT_PROFESSIONALS = (
    Professional(professional_id="pro_1", name="Nimali Perera"),
    Professional(professional_id="pro_2", name="Kasun Silva"),
)


class MockSalonBackend(SlotGatewayPort, AppointmentBackendPort, ProfessionalDirectoryPort):
    """In-memory salon backend for local development and tests."""

    def __init__(
        self,
        professionals: tuple[Professional, ...] | list[Professional] = DEFAULT_PROFESSIONALS,
        start_hour: int = 9,
        end_hour: int = 17,
        slot_minutes: int = 30,
    ) -> None:
        self._professionals = list(professionals)
        self._start_hour = start_hour
        self._end_hour = end_hour
        self._slot_minutes = slot_minutes
        # appointment id -> (professional_id, date, start minute, end minute)
        self._appointments: dict[str, tuple[str, str, int, int]] = {}
        self._sequence = 0
        self.available = True
        self._logger = logging.getLogger(__name__)

    def list_slots(self, professional_id: str, date: str) -> list[TimeSlot]:
        self._check_available()
        day = datetime.combine(_date_from_iso(date), datetime.min.time())
        current = day.replace(hour=self._start_hour)
        end = day.replace(hour=self._end_hour)

        slots: list[TimeSlot] = []
        while current + timedelta(minutes=self._slot_minutes) <= end:
            slot_end = current + timedelta(minutes=self._slot_minutes)
            start_minute = current.hour * 60 + current.minute
            slots.append(
                TimeSlot(
                    id=f"{professional_id}:{date}:{current.strftime('%H:%M')}",
                    date=date,
                    start_time=current.strftime("%H:%M"),
                    end_time=slot_end.strftime("%H:%M"),
                    is_booked=self._is_taken(
                        professional_id, date, start_minute, start_minute + self._slot_minutes
                    ),
                )
            )
            current = slot_end
        return slots

    def create_appointments(
        self,
        contact: ContactInfo,
        items: list[ScheduledItem],
        salon_id: str | None = None,
    ) -> list[str]:
        self._check_available()
        for item in items:
            self._check_free(item.professional_id, item.date, item.start_time, item.end_time)
        return [self._book(item) for item in items]

    def create_group_appointments(
        self,
        contact: ContactInfo,
        items: list[ScheduledItem],
        salon_id: str | None = None,
    ) -> GroupBookingReceipt:
        self._check_available()
        for index, item in enumerate(items):
            try:
                self._check_free(item.professional_id, item.date, item.start_time, item.end_time)
            except SlotConflict as e:
                raise SlotConflict(str(e), index=index) from e
        created_ids = [self._book(item) for item in items]
        self._sequence += 1
        return GroupBookingReceipt(booking_id=f"mock_booking_{self._sequence}", created_ids=created_ids)

    def reschedule_appointment(self, appointment_id: str, change: RescheduleChange) -> None:
        self._check_available()
        if appointment_id not in self._appointments:
            raise TransportError(f"Appointment {appointment_id} not found")
        current = self._appointments.pop(appointment_id)
        try:
            self._check_free(change.professional_id, change.date, change.start_time, change.end_time)
        except SlotConflict:
            self._appointments[appointment_id] = current
            raise
        self._appointments[appointment_id] = (
            change.professional_id,
            change.date,
            time_to_minutes(change.start_time),
            time_to_minutes(change.end_time),
        )
        self._logger.info("Mock appointment rescheduled", extra={"appointment_id": appointment_id})

    def cancel_appointment(self, appointment_id: str) -> bool:
        if appointment_id in self._appointments:
            del self._appointments[appointment_id]
            self._logger.info("Mock appointment cancelled", extra={"appointment_id": appointment_id})
            return True
        return False

    def list_professionals(self, salon_id: str) -> list[Professional]:
        self._check_available()
        return list(self._professionals)

    def appointment(self, appointment_id: str) -> tuple[str, str, int, int] | None:
        return self._appointments.get(appointment_id)

    def _book(self, item: ScheduledItem) -> str:
        self._sequence += 1
        appointment_id = f"mock_appt_{self._sequence}"
        self._appointments[appointment_id] = (
            item.professional_id,
            item.date,
            time_to_minutes(item.start_time),
            time_to_minutes(item.end_time),
        )
        self._logger.info(
            "Mock appointment created",
            extra={"appointment_id": appointment_id, "date": item.date, "start": item.start_time},
        )
        return appointment_id

    def _check_free(self, professional_id: str, date: str, start_time: str, end_time: str) -> None:
        if self._is_taken(professional_id, date, time_to_minutes(start_time), time_to_minutes(end_time)):
            raise SlotConflict(f"{date} {start_time} is no longer available")

    def _is_taken(self, professional_id: str, date: str, start: int, end: int) -> bool:
        for booked_professional, booked_date, booked_start, booked_end in self._appointments.values():
            if booked_professional != professional_id or booked_date != date:
                continue
            if not (end <= booked_start or start >= booked_end):
                return True
        return False

    def _check_available(self) -> None:
        if not self.available:
            raise TransportError("Mock salon backend is unavailable")


def _date_from_iso(value: str) -> date:
    return date.fromisoformat(value.split("T", 1)[0])
