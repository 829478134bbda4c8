from __future__ import annotations

from abc import ABC, abstractmethod

from salon_scheduler.domain.entities.contact import ContactInfo
from salon_scheduler.domain.entities.scheduled_item import ScheduledItem
from salon_scheduler.domain.entities.submission import GroupBookingReceipt, RescheduleChange


class AppointmentBackendPort(ABC):
    @abstractmethod
    def create_appointments(
        self,
        contact: ContactInfo,
        items: list[ScheduledItem],
        salon_id: str | None = None,
    ) -> list[str]:
        """Create appointments. Returns created ids. Raises SlotConflict or TransportError."""
        raise NotImplementedError

    @abstractmethod
    def create_group_appointments(
        self,
        contact: ContactInfo,
        items: list[ScheduledItem],
        salon_id: str | None = None,
    ) -> GroupBookingReceipt:
        """Create all group appointments as one unit. Raises SlotConflict or TransportError."""
        raise NotImplementedError

    @abstractmethod
    def reschedule_appointment(self, appointment_id: str, change: RescheduleChange) -> None:
        """Move an existing appointment. Raises SlotConflict or TransportError."""
        raise NotImplementedError

    @abstractmethod
    def cancel_appointment(self, appointment_id: str) -> bool:
        """Cancel an appointment. Returns True if the backend accepted it."""
        raise NotImplementedError
