from __future__ import annotations

from abc import ABC, abstractmethod

from salon_scheduler.domain.entities.time_slot import TimeSlot


class SlotGatewayPort(ABC):
    @abstractmethod
    def list_slots(self, professional_id: str, date: str) -> list[TimeSlot]:
        """List candidate time slots for a professional on a day. Raises TransportError."""
        raise NotImplementedError
