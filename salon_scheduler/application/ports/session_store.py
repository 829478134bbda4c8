from __future__ import annotations

from abc import ABC, abstractmethod

from salon_scheduler.domain.entities.booking_session import BookingSession


class SessionStorePort(ABC):
    @abstractmethod
    def load(self, session_id: str) -> BookingSession | None:
        """Load a session, or None if it was never saved, was cleared, or has an old schema version."""
        raise NotImplementedError

    @abstractmethod
    def save(self, session: BookingSession) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear(self, session_id: str) -> None:
        """Remove every key belonging to this session."""
        raise NotImplementedError

    @abstractmethod
    def list_local_bookings(self) -> list[BookingSession]:
        """Sessions persisted in the local fallback state (is_local_booking=True)."""
        raise NotImplementedError
