"""
Shared fixtures: a fixed clock and engines wired to the in-memory salon backend.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo

import pytest

from salon_scheduler.application.ports.clock import ClockPort
from salon_scheduler.application.ports.slot_gateway import SlotGatewayPort
from salon_scheduler.application.use_cases.booking_session import BookingSessionEngine
from salon_scheduler.application.use_cases.slot_availability import SlotAvailabilityService
from salon_scheduler.application.use_cases.submit_appointments import AppointmentSubmitter
from salon_scheduler.domain.entities.booking_session import BookingSession, SessionMode
from salon_scheduler.infrastructure.backend.mock_backend import MockSalonBackend
from salon_scheduler.infrastructure.store.memory_store import MemorySessionStore

# Monday 2030-06-03 10:00 UTC; the bookable window runs 2030-06-03 .. 2030-06-09.
NOW = datetime(2030, 6, 3, 10, 0, tzinfo=timezone.utc)


class FixedClock(ClockPort):
    def __init__(self, now: datetime = NOW) -> None:
        self.current = now

    @property
    def timezone(self) -> tzinfo:
        return self.current.tzinfo

    def now(self) -> datetime:
        return self.current


@pytest.fixture(autouse=True)
def info_logging(caplog):
    """Run every test at the service's default INFO level so log calls are actually formatted."""
    caplog.set_level(logging.INFO)
    return caplog


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def backend() -> MockSalonBackend:
    return MockSalonBackend()


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def make_engine(clock, backend, store):
    def _make(
        mode: SessionMode = SessionMode.individual,
        salon_id: str | None = "salon_1",
        gateway: SlotGatewayPort | None = None,
        session: BookingSession | None = None,
    ) -> BookingSessionEngine:
        return BookingSessionEngine(
            session=session or BookingSession(mode=mode, salon_id=salon_id),
            slots=SlotAvailabilityService(gateway or backend),
            submitter=AppointmentSubmitter(backend, store),
            store=store,
            clock=clock,
            directory=backend,
        )

    return _make
