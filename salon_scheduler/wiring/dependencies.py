from functools import lru_cache
import logging

from salon_scheduler.core.config import settings
from salon_scheduler.application.ports.clock import ClockPort
from salon_scheduler.application.ports.session_store import SessionStorePort
from salon_scheduler.application.use_cases.booking_session import BookingSessionEngine
from salon_scheduler.application.use_cases.cancel_appointment import AppointmentCanceller
from salon_scheduler.application.use_cases.session_registry import SessionRegistry
from salon_scheduler.application.use_cases.slot_availability import SlotAvailabilityService
from salon_scheduler.application.use_cases.submit_appointments import AppointmentSubmitter
from salon_scheduler.domain.entities.booking_session import BookingSession
from salon_scheduler.infrastructure.backend.mock_backend import MockSalonBackend
from salon_scheduler.infrastructure.backend.salon_api_client import SalonApiClient
from salon_scheduler.infrastructure.clock.system_clock import SystemClock
from salon_scheduler.infrastructure.store.json_store import JsonSessionStore
from salon_scheduler.infrastructure.store.memory_store import MemorySessionStore


_session_store: SessionStorePort | None = None
_session_registry: SessionRegistry | None = None


@lru_cache
def get_clock() -> ClockPort:
    return SystemClock(settings.SALON_TIMEZONE)


@lru_cache
def get_backend() -> MockSalonBackend | SalonApiClient:
    logger = logging.getLogger(__name__)
    if not settings.SALON_API_BASE_URL:
        if settings.ENV.lower() in {"dev", "local"}:
            logger.info("Using MockSalonBackend (SALON_API_BASE_URL missing, ENV=dev/local)")
            return MockSalonBackend()
        raise ValueError("SALON_API_BASE_URL is required outside dev/local.")

    logger.info("Using SalonApiClient", extra={"base_url": settings.SALON_API_BASE_URL})
    return SalonApiClient()


def get_session_store() -> SessionStorePort:
    global _session_store
    if _session_store is None:
        if settings.SESSION_STORE_PROVIDER.lower() == "json":
            _session_store = JsonSessionStore(data_dir=settings.SESSION_DATA_DIR)
        else:
            _session_store = MemorySessionStore()
    return _session_store


def build_engine(session: BookingSession) -> BookingSessionEngine:
    """Engine for one session; the slot cache lives and dies with it."""
    backend = get_backend()
    store = get_session_store()
    return BookingSessionEngine(
        session=session,
        slots=SlotAvailabilityService(backend, min_lead_minutes=settings.MIN_BOOKING_LEAD_MINUTES),
        submitter=AppointmentSubmitter(backend, store),
        store=store,
        clock=get_clock(),
        directory=backend,
        window_days=settings.BOOKING_WINDOW_DAYS,
        lockout_hours=settings.RESCHEDULE_LOCKOUT_HOURS,
    )


def get_session_registry() -> SessionRegistry:
    global _session_registry
    if _session_registry is None:
        _session_registry = SessionRegistry(
            store=get_session_store(),
            engine_factory=build_engine,
            idle_seconds=settings.SESSION_IDLE_SECONDS,
        )
    return _session_registry


def get_appointment_canceller() -> AppointmentCanceller:
    return AppointmentCanceller(
        backend=get_backend(),
        clock=get_clock(),
        lockout_hours=settings.RESCHEDULE_LOCKOUT_HOURS,
    )
