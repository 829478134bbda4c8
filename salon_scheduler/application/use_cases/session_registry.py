from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from salon_scheduler.application.ports.session_store import SessionStorePort
from salon_scheduler.application.use_cases.booking_session import BookingSessionEngine
from salon_scheduler.domain.entities.booking_session import BookingSession, SessionMode


class SessionRegistry:
    """
    Live engines by session id, rehydrated from the durability store after a restart or redirect.

    Engines untouched for `idle_seconds` are dropped from memory together with their slot cache;
    the session itself stays in the store and the next `get()` builds a fresh engine for it.
    """

    def __init__(
        self,
        store: SessionStorePort,
        engine_factory: Callable[[BookingSession], BookingSessionEngine],
        idle_seconds: float | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._engine_factory = engine_factory
        self._idle_seconds = idle_seconds
        self._monotonic = monotonic
        self._engines: dict[str, BookingSessionEngine] = {}
        self._last_used: dict[str, float] = {}
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def create(self, mode: SessionMode = SessionMode.individual, salon_id: str | None = None) -> BookingSessionEngine:
        engine = self._engine_factory(BookingSession(mode=mode, salon_id=salon_id))
        with self._lock:
            self._evict_idle()
            self._track(engine)
        self._logger.info(
            "Session created",
            extra={"session_id": engine.session_id, "mode": mode.value},
        )
        return engine

    def get(self, session_id: str) -> BookingSessionEngine | None:
        with self._lock:
            self._evict_idle()
            engine = self._engines.get(session_id)
            if engine is not None and not engine.is_discarded:
                self._last_used[session_id] = self._monotonic()
                return engine
            self._drop(session_id)

            session = self._store.load(session_id)
            if session is None:
                return None
            engine = self._engine_factory(session)
            self._track(engine)
            self._logger.info("Session restored", extra={"session_id": session_id, "stage": session.stage.value})
            return engine

    def forget(self, session_id: str) -> None:
        with self._lock:
            self._drop(session_id)

    def live_count(self) -> int:
        with self._lock:
            return len(self._engines)

    def local_bookings(self) -> list[BookingSession]:
        return self._store.list_local_bookings()

    def _track(self, engine: BookingSessionEngine) -> None:
        self._engines[engine.session_id] = engine
        self._last_used[engine.session_id] = self._monotonic()

    def _drop(self, session_id: str) -> None:
        self._engines.pop(session_id, None)
        self._last_used.pop(session_id, None)

    def _evict_idle(self) -> None:
        if not self._idle_seconds:
            return
        cutoff = self._monotonic() - self._idle_seconds
        idle = [session_id for session_id, used in self._last_used.items() if used < cutoff]
        for session_id in idle:
            self._drop(session_id)
        if idle:
            self._logger.info("Idle sessions evicted from memory", extra={"evicted": len(idle)})
