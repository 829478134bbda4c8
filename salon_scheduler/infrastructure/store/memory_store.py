from __future__ import annotations

import copy
from typing import Any

from salon_scheduler.application.ports.session_store import SessionStorePort
from salon_scheduler.domain.entities.booking_session import BookingSession
from salon_scheduler.infrastructure.store.session_codec import deserialize_session, serialize_session


class MemorySessionStore(SessionStorePort):
    def __init__(self) -> None:
        # Serialized payloads, so callers never share mutable state with the store
        self._sessions: dict[str, dict[str, Any]] = {}

    def load(self, session_id: str) -> BookingSession | None:
        data = self._sessions.get(session_id)
        if data is None:
            return None
        return deserialize_session(copy.deepcopy(data))

    def save(self, session: BookingSession) -> None:
        self._sessions[session.session_id] = serialize_session(session)

    def clear(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def list_local_bookings(self) -> list[BookingSession]:
        sessions: list[BookingSession] = []
        for data in self._sessions.values():
            if not data.get("isLocalBooking"):
                continue
            session = deserialize_session(copy.deepcopy(data))
            if session is not None:
                sessions.append(session)
        return sessions
