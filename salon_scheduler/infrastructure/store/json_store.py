from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any

from salon_scheduler.application.ports.session_store import SessionStorePort
from salon_scheduler.domain.entities.booking_session import BookingSession
from salon_scheduler.infrastructure.store.session_codec import deserialize_session, serialize_session

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class JsonSessionStore(SessionStorePort):
    """One JSON file per session, written atomically."""

    def __init__(self, data_dir: str = "./data/sessions") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, threading.Lock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict
        self._logger = logging.getLogger(__name__)

    def _get_lock(self, session_id: str) -> threading.Lock:
        """Get or create a lock for a session_id."""
        with self._lock_lock:
            if session_id not in self._locks:
                self._locks[session_id] = threading.Lock()
            return self._locks[session_id]

    def _get_file_path(self, session_id: str) -> Path:
        if not _SESSION_ID_RE.match(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self._data_dir / f"{session_id}.json"

    def _read(self, file_path: Path) -> dict[str, Any] | None:
        if not file_path.exists():
            return None
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            # Corrupted file behaves like a missing session
            self._logger.warning("Unreadable session file", extra={"path": str(file_path), "error": str(e)})
            return None

    def load(self, session_id: str) -> BookingSession | None:
        try:
            file_path = self._get_file_path(session_id)
        except ValueError:
            return None
        with self._get_lock(session_id):
            data = self._read(file_path)
        if data is None:
            return None
        return deserialize_session(data)

    def save(self, session: BookingSession) -> None:
        """Save session data to JSON file atomically."""
        file_path = self._get_file_path(session.session_id)
        temp_path = file_path.with_suffix(".json.tmp")
        data = serialize_session(session)

        with self._get_lock(session.session_id):
            try:
                with open(temp_path, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                temp_path.replace(file_path)
            except Exception:
                if temp_path.exists():
                    try:
                        temp_path.unlink()
                    except OSError:
                        pass
                raise

    def clear(self, session_id: str) -> None:
        try:
            file_path = self._get_file_path(session_id)
        except ValueError:
            return
        with self._get_lock(session_id):
            file_path.unlink(missing_ok=True)
        with self._lock_lock:
            self._locks.pop(session_id, None)

    def list_local_bookings(self) -> list[BookingSession]:
        sessions: list[BookingSession] = []
        for file_path in sorted(self._data_dir.glob("*.json")):
            data = self._read(file_path)
            if not data or not data.get("isLocalBooking"):
                continue
            session = deserialize_session(data)
            if session is not None:
                sessions.append(session)
        return sessions
