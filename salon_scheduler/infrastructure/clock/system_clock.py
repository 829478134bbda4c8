from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from salon_scheduler.application.ports.clock import ClockPort


class SystemClock(ClockPort):
    def __init__(self, timezone: str | tzinfo = "UTC") -> None:
        self._timezone = _safe_timezone(timezone) if isinstance(timezone, str) else timezone

    @property
    def timezone(self) -> tzinfo:
        return self._timezone

    def now(self) -> datetime:
        return datetime.now(self._timezone)


def _safe_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except Exception:
        logging.getLogger(__name__).warning("Unknown timezone, using UTC", extra={"timezone": name})
        return ZoneInfo("UTC")
