from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, tzinfo


class ClockPort(ABC):
    @property
    @abstractmethod
    def timezone(self) -> tzinfo:
        """Timezone slot dates and times are expressed in."""
        raise NotImplementedError

    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware instant."""
        raise NotImplementedError
