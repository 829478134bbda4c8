from __future__ import annotations

from abc import ABC, abstractmethod

from salon_scheduler.domain.entities.professional import Professional


class ProfessionalDirectoryPort(ABC):
    @abstractmethod
    def list_professionals(self, salon_id: str) -> list[Professional]:
        """List the salon's professionals. Raises TransportError."""
        raise NotImplementedError
