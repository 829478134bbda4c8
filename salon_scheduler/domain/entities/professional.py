from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Professional:
    professional_id: str
    name: str
    service_names: tuple[str, ...] = field(default_factory=tuple)
    is_available: bool = True

    def offers(self, service_name: str) -> bool:
        # An empty list means the salon did not restrict this professional.
        if not self.service_names:
            return True
        wanted = service_name.lower().strip()
        return any(name.lower().strip() == wanted for name in self.service_names)


@dataclass(frozen=True)
class SpecificProfessional:
    professional_id: str
    name: str = ""


@dataclass(frozen=True)
class AnyAvailable:
    """No preference; resolved against the salon's professional directory."""


ProfessionalChoice = SpecificProfessional | AnyAvailable


@dataclass(frozen=True)
class ProfessionalAssignment:
    service_name: str
    choice: ProfessionalChoice


@dataclass(frozen=True)
class ResolvedProfessional:
    professional_id: str
    name: str
