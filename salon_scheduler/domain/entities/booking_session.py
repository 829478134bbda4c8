from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

from salon_scheduler.domain.entities.professional import ProfessionalAssignment, ResolvedProfessional
from salon_scheduler.domain.entities.scheduled_item import ScheduledItem
from salon_scheduler.domain.entities.service_item import ParticipantTag, ServiceItem
from salon_scheduler.domain.entities.time_slot import TimeSlot


class SessionMode(str, Enum):
    individual = "individual"
    group = "group"


class Stage(str, Enum):
    selecting_services = "selecting_services"
    assigning_professionals = "assigning_professionals"
    scheduling_item = "scheduling_item"
    review_and_submit = "review_and_submit"
    submitted = "submitted"
    failed = "failed"


@dataclass(frozen=True)
class AppointmentRef:
    id: str
    original_date: str  # YYYY-MM-DD
    original_start_time: str  # HH:MM
    professional_id: str


@dataclass
class BookingSession:
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    mode: SessionMode = SessionMode.individual
    stage: Stage = Stage.selecting_services
    items: list[ServiceItem] = field(default_factory=list)
    assignments: list[ProfessionalAssignment] = field(default_factory=list)
    cursor: int = 0
    scheduled: list[ScheduledItem] = field(default_factory=list)
    reschedule_target: AppointmentRef | None = None
    salon_id: str | None = None
    # Group mode: member the next select_services round is for
    next_participant: ParticipantTag | None = None
    # Selection for the item under the cursor, not yet committed by advance()
    selected_date: str | None = None
    selected_slot: TimeSlot | None = None
    current_professional: ResolvedProfessional | None = None
    # Backend ids of scheduled items already created, keyed by index in `scheduled`
    confirmed_ids: dict[int, str] = field(default_factory=dict)
    is_local_booking: bool = False
    revision: int = 0

    @property
    def is_reschedule(self) -> bool:
        return self.reschedule_target is not None

    @property
    def is_complete(self) -> bool:
        return self.cursor == len(self.items) and len(self.scheduled) == len(self.items)

    @property
    def current_item(self) -> ServiceItem | None:
        if self.stage != Stage.scheduling_item or self.cursor >= len(self.items):
            return None
        return self.items[self.cursor]

    def assignment_for(self, service_name: str) -> ProfessionalAssignment | None:
        for assignment in self.assignments:
            if assignment.service_name == service_name:
                return assignment
        return None

    def clear_selection(self) -> None:
        self.selected_slot = None
