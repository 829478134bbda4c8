from pydantic import BaseModel, Field, field_validator

from salon_scheduler.application.utils.duration import parse_duration_minutes
from salon_scheduler.domain.entities.booking_session import SessionMode
from salon_scheduler.domain.entities.service_item import DEFAULT_MEMBER_CATEGORY

ANY_PROFESSIONAL = "any"


class ParticipantSchema(BaseModel):
    member_name: str = Field(min_length=1)
    member_category: str = DEFAULT_MEMBER_CATEGORY


class ServiceItemSchema(BaseModel):
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    # Minutes, or a salon duration string such as "1 hour 30 minutes"
    duration: int | str

    @field_validator("duration")
    @classmethod
    def _to_minutes(cls, value: int | str) -> int:
        return parse_duration_minutes(value)


class SelectServicesRequestSchema(BaseModel):
    items: list[ServiceItemSchema] = Field(min_length=1)
    # Group sessions: the member these services are for
    participant: ParticipantSchema | None = None


class StartSessionRequestSchema(SelectServicesRequestSchema):
    mode: SessionMode = SessionMode.individual
    salon_id: str | None = None


class AssignmentSchema(BaseModel):
    service_name: str
    # A professional id, or "any" for no preference
    professional_id: str
    professional_name: str = ""


class AssignmentsRequestSchema(BaseModel):
    assignments: list[AssignmentSchema] = Field(min_length=1)


class SelectDateRequestSchema(BaseModel):
    date: str


class SelectSlotRequestSchema(BaseModel):
    slot_id: str


class JumpRequestSchema(BaseModel):
    index: int


class AddParticipantRequestSchema(BaseModel):
    participant: ParticipantSchema | None = None


class ContactSchema(BaseModel):
    name: str = "Guest"
    email: str = ""
    phone: str = ""


class RescheduleRequestSchema(BaseModel):
    appointment_id: str = Field(min_length=1)
    original_date: str
    original_start_time: str
    professional_id: str = Field(min_length=1)
    salon_id: str | None = None
    service: ServiceItemSchema


class ProfessionalSchema(BaseModel):
    professional_id: str
    name: str


class CalendarDaySchema(BaseModel):
    day: str
    date: int
    full_date: str


class TimeSlotSchema(BaseModel):
    id: str
    date: str
    start_time: str
    end_time: str


class ServiceItemOutSchema(BaseModel):
    name: str
    price: float
    duration_minutes: int
    participant: ParticipantSchema | None = None


class ScheduledItemSchema(BaseModel):
    service_name: str
    price: float
    duration_minutes: int
    date: str
    start_time: str
    end_time: str
    professional_id: str
    professional_name: str
    participant: ParticipantSchema | None = None


class RescheduleTargetSchema(BaseModel):
    id: str
    original_date: str
    original_start_time: str
    professional_id: str


class SessionViewSchema(BaseModel):
    session_id: str
    stage: str
    mode: str
    cursor: int
    item_count: int
    current_item: ServiceItemOutSchema | None = None
    professional: ProfessionalSchema | None = None
    dates: list[CalendarDaySchema] = Field(default_factory=list)
    selected_date: str | None = None
    slots: list[TimeSlotSchema] = Field(default_factory=list)
    selected_slot: TimeSlotSchema | None = None
    scheduled: list[ScheduledItemSchema] = Field(default_factory=list)
    running_total: float
    is_complete: bool
    is_local_booking: bool
    reschedule_target: RescheduleTargetSchema | None = None
    reschedule_locked: bool = False
    confirmed_ids: dict[int, str] = Field(default_factory=dict)


class FailedItemSchema(BaseModel):
    index: int
    service_name: str
    reason: str


class SubmissionSchema(BaseModel):
    status: str
    created_ids: list[str] = Field(default_factory=list)
    failed: list[FailedItemSchema] = Field(default_factory=list)
    booking_id: str | None = None


class TransitionResponseSchema(BaseModel):
    outcome: str
    error: str | None = None
    session: SessionViewSchema
    submission: SubmissionSchema | None = None


class LocalBookingSchema(BaseModel):
    session_id: str
    mode: str
    salon_id: str | None = None
    scheduled: list[ScheduledItemSchema]
    total: float
