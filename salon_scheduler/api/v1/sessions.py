from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from salon_scheduler.api.v1.schemas import (
    ANY_PROFESSIONAL,
    AddParticipantRequestSchema,
    AssignmentsRequestSchema,
    CalendarDaySchema,
    ContactSchema,
    FailedItemSchema,
    JumpRequestSchema,
    LocalBookingSchema,
    ParticipantSchema,
    ProfessionalSchema,
    RescheduleRequestSchema,
    RescheduleTargetSchema,
    ScheduledItemSchema,
    SelectDateRequestSchema,
    SelectServicesRequestSchema,
    SelectSlotRequestSchema,
    ServiceItemOutSchema,
    ServiceItemSchema,
    SessionViewSchema,
    StartSessionRequestSchema,
    SubmissionSchema,
    TimeSlotSchema,
    TransitionResponseSchema,
)
from salon_scheduler.application.exceptions import SchedulingError
from salon_scheduler.application.use_cases.booking_session import (
    BookingSessionEngine,
    Outcome,
    SessionView,
    TransitionResult,
)
from salon_scheduler.application.use_cases.session_registry import SessionRegistry
from salon_scheduler.application.utils.pricing import total
from salon_scheduler.domain.entities.booking_session import AppointmentRef, SessionMode
from salon_scheduler.domain.entities.contact import ContactInfo
from salon_scheduler.domain.entities.professional import AnyAvailable, SpecificProfessional
from salon_scheduler.domain.entities.service_item import ParticipantTag, ServiceItem
from salon_scheduler.domain.entities.submission import SubmissionResult
from salon_scheduler.wiring.dependencies import get_session_registry

router = APIRouter()

_STATUS_BY_OUTCOME = {
    Outcome.ok: 200,
    Outcome.advanced: 200,
    Outcome.review_ready: 200,
    Outcome.submitted: 200,
    Outcome.selection_required: 422,
    Outcome.invalid_input: 422,
    Outcome.professional_unresolved: 422,
    Outcome.slot_unavailable: 422,
    Outcome.invalid_stage: 409,
    Outcome.slot_conflict: 409,
    Outcome.busy: 409,
    Outcome.policy_violation: 423,
    Outcome.transport_error: 502,
    Outcome.partial_failure: 207,
    Outcome.local_fallback: 202,
}


@router.post("", response_model=TransitionResponseSchema, status_code=201)
def start_session(
    req: StartSessionRequestSchema,
    registry: SessionRegistry = Depends(get_session_registry),
):
    engine = registry.create(mode=req.mode, salon_id=req.salon_id)
    result = engine.select_services(
        [_service_item(item) for item in req.items],
        _participant(req.participant),
    )
    return _respond(engine, result, success_status=201)


@router.get("/local-bookings", response_model=list[LocalBookingSchema])
def list_local_bookings(registry: SessionRegistry = Depends(get_session_registry)):
    return [
        LocalBookingSchema(
            session_id=session.session_id,
            mode=session.mode.value,
            salon_id=session.salon_id,
            scheduled=[ScheduledItemSchema.model_validate(item, from_attributes=True) for item in session.scheduled],
            total=total(session.scheduled),
        )
        for session in registry.local_bookings()
    ]


@router.post("/reschedules", response_model=TransitionResponseSchema, status_code=201)
def start_reschedule(
    req: RescheduleRequestSchema,
    registry: SessionRegistry = Depends(get_session_registry),
):
    engine = registry.create(mode=SessionMode.individual, salon_id=req.salon_id)
    target = AppointmentRef(
        id=req.appointment_id,
        original_date=req.original_date,
        original_start_time=req.original_start_time,
        professional_id=req.professional_id,
    )
    result = engine.start_reschedule(target, _service_item(req.service))
    return _respond(engine, result, success_status=201)


@router.get("/{session_id}", response_model=SessionViewSchema)
def get_session(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    return _view_schema(_engine(registry, session_id).view())


@router.post("/{session_id}/services", response_model=TransitionResponseSchema)
def select_services(
    session_id: str,
    req: SelectServicesRequestSchema,
    registry: SessionRegistry = Depends(get_session_registry),
):
    engine = _engine(registry, session_id)
    result = engine.select_services(
        [_service_item(item) for item in req.items],
        _participant(req.participant),
    )
    return _respond(engine, result)


@router.put("/{session_id}/assignments", response_model=TransitionResponseSchema)
def assign_professionals(
    session_id: str,
    req: AssignmentsRequestSchema,
    registry: SessionRegistry = Depends(get_session_registry),
):
    engine = _engine(registry, session_id)
    result: TransitionResult | None = None
    for assignment in req.assignments:
        if assignment.professional_id.strip().lower() == ANY_PROFESSIONAL:
            choice = AnyAvailable()
        else:
            choice = SpecificProfessional(
                professional_id=assignment.professional_id,
                name=assignment.professional_name,
            )
        result = engine.assign_professional(assignment.service_name, choice)
        if not result.ok:
            break
    return _respond(engine, result)


@router.post("/{session_id}/schedule", response_model=TransitionResponseSchema)
def begin_scheduling(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    engine = _engine(registry, session_id)
    return _respond(engine, engine.begin_scheduling())


@router.post("/{session_id}/date", response_model=TransitionResponseSchema)
def select_date(
    session_id: str,
    req: SelectDateRequestSchema,
    registry: SessionRegistry = Depends(get_session_registry),
):
    engine = _engine(registry, session_id)
    return _respond(engine, engine.select_date(req.date))


@router.post("/{session_id}/slot", response_model=TransitionResponseSchema)
def select_slot(
    session_id: str,
    req: SelectSlotRequestSchema,
    registry: SessionRegistry = Depends(get_session_registry),
):
    engine = _engine(registry, session_id)
    return _respond(engine, engine.select_slot(req.slot_id))


@router.post("/{session_id}/advance", response_model=TransitionResponseSchema)
def advance(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    engine = _engine(registry, session_id)
    return _respond(engine, engine.advance())


@router.post("/{session_id}/retreat", response_model=TransitionResponseSchema)
def retreat(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    engine = _engine(registry, session_id)
    return _respond(engine, engine.retreat())


@router.post("/{session_id}/jump", response_model=TransitionResponseSchema)
def jump(
    session_id: str,
    req: JumpRequestSchema,
    registry: SessionRegistry = Depends(get_session_registry),
):
    engine = _engine(registry, session_id)
    return _respond(engine, engine.jump(req.index))


@router.post("/{session_id}/participants", response_model=TransitionResponseSchema)
def add_participant(
    session_id: str,
    req: AddParticipantRequestSchema | None = None,
    registry: SessionRegistry = Depends(get_session_registry),
):
    engine = _engine(registry, session_id)
    participant = _participant(req.participant) if req is not None else None
    return _respond(engine, engine.add_participant(participant))


@router.post("/{session_id}/submit", response_model=TransitionResponseSchema)
def submit(
    session_id: str,
    req: ContactSchema | None = None,
    registry: SessionRegistry = Depends(get_session_registry),
):
    engine = _engine(registry, session_id)
    contact = ContactInfo(name=req.name, email=req.email, phone=req.phone) if req is not None else ContactInfo()
    try:
        result = engine.submit(contact)
    except SchedulingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if engine.is_discarded:
        registry.forget(session_id)
    return _respond(engine, result)


@router.delete("/{session_id}", status_code=204)
def abandon(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    engine = _engine(registry, session_id)
    result = engine.abandon()
    if result.outcome == Outcome.busy:
        raise HTTPException(status_code=409, detail=str(result.error))
    registry.forget(session_id)


def _engine(registry: SessionRegistry, session_id: str) -> BookingSessionEngine:
    engine = registry.get(session_id)
    if engine is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return engine


def _respond(engine: BookingSessionEngine, result: TransitionResult, success_status: int = 200):
    body = TransitionResponseSchema(
        outcome=result.outcome.value,
        error=str(result.error) if result.error else None,
        session=_view_schema(engine.view()),
        submission=_submission_schema(result.submission),
    )
    status_code = _STATUS_BY_OUTCOME[result.outcome]
    if status_code == 200:
        status_code = success_status
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _service_item(item: ServiceItemSchema) -> ServiceItem:
    return ServiceItem(name=item.name, unit_price=item.price, duration_minutes=item.duration)


def _participant(participant: ParticipantSchema | None) -> ParticipantTag | None:
    if participant is None:
        return None
    return ParticipantTag(member_name=participant.member_name, member_category=participant.member_category)


def _view_schema(view: SessionView) -> SessionViewSchema:
    item = view.current_item
    return SessionViewSchema(
        session_id=view.session_id,
        stage=view.stage.value,
        mode=view.mode.value,
        cursor=view.cursor,
        item_count=view.item_count,
        current_item=(
            ServiceItemOutSchema(
                name=item.name,
                price=item.unit_price,
                duration_minutes=item.duration_minutes,
                participant=ParticipantSchema.model_validate(item.participant, from_attributes=True)
                if item.participant
                else None,
            )
            if item
            else None
        ),
        professional=(
            ProfessionalSchema.model_validate(view.professional, from_attributes=True)
            if view.professional
            else None
        ),
        dates=[CalendarDaySchema.model_validate(day, from_attributes=True) for day in view.dates],
        selected_date=view.selected_date,
        slots=[TimeSlotSchema.model_validate(slot, from_attributes=True) for slot in view.slots],
        selected_slot=(
            TimeSlotSchema.model_validate(view.selected_slot, from_attributes=True)
            if view.selected_slot
            else None
        ),
        scheduled=[ScheduledItemSchema.model_validate(s, from_attributes=True) for s in view.scheduled],
        running_total=view.running_total,
        is_complete=view.is_complete,
        is_local_booking=view.is_local_booking,
        reschedule_target=(
            RescheduleTargetSchema.model_validate(view.reschedule_target, from_attributes=True)
            if view.reschedule_target
            else None
        ),
        reschedule_locked=view.reschedule_locked,
        confirmed_ids=view.confirmed_ids,
    )


def _submission_schema(submission: SubmissionResult | None) -> SubmissionSchema | None:
    if submission is None:
        return None
    return SubmissionSchema(
        status=submission.status.value,
        created_ids=submission.created_ids,
        failed=[
            FailedItemSchema(index=f.index, service_name=f.item.service_name, reason=f.reason)
            for f in submission.failed
        ],
        booking_id=submission.booking_id,
    )
