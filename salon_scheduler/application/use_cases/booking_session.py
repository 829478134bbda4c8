from __future__ import annotations

import functools
import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum

from salon_scheduler.application.exceptions import (
    PolicyViolation,
    SchedulingError,
    SlotConflict,
    ValidationError,
)
from salon_scheduler.application.ports.clock import ClockPort
from salon_scheduler.application.ports.professional_directory import ProfessionalDirectoryPort
from salon_scheduler.application.ports.session_store import SessionStorePort
from salon_scheduler.application.use_cases.slot_availability import SlotAvailabilityService
from salon_scheduler.application.use_cases.submit_appointments import AppointmentSubmitter
from salon_scheduler.application.utils.calendar_window import (
    DEFAULT_WINDOW_DAYS,
    CalendarDay,
    is_iso_day,
    selectable_dates,
)
from salon_scheduler.application.utils.duration import compute_end_time, time_to_minutes
from salon_scheduler.application.utils.pricing import total
from salon_scheduler.application.utils.temporal_policy import (
    LOCKOUT_HOURS,
    is_past_slot,
    is_reschedule_locked,
)
from salon_scheduler.domain.entities.booking_session import (
    AppointmentRef,
    BookingSession,
    SessionMode,
    Stage,
)
from salon_scheduler.domain.entities.contact import ContactInfo
from salon_scheduler.domain.entities.professional import (
    AnyAvailable,
    ProfessionalAssignment,
    ProfessionalChoice,
    ResolvedProfessional,
    SpecificProfessional,
)
from salon_scheduler.domain.entities.scheduled_item import ScheduledItem
from salon_scheduler.domain.entities.service_item import (
    PRIMARY_CATEGORY,
    DEFAULT_MEMBER_CATEGORY,
    ParticipantTag,
    ServiceItem,
)
from salon_scheduler.domain.entities.submission import SubmissionResult, SubmissionStatus
from salon_scheduler.domain.entities.time_slot import TimeSlot


class Outcome(str, Enum):
    ok = "ok"
    advanced = "advanced"
    review_ready = "review_ready"
    submitted = "submitted"
    selection_required = "selection_required"
    invalid_input = "invalid_input"
    professional_unresolved = "professional_unresolved"
    policy_violation = "policy_violation"
    slot_unavailable = "slot_unavailable"
    slot_conflict = "slot_conflict"
    partial_failure = "partial_failure"
    transport_error = "transport_error"
    local_fallback = "local_fallback"
    invalid_stage = "invalid_stage"
    busy = "busy"


SUCCESS_OUTCOMES = frozenset({Outcome.ok, Outcome.advanced, Outcome.review_ready, Outcome.submitted})

_SUBMISSION_OUTCOMES = {
    SubmissionStatus.submitted: Outcome.submitted,
    SubmissionStatus.partial_failure: Outcome.partial_failure,
    SubmissionStatus.slot_conflict: Outcome.slot_conflict,
    SubmissionStatus.transport_error: Outcome.transport_error,
    SubmissionStatus.policy_violation: Outcome.policy_violation,
    SubmissionStatus.local_fallback: Outcome.local_fallback,
}


@dataclass(frozen=True)
class TransitionResult:
    outcome: Outcome
    session: BookingSession
    error: SchedulingError | None = None
    submission: SubmissionResult | None = None

    @property
    def ok(self) -> bool:
        return self.outcome in SUCCESS_OUTCOMES


@dataclass(frozen=True)
class SessionView:
    session_id: str
    stage: Stage
    mode: SessionMode
    cursor: int
    item_count: int
    current_item: ServiceItem | None
    professional: ResolvedProfessional | None
    dates: list[CalendarDay]
    selected_date: str | None
    slots: list[TimeSlot]
    selected_slot: TimeSlot | None
    scheduled: list[ScheduledItem]
    running_total: float
    is_complete: bool
    is_local_booking: bool
    reschedule_target: AppointmentRef | None = None
    reschedule_locked: bool = False
    confirmed_ids: dict[int, str] = field(default_factory=dict)


def _exclusive(method):
    """Serialize transitions; a call arriving mid-transition returns `busy` instead of waiting."""

    @functools.wraps(method)
    def wrapper(self: "BookingSessionEngine", *args, **kwargs) -> TransitionResult:
        if not self._lock.acquire(blocking=False):
            self._logger.warning(
                "Transition ignored, another one is in progress",
                extra={"session_id": self._session.session_id, "operation": method.__name__},
            )
            return TransitionResult(
                outcome=Outcome.busy,
                session=self._session,
                error=SchedulingError("Another transition is in progress for this session"),
            )
        try:
            return method(self, *args, **kwargs)
        finally:
            self._lock.release()

    return wrapper


class BookingSessionEngine:
    """
    State machine for one appointment scheduling session.

    selecting_services -> assigning_professionals -> scheduling_item(i)
        -> scheduling_item(i + 1) | review_and_submit -> submitted | failed

    Every transition persists the session to the durability store; a successful
    submission or an explicit abandon clears it. Guard failures never raise: they
    come back as a TransitionResult whose outcome names the condition.
    """

    def __init__(
        self,
        session: BookingSession,
        slots: SlotAvailabilityService,
        submitter: AppointmentSubmitter,
        store: SessionStorePort,
        clock: ClockPort,
        directory: ProfessionalDirectoryPort | None = None,
        window_days: int = DEFAULT_WINDOW_DAYS,
        lockout_hours: float = LOCKOUT_HOURS,
    ) -> None:
        self._session = session
        self._slots = slots
        self._submitter = submitter
        self._store = store
        self._clock = clock
        self._directory = directory
        self._window_days = window_days
        self._lockout_hours = lockout_hours
        self._lock = threading.Lock()
        self._discarded = False
        self._logger = logging.getLogger(__name__)

    @property
    def session(self) -> BookingSession:
        return self._session

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def is_discarded(self) -> bool:
        return self._discarded

    # -- selection stages -------------------------------------------------

    @_exclusive
    def select_services(
        self,
        items: list[ServiceItem],
        participant: ParticipantTag | None = None,
    ) -> TransitionResult:
        session = self._session
        if session.stage != Stage.selecting_services or session.is_reschedule:
            return self._invalid_stage("select_services")
        if not items:
            return self._fail(Outcome.invalid_input, ValidationError("Select at least one service"))

        names = [item.name.strip().lower() for item in items]
        if any(not name for name in names):
            return self._fail(Outcome.invalid_input, ValidationError("Service name is required"))
        if len(set(names)) != len(names):
            return self._fail(
                Outcome.invalid_input,
                ValidationError("Each service can only be selected once per round"),
            )
        if any(item.duration_minutes <= 0 or item.unit_price < 0 for item in items):
            return self._fail(
                Outcome.invalid_input,
                ValidationError("Services need a positive duration and a non-negative price"),
            )

        if session.mode == SessionMode.group:
            tag = participant or session.next_participant or self._default_participant()
            items = [replace(item, participant=tag) for item in items]
        else:
            items = [replace(item, participant=None) for item in items]

        session.items = session.items[: len(session.scheduled)] + list(items)
        session.cursor = len(session.scheduled)
        session.assignments = []
        session.next_participant = None
        session.stage = Stage.assigning_professionals
        return self._commit(Outcome.ok)

    @_exclusive
    def assign_professional(self, service_name: str, choice: ProfessionalChoice) -> TransitionResult:
        session = self._session
        if session.stage != Stage.assigning_professionals:
            return self._invalid_stage("assign_professional")
        if service_name not in {item.name for item in self._pending_items()}:
            return self._fail(
                Outcome.invalid_input,
                ValidationError(f"Service '{service_name}' is not part of this selection"),
            )
        if isinstance(choice, SpecificProfessional) and not choice.professional_id.strip():
            return self._fail(Outcome.invalid_input, ValidationError("Professional id is required"))

        session.assignments = [a for a in session.assignments if a.service_name != service_name]
        session.assignments.append(ProfessionalAssignment(service_name=service_name, choice=choice))
        return self._commit(Outcome.ok)

    @_exclusive
    def begin_scheduling(self) -> TransitionResult:
        session = self._session
        if session.stage != Stage.assigning_professionals:
            return self._invalid_stage("begin_scheduling")
        missing = [item.name for item in self._pending_items() if session.assignment_for(item.name) is None]
        if missing:
            return self._fail(
                Outcome.invalid_input,
                ValidationError(f"Choose a professional for: {', '.join(missing)}"),
            )
        self._enter_item(len(session.scheduled))
        return self._commit(Outcome.ok)

    @_exclusive
    def start_reschedule(self, target: AppointmentRef, item: ServiceItem) -> TransitionResult:
        session = self._session
        if session.stage != Stage.selecting_services or session.items:
            return self._invalid_stage("start_reschedule")
        if not target.id or not target.professional_id:
            return self._fail(
                Outcome.invalid_input,
                ValidationError("Appointment id and professional are required to reschedule"),
            )

        session.mode = SessionMode.individual
        session.reschedule_target = target
        session.items = [replace(item, participant=None)]
        session.assignments = [
            ProfessionalAssignment(
                service_name=item.name,
                choice=SpecificProfessional(professional_id=target.professional_id),
            )
        ]
        self._enter_item(0)
        if self._reschedule_locked():
            return self._lockout()
        return self._commit(Outcome.ok)

    # -- scheduling_item(i) ------------------------------------------------

    def view(self) -> SessionView:
        session = self._session
        item = session.current_item
        now = self._clock.now()
        slots: list[TimeSlot] = []
        if item is not None and session.current_professional and session.selected_date:
            slots = self._slots.available_slots(
                session.current_professional.professional_id,
                session.selected_date,
                item.duration_minutes,
                now,
            )

        pending = self._pending_scheduled_item()
        committed = list(session.scheduled)
        if pending is not None and session.cursor < len(committed):
            # Re-opened item: the selection replaces the committed entry in the total.
            committed.pop(session.cursor)

        return SessionView(
            session_id=session.session_id,
            stage=session.stage,
            mode=session.mode,
            cursor=session.cursor,
            item_count=len(session.items),
            current_item=item,
            professional=session.current_professional if item is not None else None,
            dates=self._dates(),
            selected_date=session.selected_date if item is not None else None,
            slots=slots,
            selected_slot=session.selected_slot,
            scheduled=list(session.scheduled),
            running_total=total(committed, pending),
            is_complete=session.is_complete,
            is_local_booking=session.is_local_booking,
            reschedule_target=session.reschedule_target,
            reschedule_locked=session.is_reschedule and self._reschedule_locked(),
            confirmed_ids=dict(session.confirmed_ids),
        )

    def total(self) -> float:
        return total(self._session.scheduled)

    @_exclusive
    def select_date(self, date: str) -> TransitionResult:
        session = self._session
        if session.stage != Stage.scheduling_item:
            return self._invalid_stage("select_date")
        allowed = {day.full_date for day in self._dates()}
        if not is_iso_day(date) or date not in allowed:
            return self._fail(
                Outcome.invalid_input,
                ValidationError(f"Date {date!r} is outside the bookable window"),
            )
        session.selected_date = date
        session.clear_selection()
        if session.current_professional:
            self._slots.get_slots(session.current_professional.professional_id, date)
        return self._commit(Outcome.ok)

    @_exclusive
    def select_slot(self, slot_id: str) -> TransitionResult:
        session = self._session
        item = session.current_item
        if item is None:
            return self._invalid_stage("select_slot")
        if session.is_reschedule and self._reschedule_locked():
            return self._lockout()
        if session.current_professional is None:
            return self._unresolved()
        if not session.selected_date:
            return self._fail(Outcome.selection_required, ValidationError("Select a date first"))

        professional_id = session.current_professional.professional_id
        now = self._clock.now()
        offered = self._slots.available_slots(professional_id, session.selected_date, item.duration_minutes, now)
        chosen = _find_slot(offered, slot_id)
        if chosen is None:
            session.clear_selection()
            raw = _find_slot(self._slots.get_slots(professional_id, session.selected_date), slot_id)
            if raw is not None and not raw.is_booked and is_past_slot(raw.date or session.selected_date, raw.start_time, now):
                return self._fail(Outcome.policy_violation, PolicyViolation("This time slot has already passed"))
            return self._fail(
                Outcome.slot_unavailable,
                ValidationError("Selected slot not available. Please pick another time."),
            )

        if self._clashes_with_scheduled(
            professional_id, chosen.date or session.selected_date, chosen.start_time, item.duration_minutes
        ):
            session.clear_selection()
            return self._double_booked()

        session.selected_slot = chosen
        return self._commit(Outcome.ok)

    @_exclusive
    def advance(self) -> TransitionResult:
        session = self._session
        if session.is_reschedule:
            return self._reschedule_advance()
        if session.stage != Stage.scheduling_item:
            return self._invalid_stage("advance")

        scheduled, failure = self._build_scheduled_item()
        if failure is not None:
            return failure

        self._place(scheduled)
        next_index = len(session.scheduled)
        if next_index < len(session.items):
            self._enter_item(next_index)
            return self._commit(Outcome.advanced)

        self._enter_review()
        return self._commit(Outcome.review_ready)

    @_exclusive
    def reschedule_advance(self) -> TransitionResult:
        return self._reschedule_advance()

    def _reschedule_advance(self) -> TransitionResult:
        session = self._session
        if not session.is_reschedule or session.stage != Stage.scheduling_item:
            return self._invalid_stage("reschedule_advance")
        if self._reschedule_locked():
            return self._lockout()

        scheduled, failure = self._build_scheduled_item()
        if failure is not None:
            return failure

        session.scheduled = [scheduled]
        self._enter_review()
        return self._commit(Outcome.review_ready)

    # -- group navigation ---------------------------------------------------

    @_exclusive
    def jump(self, index: int) -> TransitionResult:
        return self._jump(index)

    @_exclusive
    def retreat(self) -> TransitionResult:
        session = self._session
        if session.stage == Stage.scheduling_item:
            target = session.cursor - 1
        else:
            target = len(session.scheduled) - 1
        return self._jump(target)

    def _jump(self, index: int) -> TransitionResult:
        session = self._session
        if session.mode != SessionMode.group:
            return self._invalid_stage("jump")
        if session.stage not in (Stage.scheduling_item, Stage.review_and_submit):
            return self._invalid_stage("jump")
        if not 0 <= index <= len(session.scheduled) or index >= len(session.items):
            return self._fail(Outcome.invalid_input, ValidationError(f"No appointment at position {index}"))
        self._enter_item(index)
        return self._commit(Outcome.ok)

    @_exclusive
    def add_participant(self, participant: ParticipantTag | None = None) -> TransitionResult:
        """Keep everything scheduled so far and open service selection for another member."""
        session = self._session
        if session.mode != SessionMode.group:
            return self._invalid_stage("add_participant")
        if session.stage == Stage.scheduling_item:
            if session.selected_slot is None:
                return self._fail(
                    Outcome.selection_required,
                    ValidationError("Please select a time for the current service."),
                )
            scheduled, failure = self._build_scheduled_item()
            if failure is not None:
                return failure
            self._place(scheduled)
        elif session.stage != Stage.review_and_submit:
            return self._invalid_stage("add_participant")

        session.items = session.items[: len(session.scheduled)]
        session.cursor = len(session.scheduled)
        session.assignments = []
        session.next_participant = participant
        session.selected_date = None
        session.current_professional = None
        session.clear_selection()
        session.stage = Stage.selecting_services
        return self._commit(Outcome.ok)

    # -- terminal transitions -------------------------------------------------

    @_exclusive
    def submit(self, contact: ContactInfo | None = None) -> TransitionResult:
        session = self._session
        retrying_local = session.stage == Stage.failed and session.is_local_booking
        if session.stage != Stage.review_and_submit and not retrying_local:
            return self._invalid_stage("submit")
        if not session.is_complete:
            return self._fail(
                Outcome.selection_required,
                ValidationError("Every service needs a time before submitting"),
            )
        if session.is_reschedule and self._reschedule_locked():
            return self._lockout()

        if retrying_local:
            session.is_local_booking = False
            session.stage = Stage.review_and_submit

        result = self._submitter.submit(session, contact or ContactInfo())
        outcome = _SUBMISSION_OUTCOMES[result.status]
        self._logger.info(
            "Session submitted",
            extra={"session_id": session.session_id, "outcome": outcome.value, "created_count": len(result.created_ids)},
        )

        if result.status == SubmissionStatus.submitted:
            session.stage = Stage.submitted
            self._store.clear(session.session_id)
            self._discarded = True
            return TransitionResult(outcome=outcome, session=session, submission=result)

        if result.status == SubmissionStatus.local_fallback:
            session.stage = Stage.failed
        elif result.status == SubmissionStatus.slot_conflict:
            self._route_back_to_conflict(result)

        return self._commit(outcome, error=result.error, submission=result)

    @_exclusive
    def abandon(self) -> TransitionResult:
        """Drop the session without contacting the backend."""
        self._store.clear(self._session.session_id)
        self._discarded = True
        self._logger.info("Session abandoned", extra={"session_id": self._session.session_id})
        return TransitionResult(outcome=Outcome.ok, session=self._session)

    # -- internals ---------------------------------------------------------

    def _pending_items(self) -> list[ServiceItem]:
        return self._session.items[len(self._session.scheduled):]

    def _default_participant(self) -> ParticipantTag:
        members = {item.participant for item in self._session.items if item.participant}
        if not members:
            return ParticipantTag(member_name="Member 1", member_category=PRIMARY_CATEGORY)
        return ParticipantTag(member_name=f"Member {len(members) + 1}", member_category=DEFAULT_MEMBER_CATEGORY)

    def _dates(self) -> list[CalendarDay]:
        return selectable_dates(self._clock.now().date(), self._window_days)

    def _enter_item(self, index: int) -> None:
        session = self._session
        session.stage = Stage.scheduling_item
        session.cursor = index
        session.clear_selection()
        if index < len(session.scheduled):
            # Re-opened items keep the professional they were scheduled with
            committed = session.scheduled[index]
            session.current_professional = ResolvedProfessional(
                professional_id=committed.professional_id,
                name=committed.professional_name,
            )
        else:
            session.current_professional = self._resolve_professional(session.items[index])

        if index < len(session.scheduled):
            default_date = session.scheduled[index].date
        elif session.reschedule_target is not None:
            default_date = session.reschedule_target.original_date.split("T", 1)[0]
        else:
            dates = self._dates()
            default_date = dates[0].full_date if dates else None
        if default_date and default_date not in {day.full_date for day in self._dates()}:
            dates = self._dates()
            default_date = dates[0].full_date if dates else None
        session.selected_date = default_date

        if session.current_professional and default_date:
            self._slots.get_slots(session.current_professional.professional_id, default_date)

    def _enter_review(self) -> None:
        session = self._session
        session.stage = Stage.review_and_submit
        session.cursor = len(session.items)
        session.selected_date = None
        session.current_professional = None
        session.clear_selection()

    def _place(self, scheduled: ScheduledItem) -> None:
        session = self._session
        if session.cursor < len(session.scheduled):
            session.scheduled[session.cursor] = scheduled
            session.confirmed_ids.pop(session.cursor, None)
        else:
            session.scheduled.append(scheduled)

    def _resolve_professional(self, item: ServiceItem) -> ResolvedProfessional | None:
        assignment = self._session.assignment_for(item.name)
        if assignment is None:
            return None
        choice = assignment.choice
        if isinstance(choice, SpecificProfessional):
            if not choice.professional_id.strip():
                return None
            return ResolvedProfessional(professional_id=choice.professional_id, name=choice.name)
        if isinstance(choice, AnyAvailable):
            return self._resolve_any_available(item)
        return None

    def _resolve_any_available(self, item: ServiceItem) -> ResolvedProfessional | None:
        salon_id = self._session.salon_id
        if self._directory is None or not salon_id:
            self._logger.error(
                "Cannot resolve any-available professional without a salon directory",
                extra={"session_id": self._session.session_id, "service": item.name},
            )
            return None
        try:
            professionals = self._directory.list_professionals(salon_id)
        except SchedulingError as e:
            self._logger.error(
                "Error listing professionals",
                extra={"session_id": self._session.session_id, "error": str(e)},
            )
            return None
        for professional in professionals:
            if professional.is_available and professional.offers(item.name):
                return ResolvedProfessional(professional_id=professional.professional_id, name=professional.name)
        self._logger.warning(
            "No professional available for service",
            extra={"session_id": self._session.session_id, "service": item.name},
        )
        return None

    def _pending_scheduled_item(self) -> ScheduledItem | None:
        session = self._session
        item = session.current_item
        slot = session.selected_slot
        if item is None or slot is None or session.current_professional is None:
            return None
        try:
            end_time = compute_end_time(slot.start_time, item.duration_minutes)
        except ValueError:
            return None
        return ScheduledItem(
            service_name=item.name,
            price=item.unit_price,
            duration_minutes=item.duration_minutes,
            date=slot.date or session.selected_date or "",
            start_time=slot.start_time,
            end_time=end_time,
            professional_id=session.current_professional.professional_id,
            professional_name=session.current_professional.name,
            participant=item.participant,
        )

    def _build_scheduled_item(self) -> tuple[ScheduledItem | None, TransitionResult | None]:
        """Validate the current selection; returns the item or the guard failure."""
        session = self._session
        item = session.current_item
        if item is None:
            return None, self._invalid_stage("advance")
        if session.selected_slot is None:
            return None, self._fail(
                Outcome.selection_required,
                ValidationError("Please select a time for the current service."),
            )
        if session.current_professional is None:
            return None, self._unresolved()

        slot = session.selected_slot
        slot_date = slot.date or session.selected_date or ""
        now = self._clock.now()
        if is_past_slot(slot_date, slot.start_time, now):
            session.clear_selection()
            return None, self._fail(Outcome.policy_violation, PolicyViolation("This time slot has already passed"))

        offered = self._slots.available_slots(
            session.current_professional.professional_id, slot_date, item.duration_minutes, now
        )
        if _find_slot(offered, slot.id) is None:
            session.clear_selection()
            return None, self._fail(
                Outcome.slot_unavailable,
                ValidationError("Selected slot not available. Please pick another time."),
            )

        scheduled = self._pending_scheduled_item()
        if scheduled is None:
            session.clear_selection()
            return None, self._fail(
                Outcome.slot_unavailable,
                ValidationError("Selected slot has an invalid start time"),
            )
        if self._clashes_with_scheduled(
            scheduled.professional_id, scheduled.date, scheduled.start_time, scheduled.duration_minutes
        ):
            session.clear_selection()
            return None, self._double_booked()
        return scheduled, None

    def _clashes_with_scheduled(self, professional_id: str, date: str, start_time: str, duration_minutes: int) -> bool:
        """True when another item of this session already holds the professional for an overlapping time."""
        session = self._session
        try:
            start = time_to_minutes(start_time)
        except ValueError:
            return False
        end = start + duration_minutes
        for index, other in enumerate(session.scheduled):
            if index == session.cursor or other.professional_id != professional_id or other.date != date:
                continue
            try:
                other_start = time_to_minutes(other.start_time)
                other_end = time_to_minutes(other.end_time)
            except ValueError:
                continue
            if start < other_end and other_start < end:
                return True
        return False

    def _double_booked(self) -> TransitionResult:
        return self._fail(
            Outcome.slot_unavailable,
            ValidationError("This professional is already booked for another service in this session at that time."),
        )

    def _route_back_to_conflict(self, result: SubmissionResult) -> None:
        session = self._session
        index = 0
        if isinstance(result.error, SlotConflict) and result.error.index is not None:
            index = result.error.index
        elif result.failed:
            index = next((f.index for f in result.failed if f.reason == "slot_conflict"), result.failed[0].index)
        index = min(max(index, 0), len(session.scheduled) - 1)

        conflicting = session.scheduled[index]
        self._slots.invalidate(conflicting.professional_id, conflicting.date)
        self._logger.warning(
            "Slot taken before submission, reopening item",
            extra={"session_id": session.session_id, "index": index, "date": conflicting.date},
        )
        self._enter_item(index)

    def _reschedule_locked(self) -> bool:
        target = self._session.reschedule_target
        if target is None:
            return False
        return is_reschedule_locked(
            target.original_date,
            target.original_start_time,
            self._clock.now(),
            self._lockout_hours,
        )

    def _lockout(self) -> TransitionResult:
        self._session.clear_selection()
        return self._fail(
            Outcome.policy_violation,
            PolicyViolation(
                f"You cannot reschedule an appointment that is within {self._lockout_hours:g} hours."
            ),
        )

    def _unresolved(self) -> TransitionResult:
        return self._fail(
            Outcome.professional_unresolved,
            ValidationError("No professional could be determined for this service"),
        )

    def _invalid_stage(self, operation: str) -> TransitionResult:
        return TransitionResult(
            outcome=Outcome.invalid_stage,
            session=self._session,
            error=ValidationError(f"{operation} is not allowed while {self._session.stage.value}"),
        )

    def _fail(self, outcome: Outcome, error: SchedulingError) -> TransitionResult:
        self._logger.info(
            "Transition refused",
            extra={
                "session_id": self._session.session_id,
                "stage": self._session.stage.value,
                "outcome": outcome.value,
                "reason": str(error),
            },
        )
        return self._commit(outcome, error=error)

    def _commit(
        self,
        outcome: Outcome,
        error: SchedulingError | None = None,
        submission: SubmissionResult | None = None,
    ) -> TransitionResult:
        if not self._discarded:
            self._session.revision += 1
            self._store.save(self._session)
        return TransitionResult(outcome=outcome, session=self._session, error=error, submission=submission)


def _find_slot(slots: list[TimeSlot], slot_id: str) -> TimeSlot | None:
    for slot in slots:
        if slot.id == slot_id:
            return slot
    for slot in slots:
        if slot.start_time == slot_id:
            return slot
    return None
