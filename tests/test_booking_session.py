"""
Tests for the booking session state machine.
"""

from __future__ import annotations

from salon_scheduler.application.exceptions import PartialBatchFailure, PolicyViolation, ValidationError
from salon_scheduler.application.ports.slot_gateway import SlotGatewayPort
from salon_scheduler.application.use_cases.booking_session import BookingSessionEngine, Outcome
from salon_scheduler.application.use_cases.slot_availability import SlotAvailabilityService
from salon_scheduler.application.use_cases.submit_appointments import AppointmentSubmitter
from salon_scheduler.domain.entities.booking_session import (
    AppointmentRef,
    BookingSession,
    SessionMode,
    Stage,
)
from salon_scheduler.domain.entities.contact import ContactInfo
from salon_scheduler.domain.entities.professional import AnyAvailable, Professional, SpecificProfessional
from salon_scheduler.domain.entities.scheduled_item import ScheduledItem
from salon_scheduler.domain.entities.service_item import ParticipantTag, ServiceItem
from salon_scheduler.domain.entities.time_slot import TimeSlot
from salon_scheduler.infrastructure.backend.mock_backend import MockSalonBackend

TODAY = "2030-06-03"
TOMORROW = "2030-06-04"

HAIRCUT = ServiceItem(name="Haircut", unit_price=1000, duration_minutes=30)
SHAVE = ServiceItem(name="Shave", unit_price=500, duration_minutes=15)


def _ready(engine: BookingSessionEngine, items, professional_id: str = "pro_1", participant=None):
    assert engine.select_services(items, participant).outcome == Outcome.ok
    for item in items:
        choice = SpecificProfessional(professional_id=professional_id)
        assert engine.assign_professional(item.name, choice).outcome == Outcome.ok
    assert engine.begin_scheduling().outcome == Outcome.ok


def _schedule(engine: BookingSessionEngine, start_time: str, date: str = TOMORROW):
    professional_id = engine.session.current_professional.professional_id
    assert engine.select_date(date).outcome == Outcome.ok
    assert engine.select_slot(f"{professional_id}:{date}:{start_time}").outcome == Outcome.ok
    return engine.advance()


def _book(backend: MockSalonBackend, professional_id: str, date: str, start: str, end: str) -> str:
    item = ScheduledItem(
        service_name="Walk-in",
        price=0,
        duration_minutes=30,
        date=date,
        start_time=start,
        end_time=end,
        professional_id=professional_id,
        professional_name="",
    )
    return backend.create_appointments(ContactInfo(), [item])[0]


def test_review_is_reached_after_one_advance_per_item(make_engine):
    """N items need exactly N successful advances, and scheduled keeps the item order."""
    for count in range(1, 5):
        engine = make_engine()
        items = [ServiceItem(name=f"Service {i}", unit_price=100 * (i + 1), duration_minutes=30) for i in range(count)]
        _ready(engine, items)

        for i in range(count):
            result = _schedule(engine, f"{11 + i}:00")
            expected = Outcome.review_ready if i == count - 1 else Outcome.advanced
            assert result.outcome == expected

        session = engine.session
        assert session.stage == Stage.review_and_submit
        assert session.is_complete
        assert [s.service_name for s in session.scheduled] == [item.name for item in items]


def test_single_haircut_is_complete_after_one_advance(make_engine):
    engine = make_engine()
    _ready(engine, [HAIRCUT])

    result = _schedule(engine, "14:00")

    assert result.outcome == Outcome.review_ready
    assert engine.session.is_complete
    assert engine.total() == 1000
    assert engine.view().running_total == 1000
    scheduled = engine.session.scheduled[0]
    assert (scheduled.start_time, scheduled.end_time) == ("14:00", "14:30")
    assert scheduled.professional_id == "pro_1"


def test_total_tracks_only_scheduled_items(make_engine, backend):
    """With two items, the total holds the first price until the second item is scheduled."""
    engine = make_engine()
    engine.select_services([HAIRCUT, SHAVE])
    engine.assign_professional("Haircut", SpecificProfessional(professional_id="pro_1"))
    engine.assign_professional("Shave", SpecificProfessional(professional_id="pro_2"))
    engine.begin_scheduling()

    first = _schedule(engine, "14:00")
    assert first.outcome == Outcome.advanced
    assert engine.session.cursor == 1
    assert engine.total() == 1000
    assert engine.total() == 1000
    assert engine.view().running_total == 1000
    assert engine.view().professional.professional_id == "pro_2"

    engine.select_date(TOMORROW)
    engine.select_slot(f"pro_2:{TOMORROW}:14:00")
    assert engine.total() == 1000
    assert engine.view().running_total == 1500

    assert engine.advance().outcome == Outcome.review_ready
    assert engine.total() == 1500


def test_every_transition_is_persisted(make_engine, store):
    engine = make_engine()

    engine.select_services([HAIRCUT])
    saved = store.load(engine.session_id)
    assert saved.stage == Stage.assigning_professionals
    assert saved.items == [HAIRCUT]

    engine.assign_professional("Haircut", SpecificProfessional(professional_id="pro_1"))
    engine.begin_scheduling()
    engine.select_date(TOMORROW)
    engine.select_slot(f"pro_1:{TOMORROW}:14:00")

    saved = store.load(engine.session_id)
    assert saved.stage == Stage.scheduling_item
    assert saved.selected_slot.start_time == "14:00"
    assert saved.revision == engine.session.revision


def test_service_selection_is_validated(make_engine):
    engine = make_engine()

    assert engine.select_services([]).outcome == Outcome.invalid_input
    duplicate = engine.select_services([HAIRCUT, HAIRCUT])
    assert duplicate.outcome == Outcome.invalid_input
    assert isinstance(duplicate.error, ValidationError)
    zero = ServiceItem(name="Consultation", unit_price=0, duration_minutes=0)
    assert engine.select_services([zero]).outcome == Outcome.invalid_input
    assert engine.session.stage == Stage.selecting_services


def test_scheduling_needs_every_assignment(make_engine):
    engine = make_engine()
    engine.select_services([HAIRCUT, SHAVE])
    engine.assign_professional("Haircut", SpecificProfessional(professional_id="pro_1"))

    result = engine.begin_scheduling()

    assert result.outcome == Outcome.invalid_input
    assert "Shave" in str(result.error)
    assert engine.assign_professional("Massage", AnyAvailable()).outcome == Outcome.invalid_input
    assert engine.select_slot("anything").outcome == Outcome.invalid_stage


def test_guard_failures_are_distinguishable(make_engine, backend):
    """Missing selection, past slot, taken slot and an out-of-window date report different outcomes."""
    _book(backend, "pro_1", TOMORROW, "12:00", "12:30")
    engine = make_engine()
    _ready(engine, [HAIRCUT])

    missing = engine.advance()
    assert missing.outcome == Outcome.selection_required
    assert isinstance(missing.error, ValidationError)

    engine.select_date(TODAY)
    past = engine.select_slot(f"pro_1:{TODAY}:09:00")
    assert past.outcome == Outcome.policy_violation
    assert isinstance(past.error, PolicyViolation)

    engine.select_date(TOMORROW)
    taken = engine.select_slot(f"pro_1:{TOMORROW}:12:00")
    assert taken.outcome == Outcome.slot_unavailable
    assert engine.session.selected_slot is None

    assert engine.select_date("2030-07-01").outcome == Outcome.invalid_input
    assert engine.session.stage == Stage.scheduling_item


def test_slot_can_be_selected_by_start_time(make_engine):
    engine = make_engine()
    _ready(engine, [HAIRCUT])
    engine.select_date(TOMORROW)

    assert engine.select_slot("15:30").outcome == Outcome.ok
    assert engine.session.selected_slot.id == f"pro_1:{TOMORROW}:15:30"


def test_any_available_professional_is_resolved_from_the_directory(make_engine):
    engine = make_engine()
    engine.select_services([HAIRCUT])
    engine.assign_professional("Haircut", AnyAvailable())
    engine.begin_scheduling()

    professional = engine.view().professional

    assert professional.professional_id == "pro_1"
    assert professional.name == "Nimali Perera"


def test_unresolvable_professional_is_reported(clock, store):
    backend = MockSalonBackend(
        professionals=[Professional(professional_id="pro_9", name="Massage only", service_names=("Massage",))]
    )
    engine = BookingSessionEngine(
        session=BookingSession(salon_id="salon_1"),
        slots=SlotAvailabilityService(backend),
        submitter=AppointmentSubmitter(backend, store),
        store=store,
        clock=clock,
        directory=backend,
    )
    engine.select_services([HAIRCUT])
    engine.assign_professional("Haircut", AnyAvailable())
    engine.begin_scheduling()

    result = engine.select_slot(f"pro_9:{TOMORROW}:14:00")

    assert engine.view().professional is None
    assert result.outcome == Outcome.professional_unresolved


class ReentrantGateway(SlotGatewayPort):
    """Calls back into the engine while a slot fetch is in flight."""

    def __init__(self, backend: MockSalonBackend) -> None:
        self.backend = backend
        self.engine: BookingSessionEngine | None = None
        self.outcomes: list[Outcome] = []

    def list_slots(self, professional_id: str, date: str) -> list[TimeSlot]:
        if self.engine is not None:
            self.outcomes.append(self.engine.advance().outcome)
        return self.backend.list_slots(professional_id, date)


def test_transition_during_a_slot_fetch_is_busy(make_engine, backend):
    gateway = ReentrantGateway(backend)
    engine = make_engine(gateway=gateway)
    _ready(engine, [HAIRCUT])
    gateway.engine = engine

    result = engine.select_date("2030-06-05")

    assert result.outcome == Outcome.ok
    assert gateway.outcomes == [Outcome.busy]
    assert engine.session.stage == Stage.scheduling_item
    assert engine.select_slot("pro_1:2030-06-05:14:00").outcome == Outcome.ok


def test_group_members_get_default_participants(make_engine):
    """The first member is Primary; members added later default to Adult."""
    engine = make_engine(mode=SessionMode.group)
    _ready(engine, [HAIRCUT])
    assert engine.session.items[0].participant == ParticipantTag(member_name="Member 1", member_category="Primary")
    assert _schedule(engine, "11:00").outcome == Outcome.review_ready

    assert engine.add_participant().outcome == Outcome.ok
    assert engine.session.stage == Stage.selecting_services
    _ready(engine, [SHAVE])
    assert engine.session.items[1].participant == ParticipantTag(member_name="Member 2", member_category="Adult")
    assert _schedule(engine, "12:00").outcome == Outcome.review_ready

    kid = ParticipantTag(member_name="Kid", member_category="Child")
    engine.add_participant(kid)
    _ready(engine, [HAIRCUT])
    assert engine.session.items[2].participant == kid
    assert _schedule(engine, "13:00").outcome == Outcome.review_ready

    assert [s.participant.member_name for s in engine.session.scheduled] == ["Member 1", "Member 2", "Kid"]
    assert engine.total() == 2500


def test_group_retreat_and_jump(make_engine):
    engine = make_engine(mode=SessionMode.group)
    _ready(engine, [HAIRCUT, SHAVE])
    _schedule(engine, "11:00")
    _schedule(engine, "12:00")

    assert engine.retreat().outcome == Outcome.ok
    assert engine.session.cursor == 1
    assert engine.session.selected_date == TOMORROW
    assert engine.retreat().outcome == Outcome.ok
    assert engine.session.cursor == 0
    assert engine.retreat().outcome == Outcome.invalid_input
    assert engine.jump(2).outcome == Outcome.invalid_input

    assert _schedule(engine, "15:00").outcome == Outcome.review_ready
    assert [s.start_time for s in engine.session.scheduled] == ["15:00", "12:00"]
    assert engine.total() == 1500


def test_reopened_item_keeps_its_professional(make_engine):
    engine = make_engine(mode=SessionMode.group)
    _ready(engine, [HAIRCUT], professional_id="pro_2")
    _schedule(engine, "11:00")
    engine.add_participant()
    _ready(engine, [SHAVE], professional_id="pro_1")
    _schedule(engine, "11:00")

    engine.jump(0)

    assert engine.view().professional.professional_id == "pro_2"


def test_navigation_is_group_only(make_engine):
    engine = make_engine()
    _ready(engine, [HAIRCUT, SHAVE])
    _schedule(engine, "11:00")

    assert engine.retreat().outcome == Outcome.invalid_stage
    assert engine.add_participant().outcome == Outcome.invalid_stage


def test_reschedule_lockout_ignores_the_new_slot(make_engine, backend):
    """An appointment within 24 hours cannot be moved, however far away the new slot is."""
    engine = make_engine()
    target = AppointmentRef(id="appt_1", original_date=TODAY, original_start_time="20:00", professional_id="pro_1")

    started = engine.start_reschedule(target, HAIRCUT)
    assert started.outcome == Outcome.policy_violation
    assert engine.view().reschedule_locked is True

    for day in ("2030-06-04", "2030-06-06", "2030-06-09"):
        engine.session.selected_date = day
        engine.session.selected_slot = TimeSlot(
            id=f"pro_1:{day}:15:00", date=day, start_time="15:00", end_time="15:30"
        )
        result = engine.reschedule_advance()
        assert result.outcome == Outcome.policy_violation
        assert isinstance(result.error, PolicyViolation)
        assert engine.session.selected_slot is None
        assert engine.session.stage == Stage.scheduling_item

    assert engine.select_slot("pro_1:2030-06-09:15:00").outcome == Outcome.policy_violation


def test_reschedule_moves_the_existing_appointment(make_engine, backend, store):
    appointment_id = _book(backend, "pro_1", "2030-06-06", "10:00", "10:30")
    engine = make_engine()
    target = AppointmentRef(
        id=appointment_id, original_date="2030-06-06", original_start_time="10:00", professional_id="pro_1"
    )

    assert engine.start_reschedule(target, HAIRCUT).outcome == Outcome.ok
    assert engine.session.selected_date == "2030-06-06"
    assert engine.select_slot("pro_1:2030-06-06:15:00").outcome == Outcome.ok
    assert engine.advance().outcome == Outcome.review_ready

    result = engine.submit()

    assert result.outcome == Outcome.submitted
    assert result.submission.created_ids == [appointment_id]
    assert backend.appointment(appointment_id) == ("pro_1", "2030-06-06", 15 * 60, 15 * 60 + 30)
    assert store.load(engine.session_id) is None


def test_slot_conflict_reopens_the_conflicting_item(make_engine, backend, store):
    """A slot taken before submission sends the session back to that item; created items stay created."""
    engine = make_engine()
    _ready(engine, [HAIRCUT, SHAVE])
    _schedule(engine, "11:00")
    _schedule(engine, "12:00")
    _book(backend, "pro_1", TOMORROW, "12:00", "12:30")

    result = engine.submit(ContactInfo(name="Ann", phone="0771234567"))

    assert result.outcome == Outcome.slot_conflict
    assert isinstance(result.error, PartialBatchFailure)
    assert result.submission.created_ids == ["mock_appt_2"]
    assert engine.session.stage == Stage.scheduling_item
    assert engine.session.cursor == 1
    assert engine.session.confirmed_ids == {0: "mock_appt_2"}
    assert "12:00" not in [s.start_time for s in engine.view().slots]

    assert engine.select_slot(f"pro_1:{TOMORROW}:13:00").outcome == Outcome.ok
    assert engine.advance().outcome == Outcome.review_ready
    retry = engine.submit()

    assert retry.outcome == Outcome.submitted
    assert retry.submission.created_ids == ["mock_appt_2", "mock_appt_3"]
    assert store.load(engine.session_id) is None


def test_group_transport_failure_keeps_a_local_booking(make_engine, backend, store):
    """A failed group batch is persisted locally with every item, then succeeds on retry."""
    engine = make_engine(mode=SessionMode.group)
    _ready(engine, [HAIRCUT], participant=ParticipantTag(member_name="Ann", member_category="Primary"))
    _schedule(engine, "11:00")
    engine.add_participant(ParticipantTag(member_name="Ben"))
    _ready(engine, [SHAVE], professional_id="pro_2")
    _schedule(engine, "11:00")
    engine.add_participant(ParticipantTag(member_name="Cara", member_category="Child"))
    _ready(engine, [HAIRCUT])
    _schedule(engine, "12:00")
    backend.available = False

    result = engine.submit(ContactInfo(name="Ann"))

    assert result.outcome == Outcome.local_fallback
    assert result.ok is False
    assert engine.session.stage == Stage.failed
    local = store.list_local_bookings()
    assert len(local) == 1
    assert local[0].is_local_booking is True
    assert [s.participant.member_name for s in local[0].scheduled] == ["Ann", "Ben", "Cara"]

    backend.available = True
    retry = engine.submit(ContactInfo(name="Ann"))

    assert retry.outcome == Outcome.submitted
    assert retry.submission.booking_id.startswith("mock_booking_")
    assert len(retry.submission.created_ids) == 3
    assert store.list_local_bookings() == []


def test_abandon_clears_the_session(make_engine, store):
    engine = make_engine()
    _ready(engine, [HAIRCUT])

    assert engine.abandon().outcome == Outcome.ok
    assert store.load(engine.session_id) is None
    assert engine.is_discarded

    engine.select_date(TOMORROW)
    assert store.load(engine.session_id) is None


def test_professional_cannot_be_double_booked_within_a_session(make_engine):
    """A second service with the same professional may not overlap the first one's time."""
    engine = make_engine()
    _ready(engine, [HAIRCUT, SHAVE])
    assert _schedule(engine, "14:00").outcome == Outcome.advanced

    engine.select_date(TOMORROW)
    clash = engine.select_slot(f"pro_1:{TOMORROW}:14:00")

    assert clash.outcome == Outcome.slot_unavailable
    assert engine.session.selected_slot is None
    assert engine.advance().outcome == Outcome.selection_required
    assert engine.select_slot(f"pro_1:{TOMORROW}:14:30").outcome == Outcome.ok
    assert engine.advance().outcome == Outcome.review_ready


def test_reopened_item_may_keep_its_own_time(make_engine):
    engine = make_engine(mode=SessionMode.group)
    _ready(engine, [HAIRCUT, SHAVE])
    _schedule(engine, "11:00")
    _schedule(engine, "12:00")

    engine.jump(0)

    assert _schedule(engine, "11:00").outcome == Outcome.review_ready
    engine.jump(0)
    engine.select_date(TOMORROW)
    assert engine.select_slot(f"pro_1:{TOMORROW}:12:00").outcome == Outcome.slot_unavailable
