from __future__ import annotations

import logging
from typing import Any

from salon_scheduler.domain.entities.booking_session import (
    AppointmentRef,
    BookingSession,
    SessionMode,
    Stage,
)
from salon_scheduler.domain.entities.professional import (
    AnyAvailable,
    ProfessionalAssignment,
    ResolvedProfessional,
    SpecificProfessional,
)
from salon_scheduler.domain.entities.scheduled_item import ScheduledItem
from salon_scheduler.domain.entities.service_item import ParticipantTag, ServiceItem
from salon_scheduler.domain.entities.time_slot import TimeSlot

# Bump when the persisted shape changes; older payloads are discarded on load.
SESSION_SCHEMA_VERSION = 1

logger = logging.getLogger(__name__)


def serialize_session(session: BookingSession) -> dict[str, Any]:
    return {
        "version": SESSION_SCHEMA_VERSION,
        "session_id": session.session_id,
        "revision": session.revision,
        "mode": session.mode.value,
        "stage": session.stage.value,
        "salon_id": session.salon_id,
        "items": [_serialize_service_item(item) for item in session.items],
        "assignments": [_serialize_assignment(a) for a in session.assignments],
        "cursor": session.cursor,
        "scheduled": [_serialize_scheduled_item(item) for item in session.scheduled],
        "reschedule_target": _serialize_appointment_ref(session.reschedule_target),
        "next_participant": _serialize_participant(session.next_participant),
        "selected_date": session.selected_date,
        "selected_slot": _serialize_slot(session.selected_slot),
        "current_professional": (
            {
                "professional_id": session.current_professional.professional_id,
                "name": session.current_professional.name,
            }
            if session.current_professional
            else None
        ),
        # JSON object keys must be strings
        "confirmed_ids": {str(index): value for index, value in session.confirmed_ids.items()},
        "isLocalBooking": session.is_local_booking,
    }


def deserialize_session(data: dict[str, Any]) -> BookingSession | None:
    """Rebuild a session; returns None for another schema version or a malformed payload."""
    if not isinstance(data, dict) or data.get("version") != SESSION_SCHEMA_VERSION:
        return None
    try:
        professional = data.get("current_professional")
        return BookingSession(
            session_id=data["session_id"],
            revision=int(data.get("revision", 0)),
            mode=SessionMode(data.get("mode", SessionMode.individual.value)),
            stage=Stage(data.get("stage", Stage.selecting_services.value)),
            salon_id=data.get("salon_id"),
            items=[_deserialize_service_item(item) for item in data.get("items", [])],
            assignments=[_deserialize_assignment(a) for a in data.get("assignments", [])],
            cursor=int(data.get("cursor", 0)),
            scheduled=[_deserialize_scheduled_item(item) for item in data.get("scheduled", [])],
            reschedule_target=_deserialize_appointment_ref(data.get("reschedule_target")),
            next_participant=_deserialize_participant(data.get("next_participant")),
            selected_date=data.get("selected_date"),
            selected_slot=_deserialize_slot(data.get("selected_slot")),
            current_professional=(
                ResolvedProfessional(
                    professional_id=professional["professional_id"],
                    name=professional.get("name", ""),
                )
                if professional
                else None
            ),
            confirmed_ids={int(index): value for index, value in data.get("confirmed_ids", {}).items()},
            is_local_booking=bool(data.get("isLocalBooking", False)),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(
            "Discarding malformed session payload",
            extra={"session_id": data.get("session_id"), "error": str(e)},
        )
        return None


def _serialize_participant(tag: ParticipantTag | None) -> dict[str, Any] | None:
    if tag is None:
        return None
    return {"member_name": tag.member_name, "member_category": tag.member_category}


def _deserialize_participant(data: dict[str, Any] | None) -> ParticipantTag | None:
    if not data:
        return None
    return ParticipantTag(member_name=data["member_name"], member_category=data["member_category"])


def _serialize_service_item(item: ServiceItem) -> dict[str, Any]:
    return {
        "name": item.name,
        "unit_price": item.unit_price,
        "duration_minutes": item.duration_minutes,
        "participant": _serialize_participant(item.participant),
    }


def _deserialize_service_item(data: dict[str, Any]) -> ServiceItem:
    return ServiceItem(
        name=data["name"],
        unit_price=data["unit_price"],
        duration_minutes=int(data["duration_minutes"]),
        participant=_deserialize_participant(data.get("participant")),
    )


def _serialize_assignment(assignment: ProfessionalAssignment) -> dict[str, Any]:
    choice = assignment.choice
    if isinstance(choice, SpecificProfessional):
        return {
            "service_name": assignment.service_name,
            "kind": "specific",
            "professional_id": choice.professional_id,
            "name": choice.name,
        }
    return {"service_name": assignment.service_name, "kind": "any"}


def _deserialize_assignment(data: dict[str, Any]) -> ProfessionalAssignment:
    kind = data["kind"]
    if kind == "specific":
        choice = SpecificProfessional(professional_id=data["professional_id"], name=data.get("name", ""))
    elif kind == "any":
        choice = AnyAvailable()
    else:
        raise ValueError(f"Unknown professional choice: {kind}")
    return ProfessionalAssignment(service_name=data["service_name"], choice=choice)


def _serialize_scheduled_item(item: ScheduledItem) -> dict[str, Any]:
    return {
        "service_name": item.service_name,
        "price": item.price,
        "duration_minutes": item.duration_minutes,
        "date": item.date,
        "start_time": item.start_time,
        "end_time": item.end_time,
        "professional_id": item.professional_id,
        "professional_name": item.professional_name,
        "participant": _serialize_participant(item.participant),
    }


def _deserialize_scheduled_item(data: dict[str, Any]) -> ScheduledItem:
    return ScheduledItem(
        service_name=data["service_name"],
        price=data["price"],
        duration_minutes=int(data["duration_minutes"]),
        date=data["date"],
        start_time=data["start_time"],
        end_time=data["end_time"],
        professional_id=data["professional_id"],
        professional_name=data.get("professional_name", ""),
        participant=_deserialize_participant(data.get("participant")),
    )


def _serialize_slot(slot: TimeSlot | None) -> dict[str, Any] | None:
    if slot is None:
        return None
    return {
        "id": slot.id,
        "date": slot.date,
        "start_time": slot.start_time,
        "end_time": slot.end_time,
        "is_booked": slot.is_booked,
    }


def _deserialize_slot(data: dict[str, Any] | None) -> TimeSlot | None:
    if not data:
        return None
    return TimeSlot(
        id=data["id"],
        date=data["date"],
        start_time=data["start_time"],
        end_time=data["end_time"],
        is_booked=bool(data.get("is_booked", False)),
    )


def _serialize_appointment_ref(ref: AppointmentRef | None) -> dict[str, Any] | None:
    if ref is None:
        return None
    return {
        "id": ref.id,
        "original_date": ref.original_date,
        "original_start_time": ref.original_start_time,
        "professional_id": ref.professional_id,
    }


def _deserialize_appointment_ref(data: dict[str, Any] | None) -> AppointmentRef | None:
    if not data:
        return None
    return AppointmentRef(
        id=data["id"],
        original_date=data["original_date"],
        original_start_time=data["original_start_time"],
        professional_id=data["professional_id"],
    )
