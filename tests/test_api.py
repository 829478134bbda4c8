"""
Tests for the session HTTP endpoints.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from salon_scheduler.application.use_cases.cancel_appointment import AppointmentCanceller
from salon_scheduler.application.use_cases.session_registry import SessionRegistry
from salon_scheduler.domain.entities.contact import ContactInfo
from salon_scheduler.domain.entities.scheduled_item import ScheduledItem
from salon_scheduler.main import app
from salon_scheduler.wiring.dependencies import get_appointment_canceller, get_session_registry

TOMORROW = "2030-06-04"
SESSIONS = "/api/v1/sessions"


@pytest.fixture
def client(make_engine, store, backend, clock):
    registry = SessionRegistry(store=store, engine_factory=lambda session: make_engine(session=session))
    app.dependency_overrides[get_session_registry] = lambda: registry
    app.dependency_overrides[get_appointment_canceller] = lambda: AppointmentCanceller(backend, clock)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _start(client: TestClient, items: list[dict], **extra) -> dict:
    response = client.post(SESSIONS, json={"salon_id": "salon_1", "items": items, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def _schedule(client: TestClient, session_id: str, start_time: str, professional_id: str = "pro_1") -> dict:
    assert client.post(f"{SESSIONS}/{session_id}/date", json={"date": TOMORROW}).status_code == 200
    slot = {"slot_id": f"{professional_id}:{TOMORROW}:{start_time}"}
    assert client.post(f"{SESSIONS}/{session_id}/slot", json=slot).status_code == 200
    response = client.post(f"{SESSIONS}/{session_id}/advance")
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_single_service_booking_flow(client):
    """Start, assign any professional, pick a slot, submit."""
    started = _start(client, [{"name": "Haircut", "price": 1000, "duration": "30 minutes"}])
    session_id = started["session"]["session_id"]
    assert started["session"]["stage"] == "assigning_professionals"

    assigned = client.put(
        f"{SESSIONS}/{session_id}/assignments",
        json={"assignments": [{"service_name": "Haircut", "professional_id": "any"}]},
    )
    assert assigned.status_code == 200

    scheduling = client.post(f"{SESSIONS}/{session_id}/schedule").json()
    assert scheduling["session"]["professional"]["professional_id"] == "pro_1"
    assert len(scheduling["session"]["dates"]) == 7

    review = _schedule(client, session_id, "14:00")
    assert review["outcome"] == "review_ready"
    assert review["session"]["running_total"] == 1000
    assert review["session"]["scheduled"][0]["end_time"] == "14:30"

    submitted = client.post(f"{SESSIONS}/{session_id}/submit", json={"name": "Ann", "phone": "0771234567"})
    assert submitted.status_code == 200
    body = submitted.json()
    assert body["outcome"] == "submitted"
    assert body["submission"]["created_ids"] == ["mock_appt_1"]

    assert client.get(f"{SESSIONS}/{session_id}").status_code == 404


def test_view_lists_offered_slots(client):
    started = _start(client, [{"name": "Colour", "price": 4000, "duration": "1 hour"}])
    session_id = started["session"]["session_id"]
    client.put(
        f"{SESSIONS}/{session_id}/assignments",
        json={"assignments": [{"service_name": "Colour", "professional_id": "pro_2", "professional_name": "Kasun"}]},
    )
    client.post(f"{SESSIONS}/{session_id}/schedule")
    client.post(f"{SESSIONS}/{session_id}/date", json={"date": TOMORROW})

    view = client.get(f"{SESSIONS}/{session_id}").json()

    starts = [slot["start_time"] for slot in view["slots"]]
    assert starts[0] == "09:00"
    assert "16:30" not in starts
    assert view["current_item"]["duration_minutes"] == 60
    assert view["professional"] == {"professional_id": "pro_2", "name": "Kasun"}


def test_guard_failures_map_to_status_codes(client):
    started = _start(client, [{"name": "Haircut", "price": 1000, "duration": 30}])
    session_id = started["session"]["session_id"]

    early = client.post(f"{SESSIONS}/{session_id}/advance")
    assert early.status_code == 409
    assert early.json()["outcome"] == "invalid_stage"

    missing = client.post(f"{SESSIONS}/{session_id}/schedule")
    assert missing.status_code == 422
    assert missing.json()["outcome"] == "invalid_input"

    client.put(
        f"{SESSIONS}/{session_id}/assignments",
        json={"assignments": [{"service_name": "Haircut", "professional_id": "pro_1"}]},
    )
    client.post(f"{SESSIONS}/{session_id}/schedule")
    no_slot = client.post(f"{SESSIONS}/{session_id}/advance")
    assert no_slot.status_code == 422
    assert no_slot.json()["outcome"] == "selection_required"
    assert no_slot.json()["error"]

    past = client.post(f"{SESSIONS}/{session_id}/slot", json={"slot_id": "pro_1:2030-06-03:09:00"})
    assert past.status_code == 423
    assert past.json()["outcome"] == "policy_violation"


def test_request_validation(client):
    assert client.post(SESSIONS, json={"items": []}).status_code == 422
    assert client.post(SESSIONS, json={"items": [{"name": "Haircut", "price": -1, "duration": 30}]}).status_code == 422
    assert client.get(f"{SESSIONS}/missing").status_code == 404


def test_locked_reschedule_is_refused(client):
    response = client.post(
        f"{SESSIONS}/reschedules",
        json={
            "appointment_id": "appt_1",
            "original_date": "2030-06-03",
            "original_start_time": "20:00",
            "professional_id": "pro_1",
            "service": {"name": "Haircut", "price": 1000, "duration": 30},
        },
    )

    assert response.status_code == 423
    body = response.json()
    assert body["outcome"] == "policy_violation"
    assert body["session"]["reschedule_locked"] is True


def test_group_booking_falls_back_locally(client, backend):
    """A group batch that cannot reach the backend is accepted as a local booking."""
    started = _start(
        client,
        [{"name": "Haircut", "price": 1000, "duration": 30}],
        mode="group",
        participant={"member_name": "Ann", "member_category": "Primary"},
    )
    session_id = started["session"]["session_id"]
    client.put(
        f"{SESSIONS}/{session_id}/assignments",
        json={"assignments": [{"service_name": "Haircut", "professional_id": "pro_1"}]},
    )
    client.post(f"{SESSIONS}/{session_id}/schedule")
    _schedule(client, session_id, "11:00")

    added = client.post(f"{SESSIONS}/{session_id}/participants", json={"participant": {"member_name": "Ben"}})
    assert added.json()["session"]["stage"] == "selecting_services"
    client.post(f"{SESSIONS}/{session_id}/services", json={"items": [{"name": "Shave", "price": 500, "duration": 15}]})
    client.put(
        f"{SESSIONS}/{session_id}/assignments",
        json={"assignments": [{"service_name": "Shave", "professional_id": "pro_2"}]},
    )
    client.post(f"{SESSIONS}/{session_id}/schedule")
    review = _schedule(client, session_id, "11:00", professional_id="pro_2")
    assert review["session"]["running_total"] == 1500
    assert [s["participant"]["member_name"] for s in review["session"]["scheduled"]] == ["Ann", "Ben"]

    backend.available = False
    response = client.post(f"{SESSIONS}/{session_id}/submit", json={"name": "Ann"})

    assert response.status_code == 202
    body = response.json()
    assert body["outcome"] == "local_fallback"
    assert body["session"]["stage"] == "failed"
    assert body["session"]["is_local_booking"] is True

    local = client.get(f"{SESSIONS}/local-bookings").json()
    assert [booking["session_id"] for booking in local] == [session_id]
    assert local[0]["total"] == 1500
    assert len(local[0]["scheduled"]) == 2


def test_abandon_removes_the_session(client):
    started = _start(client, [{"name": "Haircut", "price": 1000, "duration": 30}])
    session_id = started["session"]["session_id"]

    assert client.delete(f"{SESSIONS}/{session_id}").status_code == 204
    assert client.get(f"{SESSIONS}/{session_id}").status_code == 404
    assert client.delete(f"{SESSIONS}/{session_id}").status_code == 404


def test_booked_appointment_can_be_cancelled(client, backend):
    started = _start(client, [{"name": "Haircut", "price": 1000, "duration": 30}])
    session_id = started["session"]["session_id"]
    client.put(
        f"{SESSIONS}/{session_id}/assignments",
        json={"assignments": [{"service_name": "Haircut", "professional_id": "pro_1"}]},
    )
    client.post(f"{SESSIONS}/{session_id}/schedule")
    _schedule(client, session_id, "14:00")
    appointment_id = client.post(f"{SESSIONS}/{session_id}/submit").json()["submission"]["created_ids"][0]

    response = client.delete(
        f"/api/v1/appointments/{appointment_id}",
        params={"date": TOMORROW, "start_time": "14:00"},
    )

    assert response.status_code == 204
    assert backend.appointment(appointment_id) is None
    assert client.delete(f"/api/v1/appointments/{appointment_id}").status_code == 502


def test_cancel_inside_the_lockout_is_locked(client, backend):
    appointment_id = backend.create_appointments(
        ContactInfo(),
        [
            ScheduledItem(
                service_name="Haircut",
                price=1000,
                duration_minutes=30,
                date=TOMORROW,
                start_time="09:00",
                end_time="09:30",
                professional_id="pro_1",
                professional_name="",
            )
        ],
    )[0]

    response = client.delete(
        f"/api/v1/appointments/{appointment_id}",
        params={"date": TOMORROW, "start_time": "09:00"},
    )

    assert response.status_code == 423
    assert backend.appointment(appointment_id) is not None
