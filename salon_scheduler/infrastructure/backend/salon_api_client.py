from __future__ import annotations

import logging
from typing import Any

import httpx

from salon_scheduler.application.exceptions import SlotConflict, TransportError
from salon_scheduler.application.ports.appointment_backend import AppointmentBackendPort
from salon_scheduler.application.ports.professional_directory import ProfessionalDirectoryPort
from salon_scheduler.application.ports.slot_gateway import SlotGatewayPort
from salon_scheduler.application.utils.duration import format_duration
from salon_scheduler.core.config import settings
from salon_scheduler.domain.entities.contact import ContactInfo
from salon_scheduler.domain.entities.professional import Professional
from salon_scheduler.domain.entities.scheduled_item import ScheduledItem
from salon_scheduler.domain.entities.submission import GroupBookingReceipt, RescheduleChange
from salon_scheduler.domain.entities.time_slot import TimeSlot

_CONFLICT_MARKERS = (
    "already booked",
    "not available",
    "no longer available",
    "unavailable",
    "slot taken",
    "conflict",
    "overlap",
)


class SalonApiClient(SlotGatewayPort, AppointmentBackendPort, ProfessionalDirectoryPort):
    """Salon booking backend over HTTP. Responses are `{success, data, message}` envelopes."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.SALON_API_BASE_URL or "").rstrip("/")
        if not self._base_url:
            raise ValueError("SALON_API_BASE_URL is required for the salon API client")
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=timeout or settings.SALON_API_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._logger = logging.getLogger(__name__)

    def list_slots(self, professional_id: str, date: str) -> list[TimeSlot]:
        body = self._request("GET", "/api/timeslots", params={"professionalId": professional_id, "date": date})
        raw_slots = body if isinstance(body, list) else _data(body)
        if not isinstance(raw_slots, list):
            return []

        slots: list[TimeSlot] = []
        for raw in raw_slots:
            if not isinstance(raw, dict):
                continue
            start_time = raw.get("startTime") or raw.get("start")
            if not start_time:
                continue
            slots.append(
                TimeSlot(
                    id=str(raw.get("_id") or raw.get("id") or start_time),
                    date=str(raw.get("date") or date).split("T", 1)[0],
                    start_time=start_time,
                    end_time=raw.get("endTime") or raw.get("end") or start_time,
                    is_booked=bool(raw.get("isBooked", False)),
                )
            )
        return slots

    def create_appointments(
        self,
        contact: ContactInfo,
        items: list[ScheduledItem],
        salon_id: str | None = None,
    ) -> list[str]:
        payload = {
            **_contact_payload(contact),
            "appointments": [_appointment_payload(item, salon_id) for item in items],
        }
        body = self._request("POST", "/api/appointments", json=payload)
        created_ids = _created_ids(body)
        if not created_ids:
            raise TransportError("No appointment ID returned from salon API")
        self._logger.info("Appointments created", extra={"created_ids": created_ids})
        return created_ids

    def create_group_appointments(
        self,
        contact: ContactInfo,
        items: list[ScheduledItem],
        salon_id: str | None = None,
    ) -> GroupBookingReceipt:
        payload = {
            **_contact_payload(contact),
            "appointments": [_appointment_payload(item, salon_id) for item in items],
            "isGroupBooking": True,
        }
        body = self._request("POST", "/api/appointments", json=payload)
        created_ids = _created_ids(body)
        if not created_ids:
            raise TransportError("No appointment ID returned from salon API")
        booking_id = body.get("bookingId") if isinstance(body, dict) else None
        return GroupBookingReceipt(booking_id=str(booking_id or created_ids[0]), created_ids=created_ids)

    def reschedule_appointment(self, appointment_id: str, change: RescheduleChange) -> None:
        self._request(
            "PATCH",
            f"/api/appointments/{appointment_id}/reschedule",
            json={
                "date": change.date,
                "startTime": change.start_time,
                "endTime": change.end_time,
                "professionalId": change.professional_id,
            },
        )
        self._logger.info("Appointment rescheduled", extra={"appointment_id": appointment_id})

    def cancel_appointment(self, appointment_id: str) -> bool:
        try:
            self._request("DELETE", f"/api/appointments/{appointment_id}")
        except (SlotConflict, TransportError) as e:
            self._logger.error("Error cancelling appointment", extra={"appointment_id": appointment_id, "error": str(e)})
            return False
        self._logger.info("Appointment cancelled", extra={"appointment_id": appointment_id})
        return True

    def list_professionals(self, salon_id: str) -> list[Professional]:
        body = self._request("GET", f"/api/professionals/{salon_id}")
        raw_professionals = body if isinstance(body, list) else _data(body)
        if not isinstance(raw_professionals, list):
            return []

        professionals: list[Professional] = []
        for raw in raw_professionals:
            if not isinstance(raw, dict):
                continue
            professional_id = raw.get("_id") or raw.get("id")
            if not professional_id:
                continue
            services = raw.get("services") or raw.get("serviceNames") or []
            professionals.append(
                Professional(
                    professional_id=str(professional_id),
                    name=raw.get("name", ""),
                    service_names=tuple(
                        s.get("name", "") if isinstance(s, dict) else str(s) for s in services
                    ),
                    is_available=raw.get("isAvailable", raw.get("available", True)) is not False,
                )
            )
        return professionals

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            self._logger.error("Salon API unreachable", extra={"method": method, "path": path, "error": str(e)})
            raise TransportError(f"{method} {path} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        message = _message(body) or f"HTTP {response.status_code}"
        if response.status_code == 409:
            raise SlotConflict(message)
        if response.status_code >= 500:
            self._logger.error(
                "Salon API error",
                extra={"method": method, "path": path, "status": response.status_code, "error": message},
            )
            raise TransportError(message)
        if response.status_code >= 400 or (isinstance(body, dict) and body.get("success") is False):
            if any(marker in message.lower() for marker in _CONFLICT_MARKERS):
                raise SlotConflict(message)
            self._logger.error(
                "Salon API rejected request",
                extra={"method": method, "path": path, "status": response.status_code, "error": message},
            )
            raise TransportError(message)
        return body


def _data(body: Any) -> Any:
    if isinstance(body, dict):
        return body.get("data")
    return None


def _message(body: Any) -> str | None:
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str):
            return message
    return None


def _created_ids(body: Any) -> list[str]:
    data = _data(body)
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        return []
    created: list[str] = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        appointment_id = entry.get("_id") or entry.get("id")
        if appointment_id:
            created.append(str(appointment_id))
    return created


def _contact_payload(contact: ContactInfo) -> dict[str, str]:
    return {"phone": contact.phone, "email": contact.email, "name": contact.name or "Guest"}


def _appointment_payload(item: ScheduledItem, salon_id: str | None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "salonId": salon_id,
        "professionalId": item.professional_id,
        "professionalName": item.professional_name or "Any Professional",
        "serviceName": item.service_name,
        "price": item.price,
        "duration": format_duration(item.duration_minutes),
        "date": item.date,
        "startTime": item.start_time,
        "endTime": item.end_time,
    }
    if item.participant is not None:
        payload["memberName"] = item.participant.member_name
        payload["memberCategory"] = item.participant.member_category
    return payload
