from __future__ import annotations

import logging

from salon_scheduler.application.exceptions import PolicyViolation, TransportError, ValidationError
from salon_scheduler.application.ports.appointment_backend import AppointmentBackendPort
from salon_scheduler.application.ports.clock import ClockPort
from salon_scheduler.application.utils.temporal_policy import LOCKOUT_HOURS, is_reschedule_locked


class AppointmentCanceller:
    """
    Cancels an existing backend appointment.

    When the caller knows when the appointment starts, the same lockout as for
    reschedules applies: nothing within `lockout_hours` of the start, or already
    started, can be cancelled.
    """

    def __init__(
        self,
        backend: AppointmentBackendPort,
        clock: ClockPort,
        lockout_hours: float = LOCKOUT_HOURS,
    ) -> None:
        self._backend = backend
        self._clock = clock
        self._lockout_hours = lockout_hours
        self._logger = logging.getLogger(__name__)

    def cancel(
        self,
        appointment_id: str,
        original_date: str | None = None,
        original_start_time: str | None = None,
    ) -> None:
        if not appointment_id.strip():
            raise ValidationError("Appointment id is required")
        if original_date and is_reschedule_locked(
            original_date, original_start_time or "", self._clock.now(), self._lockout_hours
        ):
            raise PolicyViolation(
                f"You cannot cancel an appointment that is within {self._lockout_hours:g} hours."
            )

        if not self._backend.cancel_appointment(appointment_id):
            self._logger.warning("Appointment not cancelled", extra={"appointment_id": appointment_id})
            raise TransportError(f"Appointment {appointment_id} could not be cancelled")
        self._logger.info("Appointment cancelled", extra={"appointment_id": appointment_id})
