from __future__ import annotations

import logging

from salon_scheduler.application.exceptions import (
    PartialBatchFailure,
    SchedulingError,
    SlotConflict,
    TransportError,
    ValidationError,
)
from salon_scheduler.application.ports.appointment_backend import AppointmentBackendPort
from salon_scheduler.application.ports.session_store import SessionStorePort
from salon_scheduler.domain.entities.booking_session import BookingSession, SessionMode
from salon_scheduler.domain.entities.contact import ContactInfo
from salon_scheduler.domain.entities.submission import (
    FailedItem,
    RescheduleChange,
    SubmissionResult,
    SubmissionStatus,
)


class AppointmentSubmitter:
    """
    Turns a completed session into backend appointments.

    Individual sessions are created one item at a time, in scheduling order, and
    items already created are never rolled back. Group sessions go out as one
    batch. Reschedules send a single partial update. Successful creations are
    recorded in `session.confirmed_ids` so a retry only sends the remainder.
    """

    def __init__(self, backend: AppointmentBackendPort, store: SessionStorePort) -> None:
        self._backend = backend
        self._store = store
        self._logger = logging.getLogger(__name__)

    def submit(self, session: BookingSession, contact: ContactInfo) -> SubmissionResult:
        if not session.scheduled:
            raise ValidationError("Nothing scheduled to submit")
        if session.is_reschedule:
            return self._submit_reschedule(session)
        if session.mode == SessionMode.group:
            return self._submit_group(session, contact)
        return self._submit_individual(session, contact)

    def _submit_individual(self, session: BookingSession, contact: ContactInfo) -> SubmissionResult:
        failure_index: int | None = None
        failure: SchedulingError | None = None

        for index, item in enumerate(session.scheduled):
            if index in session.confirmed_ids:
                continue
            try:
                created = self._backend.create_appointments(contact, [item], session.salon_id)
            except SlotConflict as e:
                failure_index, failure = index, SlotConflict(str(e), index=index)
                break
            except TransportError as e:
                failure_index, failure = index, e
                break
            if not created:
                failure_index, failure = index, TransportError("No appointment id returned")
                break
            session.confirmed_ids[index] = created[0]
            self._logger.info(
                "Appointment created",
                extra={"session_id": session.session_id, "index": index, "appointment_id": created[0]},
            )

        created_ids = [session.confirmed_ids[i] for i in sorted(session.confirmed_ids)]
        if failure is None:
            return SubmissionResult(status=SubmissionStatus.submitted, created_ids=created_ids)

        reason = "slot_conflict" if isinstance(failure, SlotConflict) else "transport_error"
        failed = [FailedItem(index=failure_index, item=session.scheduled[failure_index], reason=reason)]
        failed.extend(
            FailedItem(index=i, item=session.scheduled[i], reason="not_attempted")
            for i in range(failure_index + 1, len(session.scheduled))
            if i not in session.confirmed_ids
        )
        self._logger.error(
            "Appointment creation failed",
            extra={
                "session_id": session.session_id,
                "index": failure_index,
                "created_count": len(created_ids),
                "error": str(failure),
            },
        )

        if isinstance(failure, SlotConflict):
            error: SchedulingError = PartialBatchFailure(created_ids, failed) if created_ids else failure
            return SubmissionResult(
                status=SubmissionStatus.slot_conflict,
                created_ids=created_ids,
                failed=failed,
                error=error,
            )

        if not created_ids:
            return self._fall_back_locally(session, failed, failure)

        return SubmissionResult(
            status=SubmissionStatus.partial_failure,
            created_ids=created_ids,
            failed=failed,
            error=PartialBatchFailure(created_ids, failed),
        )

    def _submit_group(self, session: BookingSession, contact: ContactInfo) -> SubmissionResult:
        if len(session.confirmed_ids) == len(session.scheduled):
            # The batch already went through; never send it twice
            created_ids = [session.confirmed_ids[i] for i in sorted(session.confirmed_ids)]
            return SubmissionResult(status=SubmissionStatus.submitted, created_ids=created_ids)
        try:
            receipt = self._backend.create_group_appointments(
                contact, list(session.scheduled), session.salon_id
            )
        except SlotConflict as e:
            self._logger.warning(
                "Group booking slot conflict",
                extra={"session_id": session.session_id, "index": e.index, "error": str(e)},
            )
            failed = [
                FailedItem(index=i, item=item, reason="slot_conflict")
                for i, item in enumerate(session.scheduled)
            ]
            return SubmissionResult(status=SubmissionStatus.slot_conflict, failed=failed, error=e)
        except TransportError as e:
            self._logger.error(
                "Group booking failed",
                extra={"session_id": session.session_id, "error": str(e)},
            )
            failed = [
                FailedItem(index=i, item=item, reason="transport_error")
                for i, item in enumerate(session.scheduled)
            ]
            return self._fall_back_locally(session, failed, e)

        session.confirmed_ids = dict(enumerate(receipt.created_ids))
        self._logger.info(
            "Group booking created",
            extra={
                "session_id": session.session_id,
                "booking_id": receipt.booking_id,
                "created_count": len(receipt.created_ids),
            },
        )
        return SubmissionResult(
            status=SubmissionStatus.submitted,
            created_ids=list(receipt.created_ids),
            booking_id=receipt.booking_id,
        )

    def _submit_reschedule(self, session: BookingSession) -> SubmissionResult:
        target = session.reschedule_target
        item = session.scheduled[0]
        change = RescheduleChange(
            date=item.date,
            start_time=item.start_time,
            end_time=item.end_time,
            professional_id=item.professional_id,
        )
        try:
            self._backend.reschedule_appointment(target.id, change)
        except SlotConflict as e:
            return SubmissionResult(
                status=SubmissionStatus.slot_conflict,
                failed=[FailedItem(index=0, item=item, reason="slot_conflict")],
                error=SlotConflict(str(e), index=0),
            )
        except TransportError as e:
            self._logger.error(
                "Reschedule failed",
                extra={"session_id": session.session_id, "appointment_id": target.id, "error": str(e)},
            )
            return SubmissionResult(
                status=SubmissionStatus.transport_error,
                failed=[FailedItem(index=0, item=item, reason="transport_error")],
                error=e,
            )

        session.confirmed_ids = {0: target.id}
        self._logger.info(
            "Appointment rescheduled",
            extra={"session_id": session.session_id, "appointment_id": target.id, "date": item.date},
        )
        return SubmissionResult(status=SubmissionStatus.submitted, created_ids=[target.id])

    def _fall_back_locally(
        self,
        session: BookingSession,
        failed: list[FailedItem],
        error: SchedulingError,
    ) -> SubmissionResult:
        session.is_local_booking = True
        self._store.save(session)
        self._logger.warning(
            "Backend unavailable, booking kept locally",
            extra={"session_id": session.session_id, "items": len(session.scheduled)},
        )
        return SubmissionResult(status=SubmissionStatus.local_fallback, failed=failed, error=error)
