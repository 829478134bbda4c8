from fastapi import APIRouter, Depends, HTTPException

from salon_scheduler.application.exceptions import PolicyViolation, TransportError, ValidationError
from salon_scheduler.application.use_cases.cancel_appointment import AppointmentCanceller
from salon_scheduler.wiring.dependencies import get_appointment_canceller

router = APIRouter()


@router.delete("/{appointment_id}", status_code=204)
def cancel_appointment(
    appointment_id: str,
    date: str | None = None,
    start_time: str | None = None,
    canceller: AppointmentCanceller = Depends(get_appointment_canceller),
):
    try:
        canceller.cancel(appointment_id, original_date=date, original_start_time=start_time)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PolicyViolation as e:
        raise HTTPException(status_code=423, detail=str(e))
    except TransportError as e:
        raise HTTPException(status_code=502, detail=str(e))
