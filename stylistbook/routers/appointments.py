from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from .. import schemas
from ..engine.lifecycle import InvalidTransition
from ..services import booking

router = APIRouter(prefix="", tags=["appointments"])


def _transition_conflict(e: InvalidTransition) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"message": e.reason, "appointment_id": e.appointment_id, "status": e.current.value},
    )


@router.post("/appointments", response_model=schemas.AppointmentOut, status_code=201)
def book(req: schemas.BookRequest, db: Session = Depends(get_db)):
    try:
        appt = booking.request_appointment(
            db,
            provider_id=req.provider_id,
            client_name=req.client.name,
            client_phone=req.client.phone,
            scheduled_at=req.scheduled_at,
            duration_minutes=req.duration_minutes,
            notes=req.notes,
            address=req.address,
        )
    except booking.ProviderNotFound:
        raise HTTPException(status_code=404, detail="Provider not found")
    except booking.SlotUnavailable as e:
        raise HTTPException(status_code=409, detail=str(e))
    return schemas.AppointmentOut.model_validate(appt)


@router.post("/appointments/{appointment_id}/confirm", response_model=schemas.AppointmentOut)
def confirm(appointment_id: int, db: Session = Depends(get_db)):
    try:
        appt = booking.confirm_appointment(db, appointment_id)
    except booking.AppointmentNotFound:
        raise HTTPException(status_code=404, detail="Appointment not found")
    except InvalidTransition as e:
        raise _transition_conflict(e)
    return schemas.AppointmentOut.model_validate(appt)


@router.post("/appointments/{appointment_id}/cancel", response_model=schemas.AppointmentOut)
def cancel(appointment_id: int, db: Session = Depends(get_db)):
    try:
        appt = booking.cancel_appointment(db, appointment_id)
    except booking.AppointmentNotFound:
        raise HTTPException(status_code=404, detail="Appointment not found")
    except InvalidTransition as e:
        raise _transition_conflict(e)
    return schemas.AppointmentOut.model_validate(appt)


@router.get("/providers/{provider_id}/pending", response_model=schemas.PendingViewResponse)
def pending(provider_id: int, db: Session = Depends(get_db)):
    try:
        view = booking.pending_view(db, provider_id)
    except booking.ProviderNotFound:
        raise HTTPException(status_code=404, detail="Provider not found")
    return schemas.PendingViewResponse(
        visible=[schemas.AppointmentOut.model_validate(a) for a in view.visible],
        should_show=view.should_show,
        expired_count=view.expired_count,
        warning_count=view.warning_count,
    )
