from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from dateutil import parser as dtparser

from ..database import get_db
from .. import schemas
from ..services import booking

router = APIRouter(prefix="/providers", tags=["calendar"])


@router.get("/{provider_id}/calendar", response_model=schemas.CalendarResponse)
def get_calendar(
    provider_id: int,
    date: str = Query(..., description="YYYY-MM-DD"),
    include_expired: bool = False,
    db: Session = Depends(get_db),
):
    try:
        d = dtparser.parse(date).date()
    except (ValueError, OverflowError):
        raise HTTPException(status_code=400, detail="Invalid date. Use YYYY-MM-DD.")
    try:
        slots = booking.calendar_for(db, provider_id, d, include_expired=include_expired)
    except booking.ProviderNotFound:
        raise HTTPException(status_code=404, detail="Provider not found")
    return schemas.CalendarResponse(
        provider_id=provider_id,
        date=d.isoformat(),
        slots=[schemas.SlotOut.model_validate(s) for s in slots],
    )


@router.get("/{provider_id}/working-hours", response_model=schemas.WorkingHoursOut)
def get_working_hours(provider_id: int, db: Session = Depends(get_db)):
    try:
        provider = booking.get_provider(db, provider_id)
    except booking.ProviderNotFound:
        raise HTTPException(status_code=404, detail="Provider not found")
    return schemas.WorkingHoursOut(provider_id=provider.id, working_hours=provider.working_hours or {})


@router.put("/{provider_id}/working-hours", response_model=schemas.WorkingHoursOut)
def put_working_hours(provider_id: int, req: schemas.WorkingHoursIn, db: Session = Depends(get_db)):
    raw = {day: hours.model_dump() for day, hours in req.working_hours.items()}
    try:
        provider = booking.set_working_hours(db, provider_id, raw)
    except booking.ProviderNotFound:
        raise HTTPException(status_code=404, detail="Provider not found")
    return schemas.WorkingHoursOut(provider_id=provider.id, working_hours=provider.working_hours)
