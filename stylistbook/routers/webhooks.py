# stylistbook/routers/webhooks.py
from __future__ import annotations
import logging

from fastapi import APIRouter, Depends, Form
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..engine.lifecycle import AppointmentStatus, InvalidTransition
from ..services import booking
from ..services.notifications import send_text

router = APIRouter(prefix="", tags=["webhooks"])
logger = logging.getLogger(__name__)

HELP_TEXT = "Reply CANCEL to withdraw your booking request."


def handle_inbound(db: Session, sender: str, body: str) -> str:
    """Respuesta de texto a un SMS entrante. Solo entiende CANCEL."""
    words = (body or "").split()
    command = words[0].upper() if words else ""
    appt = booking.latest_open_for_phone(db, sender)
    if appt is None:
        return "We couldn't find an open booking for this number."

    if command in ("CANCEL", "STOP"):
        try:
            booking.cancel_appointment(db, appt.id)
        except InvalidTransition:
            return "This booking can no longer be changed. Please contact your stylist."
        return "Your booking request has been cancelled."

    if appt.status == AppointmentStatus.pending:
        return f"Your booking request is waiting for your stylist to confirm. {HELP_TEXT}"
    return "Your appointment is confirmed. Please contact your stylist to make changes."


@router.post("/webhooks/sms", response_class=PlainTextResponse)
def sms_webhook(From: str = Form(None), Body: str = Form(None), db: Session = Depends(get_db)) -> str:
    if not From:
        return ""
    logger.info("[SMS IN] from=%s body=%s", From, Body or "")
    reply = handle_inbound(db, From, Body or "")
    try:
        send_text(From, reply)
    except Exception as e:
        logger.warning("No se pudo responder a %s: %s", From, e)
    return ""
