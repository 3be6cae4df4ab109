# stylistbook/services/notifications.py
import logging

from .twilio_client import send_sms
from ..engine.sweep import NotificationKind

logger = logging.getLogger(__name__)


class DeliveryError(RuntimeError):
    """Twilio respondió con error. El barrido lo registra y sigue."""


def send_booking_received(contact: str, slot_label: str, expires_label: str) -> None:
    """Acuse de la solicitud: queda pendiente hasta que el proveedor confirme."""
    body = (
        "Booking request received\n"
        f"Time: {slot_label}\n"
        f"Your stylist has until {expires_label} to confirm. Reply CANCEL to withdraw."
    )
    _send(contact, body)


def send_confirmed(contact: str, slot_label: str) -> None:
    body = f"Your appointment for {slot_label} is confirmed. See you then!"
    _send(contact, body)


def send_reminder(contact: str, slot_label: str, when: str = "24h") -> None:
    """Recordatorio de cita confirmada (D-1)."""
    body = (
        f"Reminder ({when})\n"
        f"Your appointment is {slot_label}.\n"
        "Please contact your stylist if you need to make changes."
    )
    _send(contact, body)


def send_text(contact: str, body: str) -> None:
    """Mensaje libre usado por el webhook."""
    _send(contact, body)


def send_expiry_notice(recipient: str | None, message: str, stage: NotificationKind) -> None:
    """Transporte del barrido de expiración: (destinatario, mensaje, etapa)."""
    if not recipient:
        logger.info("Aviso %s sin destinatario (sin teléfono o sin consentimiento); no se envía", stage.value)
        return
    _send(recipient, message)


# ------------------ internos ------------------

def _send(contact: str, body: str) -> None:
    result = send_sms(contact, body)
    if "error" in result:
        raise DeliveryError(result["error"])
