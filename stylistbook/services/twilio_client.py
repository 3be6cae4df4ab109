# stylistbook/services/twilio_client.py
import logging
import re
from twilio.rest import Client
from ..config import settings

logger = logging.getLogger(__name__)


def normalize_phone(number: str | None) -> str | None:
    """
    Deja el número en formato E.164. Diez dígitos se asumen de EE.UU./Canadá.
    """
    if not number:
        return number
    raw = number.strip()
    digits = re.sub(r"\D", "", raw)
    if raw.startswith("+"):
        return f"+{digits}"
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


def get_twilio_client() -> Client | None:
    if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
        return None
    return Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)


def send_sms(to: str, body: str) -> dict:
    """
    Envía un SMS usando Twilio.
    - Si DRY_RUN=true: no envía; deja log y regresa {"dry_run": True, ...}
    - Si faltan credenciales: modo MOCK (no envía) y regresa {"mock": True, ...}
    - Si hay error al enviar: registra y regresa {"error": "..."}
    """
    to_norm = normalize_phone(to)
    from_norm = normalize_phone(settings.TWILIO_SMS_FROM or "")
    flat = body.replace("\n", " | ")

    if settings.DRY_RUN:
        logger.info("[DRY_RUN SMS] to=%s body=%s", to_norm, flat)
        return {"dry_run": True, "to": to_norm, "body": body}

    client = get_twilio_client()

    if client is None or not from_norm:
        logger.info("[SMS MOCK] to=%s body=%s", to_norm, flat)
        return {"mock": True, "to": to_norm, "body": body}

    try:
        msg = client.messages.create(from_=from_norm, to=to_norm, body=body)
        return {"sid": msg.sid, "to": to_norm}
    except Exception as e:
        logger.warning("[SMS ERROR] to=%s err=%s", to_norm, e)
        return {"error": str(e), "to": to_norm}
