# stylistbook/services/booking.py
"""
Operaciones sobre la BD alrededor del motor: cargar lotes de citas,
aplicar reglas del motor y persistir lo que el motor decida.
"""
from __future__ import annotations
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, List, Optional

import pytz
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..config import settings
from .. import models
from ..engine import lifecycle, slots
from ..engine.lifecycle import (
    AppointmentStatus,
    Clock,
    ExpiryConfig,
    InvalidTransition,
    NotificationStage,
    as_utc,
    compute_expires_at,
    system_clock,
)
from ..engine.pending import PendingView, project
from ..engine.sweep import ExpiryNotification, ExpirySweep, NotificationKind, SweepResult
from ..engine.working_hours import WeeklySchedule, is_open, parse_weekly_schedule
from .notifications import send_booking_received, send_confirmed, send_expiry_notice, send_reminder
from .twilio_client import normalize_phone

logger = logging.getLogger(__name__)

# Ocupan la hora en el calendario
ACTIVE_STATUSES = (AppointmentStatus.pending, AppointmentStatus.confirmed)


class ProviderNotFound(LookupError):
    pass


class AppointmentNotFound(LookupError):
    pass


class SlotUnavailable(ValueError):
    pass


# ====== Utilidades de tiempo ======
def provider_tz(provider: models.Provider):
    return pytz.timezone(provider.timezone or settings.TIMEZONE)


def to_utc(dt: datetime, tz) -> datetime:
    """Un datetime naive se interpreta en la TZ del proveedor."""
    if dt.tzinfo is None:
        dt = tz.localize(dt)
    return dt.astimezone(pytz.UTC)


def to_local(dt: datetime, tz) -> datetime:
    return as_utc(dt).astimezone(tz)


def fmt_time(dt_local: datetime) -> str:
    """10:30 AM"""
    return dt_local.strftime("%I:%M %p").lstrip("0")


def fmt_slot(dt_local: datetime) -> str:
    return f"{dt_local.strftime('%a %b')} {dt_local.day}, {fmt_time(dt_local)}"


def day_bounds_utc(day: date, tz) -> tuple[datetime, datetime]:
    start = tz.localize(datetime.combine(day, time(0, 0)))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time(0, 0)))
    return start.astimezone(pytz.UTC), end.astimezone(pytz.UTC)


def _notify_safely(fn: Callable[..., Any], *args: Any) -> None:
    try:
        fn(*args)
    except Exception as e:
        logger.warning("Notificación %s falló: %s", fn.__name__, e)


# ====== Lookups ======
def get_provider(db: Session, provider_id: int) -> models.Provider:
    provider = db.get(models.Provider, provider_id)
    if provider is None:
        raise ProviderNotFound(f"Provider {provider_id} not found")
    return provider


def get_appointment(db: Session, appointment_id: int) -> models.Appointment:
    appt = db.get(models.Appointment, appointment_id)
    if appt is None:
        raise AppointmentNotFound(f"Appointment {appointment_id} not found")
    return appt


def load_schedule(provider: models.Provider) -> WeeklySchedule:
    return parse_weekly_schedule(provider.working_hours or {})


def set_working_hours(db: Session, provider_id: int, working_hours: dict) -> models.Provider:
    provider = get_provider(db, provider_id)
    provider.working_hours = working_hours
    db.commit()
    db.refresh(provider)
    return provider


def get_or_create_client(db: Session, provider_id: int, name: str, phone: str | None) -> models.Client:
    client = None
    if phone:
        client = (
            db.query(models.Client)
            .filter(models.Client.provider_id == provider_id, models.Client.phone == phone)
            .first()
        )
    if client is None:
        client = models.Client(provider_id=provider_id, name=name, phone=phone)
        db.add(client)
        db.flush()
    return client


# ====== Calendario ======
def appointments_between(db: Session, provider_id: int, start_utc: datetime, end_utc: datetime,
                         statuses) -> List[models.Appointment]:
    return (
        db.query(models.Appointment)
        .filter(models.Appointment.provider_id == provider_id)
        .filter(models.Appointment.scheduled_at >= start_utc)
        .filter(models.Appointment.scheduled_at < end_utc)
        .filter(models.Appointment.status.in_(list(statuses)))
        .order_by(models.Appointment.scheduled_at.asc())
        .all()
    )


def calendar_for(db: Session, provider_id: int, day: date, include_expired: bool = False) -> List[slots.SlotDescriptor]:
    provider = get_provider(db, provider_id)
    tz = provider_tz(provider)
    start, end = day_bounds_utc(day, tz)
    statuses = list(ACTIVE_STATUSES)
    if include_expired:
        statuses.append(AppointmentStatus.expired)
    appts = appointments_between(db, provider.id, start, end, statuses)
    return list(slots.generate(appts, load_schedule(provider), day, tz=tz))


# ====== Ciclo de vida ======
def request_appointment(
    db: Session,
    provider_id: int,
    client_name: str,
    client_phone: str | None,
    scheduled_at: datetime,
    duration_minutes: int,
    notes: str | None = None,
    address: str | None = None,
    clock: Clock = system_clock,
    config: Optional[ExpiryConfig] = None,
) -> models.Appointment:
    """Crea la cita en pending. La hora debe estar abierta y libre."""
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    config = config or settings.expiry_config()
    provider = get_provider(db, provider_id)
    tz = provider_tz(provider)

    start_utc = to_utc(scheduled_at, tz)
    start_local = start_utc.astimezone(tz)
    if not is_open(start_local.hour, load_schedule(provider), start_local.date()):
        raise SlotUnavailable("Requested time is outside working hours")

    into_hour = timedelta(minutes=start_local.minute, seconds=start_local.second,
                          microseconds=start_local.microsecond)
    hour_start = start_utc - into_hour
    taken = appointments_between(db, provider.id, hour_start, hour_start + timedelta(hours=1), ACTIVE_STATUSES)
    if taken:
        raise SlotUnavailable("Requested hour is already booked")

    client = get_or_create_client(db, provider.id, client_name, normalize_phone(client_phone))
    now = as_utc(clock())
    appt = models.Appointment(
        provider_id=provider.id,
        client_id=client.id,
        scheduled_at=start_utc,
        duration_minutes=duration_minutes,
        status=AppointmentStatus.pending,
        created_at=now,
        expires_at=compute_expires_at(now, config),
        notification_stage=NotificationStage.none,
        notes=notes,
        address=address,
    )
    db.add(appt)
    db.commit()
    db.refresh(appt)
    logger.info("Cita %s pendiente para proveedor %s (vence %s)", appt.id, provider.id, appt.expires_at)

    if client.phone and client.consent_messages:
        _notify_safely(
            send_booking_received,
            client.phone,
            fmt_slot(start_local),
            fmt_time(to_local(appt.expires_at, tz)),
        )
    return appt


def confirm_appointment(db: Session, appointment_id: int, clock: Clock = system_clock) -> models.Appointment:
    appt = get_appointment(db, appointment_id)
    if lifecycle.is_expired(appt, clock()):
        # Solo el barrido puede marcarla expired; aquí solo se rechaza
        raise InvalidTransition(appt.id, appt.status, AppointmentStatus.confirmed,
                                reason="confirmation window has closed")
    lifecycle.confirm(appt)
    db.commit()
    db.refresh(appt)
    logger.info("Cita %s confirmada", appt.id)

    client = appt.client
    if client is not None and client.phone and client.consent_messages:
        tz = provider_tz(appt.provider)
        _notify_safely(send_confirmed, client.phone, fmt_slot(to_local(appt.scheduled_at, tz)))
    return appt


def cancel_appointment(db: Session, appointment_id: int) -> models.Appointment:
    appt = get_appointment(db, appointment_id)
    lifecycle.cancel(appt)
    db.commit()
    db.refresh(appt)
    logger.info("Cita %s cancelada", appt.id)
    return appt


def latest_open_for_phone(db: Session, phone: str) -> Optional[models.Appointment]:
    """Cita pendiente o confirmada más reciente del cliente con ese teléfono."""
    return (
        db.query(models.Appointment)
        .join(models.Client, models.Client.id == models.Appointment.client_id)
        .filter(models.Client.phone == normalize_phone(phone))
        .filter(models.Appointment.status.in_(list(ACTIVE_STATUSES)))
        .order_by(models.Appointment.created_at.desc())
        .first()
    )


# ====== Tarjeta de pendientes ======
def pending_view(db: Session, provider_id: int, clock: Clock = system_clock,
                 config: Optional[ExpiryConfig] = None) -> PendingView:
    config = config or settings.expiry_config()
    provider = get_provider(db, provider_id)
    now = as_utc(clock())
    since = now - timedelta(hours=settings.PENDING_VIEW_LOOKBACK_HOURS)
    batch = (
        db.query(models.Appointment)
        .filter(models.Appointment.provider_id == provider.id)
        .filter(or_(
            models.Appointment.status == AppointmentStatus.pending,
            and_(models.Appointment.status == AppointmentStatus.expired,
                 models.Appointment.created_at >= since),
        ))
        .order_by(models.Appointment.scheduled_at.asc())
        .all()
    )
    return project(batch, now=now, config=config)


# ====== Barrido de expiración ======
def _recipient(appt: models.Appointment) -> str | None:
    client = appt.client
    if client is None or not client.consent_messages:
        return None
    return client.phone


def run_sweep(
    db: Session,
    provider_id: int,
    clock: Clock = system_clock,
    config: Optional[ExpiryConfig] = None,
    transport: Optional[Callable[[Any, str, NotificationKind], Any]] = send_expiry_notice,
) -> SweepResult:
    """
    Un barrido sobre las pendientes de un proveedor. Primero se persisten
    estados y avisos; los mensajes salen después del commit.
    """
    config = config or settings.expiry_config()
    appts = (
        db.query(models.Appointment)
        .filter(models.Appointment.provider_id == provider_id)
        .filter(models.Appointment.status == AppointmentStatus.pending)
        .order_by(models.Appointment.id.asc())
        .all()
    )
    if not appts:
        return SweepResult()

    by_id = {a.id: a for a in appts}
    prior = (
        db.query(models.NotificationLog)
        .filter(models.NotificationLog.appointment_id.in_(list(by_id)))
        .all()
    )
    log = [
        ExpiryNotification(appointment_id=r.appointment_id, stage=r.stage, message=r.message, sent_at=r.sent_at)
        for r in prior
    ]
    seen = len(log)

    result = ExpirySweep(config=config, log=log, clock=clock, recipient_of=_recipient).sweep(appts)

    fresh = log[seen:]
    outbox = []
    for n in fresh:
        recipient = _recipient(by_id[n.appointment_id])
        db.add(models.NotificationLog(
            appointment_id=n.appointment_id,
            stage=n.stage,
            recipient=recipient,
            message=n.message,
            sent_at=n.sent_at,
        ))
        outbox.append((recipient, n))
    db.commit()

    if transport is not None:
        for recipient, n in outbox:
            try:
                transport(recipient, n.message, n.stage)
            except Exception as e:
                result.delivery_failures += 1
                logger.warning("Aviso %s de cita %s no entregado: %s", n.stage.value, n.appointment_id, e)

    if result.touched:
        logger.info(
            "Barrido proveedor=%s expired=%s warnings=%s final_warnings=%s fallos_envio=%s",
            provider_id, result.expired_count, result.warnings_sent,
            result.final_warnings_sent, result.delivery_failures,
        )
    return result


def run_sweep_all(
    db: Session,
    clock: Clock = system_clock,
    config: Optional[ExpiryConfig] = None,
    transport: Optional[Callable[[Any, str, NotificationKind], Any]] = send_expiry_notice,
) -> SweepResult:
    """Proveedor por proveedor, en secuencia (un solo dueño por tick)."""
    provider_ids = [
        pid for (pid,) in (
            db.query(models.Appointment.provider_id)
            .filter(models.Appointment.status == AppointmentStatus.pending)
            .distinct()
            .order_by(models.Appointment.provider_id)
            .all()
        )
    ]
    total = SweepResult()
    for pid in provider_ids:
        total.merge(run_sweep(db, pid, clock=clock, config=config, transport=transport))
    return total


# ====== Recordatorios ======
def send_due_reminders(db: Session, clock: Clock = system_clock, hours_before: int | None = None) -> int:
    """Recordatorio único para citas confirmadas que caen dentro de las próximas N horas."""
    hours = hours_before if hours_before is not None else settings.REMINDER_HOURS_BEFORE
    now = as_utc(clock())
    appts = (
        db.query(models.Appointment)
        .filter(models.Appointment.status == AppointmentStatus.confirmed)
        .filter(models.Appointment.reminder_sent.is_(False))
        .filter(models.Appointment.scheduled_at > now)
        .filter(models.Appointment.scheduled_at <= now + timedelta(hours=hours))
        .all()
    )
    outbox = []
    for appt in appts:
        appt.reminder_sent = True
        contact = _recipient(appt)
        if contact:
            tz = provider_tz(appt.provider)
            outbox.append((contact, fmt_slot(to_local(appt.scheduled_at, tz))))
    db.commit()

    for contact, slot_label in outbox:
        _notify_safely(send_reminder, contact, slot_label, f"{hours}h")
    return len(outbox)
