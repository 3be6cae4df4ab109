# stylistbook/engine/sweep.py
"""
Barrido de expiración.

Recorre las citas pendientes y, por cada una y en este orden:
    1. si ya venció → expired + aviso de expiración
    2. si quedan <= final_warning_threshold min y no hubo aviso final → aviso final
    3. si quedan <= warning_threshold min y no hubo ningún aviso → primer aviso

No tiene timer propio: quien lo llama decide la cadencia (ver jobs/scheduler.py).
No debe correr dos veces en paralelo sobre las mismas citas.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from .lifecycle import (
    STANDARD,
    AppointmentStatus,
    Clock,
    ExpiryConfig,
    NotificationStage,
    as_utc,
    expire,
    is_expired,
    minutes_until_expiry,
    system_clock,
)

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    warning = "warning"
    final_warning = "final_warning"
    expired = "expired"


MESSAGE_TEMPLATES = {
    NotificationKind.warning: "Your booking request expires in {minutes} minutes. Please confirm soon.",
    NotificationKind.final_warning: (
        "URGENT: Your booking request expires in {minutes} minutes! "
        "Confirm now or it will be cancelled."
    ),
    NotificationKind.expired: (
        "Your booking request has expired and has been cancelled. Please book again if needed."
    ),
}


def render_message(kind: NotificationKind, minutes: int = 0) -> str:
    return MESSAGE_TEMPLATES[NotificationKind(kind)].format(minutes=minutes)


@dataclass(frozen=True)
class ExpiryNotification:
    appointment_id: Any
    stage: NotificationKind
    message: str
    sent_at: datetime


@dataclass
class SweepResult:
    expired_count: int = 0
    warnings_sent: int = 0
    final_warnings_sent: int = 0
    delivery_failures: int = 0

    def merge(self, other: "SweepResult") -> "SweepResult":
        self.expired_count += other.expired_count
        self.warnings_sent += other.warnings_sent
        self.final_warnings_sent += other.final_warnings_sent
        self.delivery_failures += other.delivery_failures
        return self

    @property
    def touched(self) -> bool:
        return bool(self.expired_count or self.warnings_sent or self.final_warnings_sent)


# transport(recipient, message, kind)
Transport = Callable[[Any, str, NotificationKind], Any]


def _default_recipient(appointment: Any) -> Any:
    return getattr(appointment, "client_id", None)


class ExpirySweep:
    def __init__(
        self,
        config: ExpiryConfig = STANDARD,
        transport: Optional[Transport] = None,
        log: Optional[List[ExpiryNotification]] = None,
        clock: Clock = system_clock,
        recipient_of: Callable[[Any], Any] = _default_recipient,
    ):
        self.config = config
        self.transport = transport
        # Se comparte por referencia: el llamador conserva el historial entre barridos
        self.log = log if log is not None else []
        self.clock = clock
        self.recipient_of = recipient_of

    def already_recorded(self, appointment: Any, kind: NotificationKind) -> bool:
        return any(n.appointment_id == appointment.id and n.stage == kind for n in self.log)

    def sweep(self, appointments: Iterable[Any]) -> SweepResult:
        now = as_utc(self.clock())
        result = SweepResult()

        for appt in appointments:
            if appt.status != AppointmentStatus.pending:
                continue
            if appt.expires_at is None:
                logger.debug("Cita %s pendiente sin expires_at; se omite", appt.id)
                continue

            if is_expired(appt, now):
                expire(appt, now)
                logger.info("Cita %s expirada (venció %s)", appt.id, appt.expires_at)
                if not self._notify(appt, NotificationKind.expired, 0, now):
                    result.delivery_failures += 1
                result.expired_count += 1
                continue

            minutes = minutes_until_expiry(appt, now)

            if (minutes <= self.config.final_warning_minutes
                    and appt.notification_stage != NotificationStage.final_warned
                    and not self.already_recorded(appt, NotificationKind.final_warning)):
                appt.notification_stage = NotificationStage.final_warned
                if not self._notify(appt, NotificationKind.final_warning, minutes, now):
                    result.delivery_failures += 1
                result.final_warnings_sent += 1

            elif (minutes <= self.config.warning_minutes
                    and appt.notification_stage == NotificationStage.none):
                appt.notification_stage = NotificationStage.warned
                if not self._notify(appt, NotificationKind.warning, minutes, now):
                    result.delivery_failures += 1
                result.warnings_sent += 1

        return result

    def _notify(self, appt: Any, kind: NotificationKind, minutes: int, now: datetime) -> bool:
        """Registra el aviso y lo intenta enviar. Un fallo de envío no revierte nada."""
        message = render_message(kind, minutes)
        self.log.append(ExpiryNotification(appointment_id=appt.id, stage=kind, message=message, sent_at=now))
        if self.transport is None:
            return True
        try:
            self.transport(self.recipient_of(appt), message, kind)
            return True
        except Exception as e:
            logger.warning("Envío de aviso %s falló para cita %s: %s", kind.value, appt.id, e)
            return False
