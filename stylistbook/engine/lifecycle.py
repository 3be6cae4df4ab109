# stylistbook/engine/lifecycle.py
from __future__ import annotations
import enum
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional


class AppointmentStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    expired = "expired"


TERMINAL_STATUSES = frozenset({
    AppointmentStatus.confirmed,
    AppointmentStatus.cancelled,
    AppointmentStatus.expired,
})


class NotificationStage(str, enum.Enum):
    none = "none"
    warned = "warned"
    final_warned = "final_warned"


# ====== Configuración de expiración ======
@dataclass(frozen=True)
class ExpiryConfig:
    """Ventana de expiración y avisos. Fija por despliegue, no por cita."""
    window: timedelta = timedelta(minutes=30)
    warning_threshold: timedelta = timedelta(minutes=10)
    final_warning_threshold: timedelta = timedelta(minutes=5)

    @classmethod
    def from_minutes(cls, window: int, warning: int, final_warning: int) -> "ExpiryConfig":
        return cls(
            window=timedelta(minutes=window),
            warning_threshold=timedelta(minutes=warning),
            final_warning_threshold=timedelta(minutes=final_warning),
        )

    @property
    def warning_minutes(self) -> float:
        return self.warning_threshold.total_seconds() / 60

    @property
    def final_warning_minutes(self) -> float:
        return self.final_warning_threshold.total_seconds() / 60


STANDARD = ExpiryConfig()
# Reservas desde el móvil: primer aviso a los 10 min de creada (20 restantes)
MOBILE = ExpiryConfig(warning_threshold=timedelta(minutes=20))

PRESETS = {
    "standard": STANDARD,
    "mobile": MOBILE,
}


# ====== Reloj ======
Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


def fixed_clock(at: datetime) -> Clock:
    """Reloj congelado (tests, barridos manuales)."""
    return lambda: at


def as_utc(dt: datetime) -> datetime:
    """Normaliza a UTC aware. Un datetime naive se toma como UTC (así lo guarda SQLite)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# ====== Errores ======
class InvalidTransition(ValueError):
    """La cita ya no está pendiente (o aún no vence) y el cambio pedido no aplica."""

    def __init__(self, appointment_id: Any, current: AppointmentStatus, target: AppointmentStatus, reason: str = ""):
        self.appointment_id = appointment_id
        self.current = AppointmentStatus(current)
        self.target = AppointmentStatus(target)
        self.reason = reason or f"appointment is already {self.current.value}"
        super().__init__(
            f"Cannot move appointment {appointment_id} from {self.current.value} "
            f"to {self.target.value}: {self.reason}"
        )


# ====== Registro en memoria ======
@dataclass
class Appointment:
    """
    Cita materializada en memoria. El modelo ORM expone los mismos atributos,
    así que el motor trabaja igual con cualquiera de los dos.
    """
    id: Any
    provider_id: Any
    client_id: Any
    scheduled_at: datetime
    duration_minutes: int
    created_at: datetime
    expires_at: Optional[datetime]
    status: AppointmentStatus = AppointmentStatus.pending
    notification_stage: NotificationStage = NotificationStage.none

    def __post_init__(self) -> None:
        if self.duration_minutes <= 0:
            raise ValueError("duration_minutes must be positive")

    @classmethod
    def request(cls, id: Any, provider_id: Any, client_id: Any, scheduled_at: datetime,
                duration_minutes: int, created_at: datetime, config: ExpiryConfig = STANDARD) -> "Appointment":
        """Nueva solicitud de reserva: entra en pending con su fecha límite."""
        return cls(
            id=id,
            provider_id=provider_id,
            client_id=client_id,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            created_at=created_at,
            expires_at=compute_expires_at(created_at, config),
        )


# ====== Reglas ======
def compute_expires_at(created_at: datetime, config: ExpiryConfig = STANDARD) -> datetime:
    return created_at + config.window


def is_expired(appointment: Any, now: datetime) -> bool:
    if appointment.status != AppointmentStatus.pending or appointment.expires_at is None:
        return False
    return as_utc(now) > as_utc(appointment.expires_at)


def minutes_until_expiry(appointment: Any, now: datetime) -> int:
    """Minutos restantes redondeados hacia arriba, nunca negativos."""
    if appointment.expires_at is None:
        return 0
    remaining = (as_utc(appointment.expires_at) - as_utc(now)).total_seconds()
    return max(0, math.ceil(remaining / 60))


def _leave_pending(appointment: Any, target: AppointmentStatus) -> None:
    if appointment.status in TERMINAL_STATUSES:
        raise InvalidTransition(appointment.id, appointment.status, target)
    appointment.status = target


def confirm(appointment: Any) -> None:
    _leave_pending(appointment, AppointmentStatus.confirmed)


def cancel(appointment: Any) -> None:
    _leave_pending(appointment, AppointmentStatus.cancelled)


def expire(appointment: Any, now: datetime) -> None:
    if appointment.status == AppointmentStatus.pending and not is_expired(appointment, now):
        raise InvalidTransition(
            appointment.id, appointment.status, AppointmentStatus.expired,
            reason="expiry deadline has not passed",
        )
    _leave_pending(appointment, AppointmentStatus.expired)
