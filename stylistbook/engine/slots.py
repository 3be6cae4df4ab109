# stylistbook/engine/slots.py
"""
Generación de slots por hora para la vista de calendario.

Cada slot lleva la cita (si hay) y si la hora cae dentro del horario del
proveedor. Es una vista: se recalcula en cada llamada y nunca se guarda.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Dict, Iterable, Iterator, Optional

from .working_hours import LAST_HOUR, WeeklySchedule, day_policy, is_open, is_usable

DEFAULT_DISPLAY_START = 9   # 9 AM
DEFAULT_DISPLAY_END = 20    # 8 PM


@dataclass(frozen=True)
class SlotDescriptor:
    hour: int
    display_label: str
    appointment: Optional[Any]
    is_blocked: bool
    is_within_working_hours: bool


def format_hour_label(hour: int) -> str:
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour < 12:
        return f"{hour} AM"
    return f"{hour - 12} PM"


def _local(dt: datetime, tz: Optional[tzinfo]) -> datetime:
    """Pasa a la TZ del proveedor; un datetime naive se toma como UTC."""
    if tz is None:
        return dt
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz)


def generate(
    appointments: Iterable[Any],
    schedule: Optional[WeeklySchedule],
    day: date,
    tz: Optional[tzinfo] = None,
) -> Iterator[SlotDescriptor]:
    """
    Genera los slots de `day`. `appointments` puede traer citas de otros días;
    solo se consideran las que caen en `day` (en la TZ `tz` si se indica).

    La ventana arranca en [9, 20] o en el horario del día si está habilitado,
    y se amplía para que ninguna cita quede fuera. `is_blocked` depende solo
    del horario, no de si la hora está ocupada.
    """
    if isinstance(day, datetime):
        day = _local(day, tz).date()

    same_day = sorted(
        (a for a in appointments if _local(a.scheduled_at, tz).date() == day),
        key=lambda a: _local(a.scheduled_at, tz),
    )

    lower, upper = DEFAULT_DISPLAY_START, DEFAULT_DISPLAY_END
    policy = day_policy(schedule, day)
    # Rango invertido o fuera de 0..23: ventana por defecto, todo bloqueado
    if is_usable(policy):
        lower, upper = policy.start_hour, policy.end_hour

    by_hour: Dict[int, Any] = {}
    for appt in same_day:
        hour = _local(appt.scheduled_at, tz).hour
        if hour < lower:
            lower = hour
        if hour >= upper:
            upper = min(hour + 1, LAST_HOUR)
        # ordenadas por scheduled_at: la primera de cada hora gana
        by_hour.setdefault(hour, appt)

    for hour in range(lower, upper + 1):
        within = is_open(hour, schedule, day)
        yield SlotDescriptor(
            hour=hour,
            display_label=format_hour_label(hour),
            appointment=by_hour.get(hour),
            is_blocked=not within,
            is_within_working_hours=within,
        )
