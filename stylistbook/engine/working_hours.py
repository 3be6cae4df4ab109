# stylistbook/engine/working_hours.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Mapping, Optional

# Domingo = 0 ... Sábado = 6 (igual que el perfil del proveedor)
DAY_NAMES = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]

# Horas ilegibles o fuera de 0..23: ningún entero h cumple 24 <= h <= -1
FIRST_HOUR = 0
LAST_HOUR = 23
_UNREADABLE_START = 24
_UNREADABLE_END = -1


@dataclass(frozen=True)
class DayPolicy:
    enabled: bool
    start_hour: int
    end_hour: int


WeeklySchedule = Dict[int, DayPolicy]


# ====== Lectura del horario guardado ======
def _day_index(key: Any) -> Optional[int]:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key if 0 <= key <= 6 else None
    if isinstance(key, str):
        k = key.strip().lower()
        if k in DAY_NAMES:
            return DAY_NAMES.index(k)
        if k.isdigit() and 0 <= int(k) <= 6:
            return int(k)
    return None


def _parse_hour(value: Any, unreadable: int) -> int:
    """Acepta 9, "9", "09:00" o "09:30" (solo cuenta la hora)."""
    if isinstance(value, bool):
        return unreadable
    if isinstance(value, str):
        head = value.strip().split(":")[0]
        try:
            value = int(head)
        except ValueError:
            return unreadable
    if isinstance(value, int) and FIRST_HOUR <= value <= LAST_HOUR:
        return value
    return unreadable


def parse_weekly_schedule(raw: Optional[Mapping[Any, Any]]) -> WeeklySchedule:
    """
    Convierte el JSON del perfil ({"monday": {"enabled": true, "start": "09:00", "end": "17:00"}, ...})
    a WeeklySchedule. Días desconocidos o entradas que no son objeto se ignoran
    (y por lo tanto quedan cerrados).
    """
    schedule: WeeklySchedule = {}
    if not raw:
        return schedule
    for key, entry in raw.items():
        idx = _day_index(key)
        if idx is None or not isinstance(entry, Mapping):
            continue
        start = entry.get("start", entry.get("start_hour"))
        end = entry.get("end", entry.get("end_hour"))
        schedule[idx] = DayPolicy(
            enabled=bool(entry.get("enabled", False)),
            start_hour=_parse_hour(start, _UNREADABLE_START),
            end_hour=_parse_hour(end, _UNREADABLE_END),
        )
    return schedule


# ====== Política ======
def day_of_week(day: date) -> int:
    # date.weekday(): lunes = 0
    return (day.weekday() + 1) % 7


def day_policy(schedule: Optional[WeeklySchedule], day: date) -> Optional[DayPolicy]:
    if not schedule:
        return None
    return schedule.get(day_of_week(day))


def is_usable(policy: Optional[DayPolicy]) -> bool:
    """Día habilitado con un rango legible dentro de 0..23."""
    if policy is None or not policy.enabled:
        return False
    return FIRST_HOUR <= policy.start_hour <= policy.end_hour <= LAST_HOUR


def is_open(hour: int, schedule: Optional[WeeklySchedule], day: date) -> bool:
    policy = day_policy(schedule, day)
    if not is_usable(policy):
        return False
    # Límite superior inclusivo: la hora de cierre todavía cuenta como abierta
    return policy.start_hour <= hour <= policy.end_hour
