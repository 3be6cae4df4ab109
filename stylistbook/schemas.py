from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional

from .engine.working_hours import DAY_NAMES


class ClientIn(BaseModel):
    name: str
    phone: str | None = None


class BookRequest(BaseModel):
    provider_id: int
    client: ClientIn
    # naive = hora local del proveedor
    scheduled_at: datetime
    duration_minutes: int = Field(gt=0, default=30)
    notes: str | None = None
    address: str | None = None


class AppointmentOut(BaseModel):
    id: int
    provider_id: int
    client_id: int
    scheduled_at: datetime
    duration_minutes: int
    status: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    notification_stage: str

    @field_validator("status", "notification_stage", mode="before")
    @classmethod
    def _enum_value(cls, value):
        return getattr(value, "value", value)

    class Config:
        from_attributes = True


class SlotOut(BaseModel):
    hour: int
    display_label: str
    appointment: Optional[AppointmentOut] = None
    is_blocked: bool
    is_within_working_hours: bool

    class Config:
        from_attributes = True


class CalendarResponse(BaseModel):
    provider_id: int
    date: str
    slots: list[SlotOut]


class DayHours(BaseModel):
    enabled: bool = False
    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end")
    @classmethod
    def _hh_mm(cls, value: str) -> str:
        hour, sep, minute = value.strip().partition(":")
        if (not sep or not hour.isdigit() or not minute.isdigit() or len(minute) != 2
                or not 0 <= int(hour) <= 23 or not 0 <= int(minute) <= 59):
            raise ValueError(f"Invalid time {value!r}; use HH:MM between 00:00 and 23:59")
        return f"{int(hour):02d}:{minute}"


class WorkingHoursIn(BaseModel):
    working_hours: dict[str, DayHours]

    @field_validator("working_hours")
    @classmethod
    def _known_days(cls, value: dict[str, DayHours]) -> dict[str, DayHours]:
        normalized = {}
        for day, hours in value.items():
            key = day.strip().lower()
            if key not in DAY_NAMES:
                raise ValueError(f"Unknown day {day!r}; use one of {', '.join(DAY_NAMES)}")
            normalized[key] = hours
        return normalized


class WorkingHoursOut(BaseModel):
    provider_id: int
    working_hours: dict


class PendingViewResponse(BaseModel):
    visible: list[AppointmentOut]
    should_show: bool
    expired_count: int
    warning_count: int


class SweepResponse(BaseModel):
    expired_count: int
    warnings_sent: int
    final_warnings_sent: int
    delivery_failures: int = 0
