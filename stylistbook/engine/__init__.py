# stylistbook/engine/__init__.py
from .working_hours import DayPolicy, WeeklySchedule, parse_weekly_schedule, is_open, day_of_week
from .slots import SlotDescriptor, generate, format_hour_label
from .lifecycle import (
    Appointment,
    AppointmentStatus,
    NotificationStage,
    ExpiryConfig,
    InvalidTransition,
    STANDARD,
    MOBILE,
    PRESETS,
    is_expired,
    confirm,
    cancel,
    expire,
    system_clock,
)
from .sweep import ExpirySweep, ExpiryNotification, NotificationKind, SweepResult
from .pending import PendingView, project
