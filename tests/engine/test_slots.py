from datetime import date, datetime, timedelta, timezone

import pytest
import pytz

from stylistbook.engine.lifecycle import Appointment
from stylistbook.engine.slots import format_hour_label, generate
from stylistbook.engine.working_hours import DayPolicy

SUNDAY = date(2025, 7, 6)
MONDAY = date(2025, 7, 7)
SCHEDULE = {
    0: DayPolicy(enabled=False, start_hour=9, end_hour=17),
    1: DayPolicy(enabled=True, start_hour=9, end_hour=17),
}


def make_appointment(appointment_id: int, scheduled_at: datetime) -> Appointment:
    created = scheduled_at - timedelta(days=1)
    return Appointment.request(
        id=appointment_id,
        provider_id=1,
        client_id=10 + appointment_id,
        scheduled_at=scheduled_at,
        duration_minutes=30,
        created_at=created,
    )


@pytest.mark.parametrize(
    ("hour", "label"),
    [(0, "12 AM"), (7, "7 AM"), (11, "11 AM"), (12, "12 PM"), (13, "1 PM"), (20, "8 PM"), (23, "11 PM")],
)
def test_format_hour_label(hour: int, label: str) -> None:
    assert format_hour_label(hour) == label


def test_enabled_day_uses_working_hours_as_window() -> None:
    slots = list(generate([], SCHEDULE, MONDAY))

    assert [s.hour for s in slots] == list(range(9, 18))
    assert all(s.is_within_working_hours and not s.is_blocked for s in slots)
    assert slots[0].display_label == "9 AM"
    assert slots[-1].display_label == "5 PM"


def test_disabled_day_falls_back_to_default_window_all_blocked() -> None:
    appt = make_appointment(1, datetime(2025, 7, 6, 12, 0))
    slots = list(generate([appt], SCHEDULE, SUNDAY))

    assert [s.hour for s in slots] == list(range(9, 21))
    assert all(s.is_blocked for s in slots)
    noon = next(s for s in slots if s.hour == 12)
    assert noon.appointment is appt
    assert noon.is_blocked is True


def test_day_missing_from_schedule_behaves_like_disabled_day() -> None:
    tuesday = date(2025, 7, 8)
    appt = make_appointment(1, datetime(2025, 7, 8, 10, 0))
    slots = list(generate([appt], SCHEDULE, tuesday))

    assert all(s.is_blocked and not s.is_within_working_hours for s in slots)


def test_sunday_disabled_monday_open_scenario() -> None:
    sunday_slot = next(
        s for s in generate([make_appointment(1, datetime(2025, 7, 6, 12, 0))], SCHEDULE, SUNDAY) if s.hour == 12
    )
    monday_slot = next(
        s for s in generate([make_appointment(1, datetime(2025, 7, 7, 12, 0))], SCHEDULE, MONDAY) if s.hour == 12
    )

    assert sunday_slot.is_blocked is True
    assert monday_slot.is_blocked is False


def test_window_expands_to_early_and_late_appointments() -> None:
    wednesday = date(2025, 7, 9)
    early = make_appointment(1, datetime(2025, 7, 9, 7, 0))
    late = make_appointment(2, datetime(2025, 7, 9, 22, 0))
    slots = list(generate([late, early], {}, wednesday))
    hours = [s.hour for s in slots]

    assert hours[0] == 7
    assert hours[-1] >= 22
    assert hours == list(range(hours[0], hours[-1] + 1))
    assert next(s for s in slots if s.hour == 7).appointment is early
    assert next(s for s in slots if s.hour == 22).appointment is late


def test_booked_hour_outside_working_hours_is_still_blocked() -> None:
    early = make_appointment(1, datetime(2025, 7, 7, 7, 0))
    slots = list(generate([early], SCHEDULE, MONDAY))

    seven = slots[0]
    assert seven.hour == 7
    assert seven.appointment is early
    assert seven.is_blocked is True
    assert next(s for s in slots if s.hour == 9).is_blocked is False


def test_appointment_at_closing_hour_extends_window_by_one() -> None:
    closing = make_appointment(1, datetime(2025, 7, 7, 17, 0))
    slots = list(generate([closing], SCHEDULE, MONDAY))

    assert slots[-1].hour == 18
    assert slots[-1].is_blocked is True


def test_late_night_appointment_never_produces_hour_24() -> None:
    last = make_appointment(1, datetime(2025, 7, 7, 23, 30))
    slots = list(generate([last], SCHEDULE, MONDAY))

    assert slots[-1].hour == 23
    assert slots[-1].appointment is last


def test_earliest_appointment_wins_within_same_hour() -> None:
    later = make_appointment(1, datetime(2025, 7, 7, 10, 40))
    earlier = make_appointment(2, datetime(2025, 7, 7, 10, 5))
    ten = next(s for s in generate([later, earlier], SCHEDULE, MONDAY) if s.hour == 10)

    assert ten.appointment is earlier


def test_appointments_on_other_days_are_ignored() -> None:
    other_day = make_appointment(1, datetime(2025, 7, 8, 6, 0))
    slots = list(generate([other_day], SCHEDULE, MONDAY))

    assert [s.hour for s in slots] == list(range(9, 18))
    assert all(s.appointment is None for s in slots)


def test_generate_is_repeatable_and_single_use() -> None:
    appts = [make_appointment(1, datetime(2025, 7, 7, 11, 0)), make_appointment(2, datetime(2025, 7, 7, 19, 0))]

    first = generate(appts, SCHEDULE, MONDAY)
    assert list(first) == list(generate(appts, SCHEDULE, MONDAY))
    assert list(first) == []


def test_inverted_enabled_range_keeps_default_window_all_blocked() -> None:
    slots = list(generate([], {1: DayPolicy(enabled=True, start_hour=17, end_hour=9)}, MONDAY))

    assert [s.hour for s in slots] == list(range(9, 21))
    assert all(s.is_blocked for s in slots)


def test_timezone_converts_utc_appointments_to_local_hours() -> None:
    tz = pytz.timezone("America/New_York")
    # 14:00 UTC = 10:00 EDT
    appt = make_appointment(1, datetime(2025, 7, 7, 14, 0, tzinfo=timezone.utc))
    slots = list(generate([appt], SCHEDULE, MONDAY, tz=tz))

    assert next(s for s in slots if s.hour == 10).appointment is appt
    assert next(s for s in slots if s.hour == 14).appointment is None


@pytest.mark.parametrize("policy", [
    DayPolicy(enabled=True, start_hour=8, end_hour=30),
    DayPolicy(enabled=True, start_hour=-2, end_hour=17),
])
def test_out_of_range_hours_never_show_as_available(policy: DayPolicy) -> None:
    slots = list(generate([], {1: policy}, MONDAY))

    assert [s.hour for s in slots] == list(range(9, 21))
    assert all(s.is_blocked and not s.is_within_working_hours for s in slots)
