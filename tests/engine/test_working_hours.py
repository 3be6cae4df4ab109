from datetime import date

import pytest

from stylistbook.engine.working_hours import DayPolicy, day_of_week, is_open, parse_weekly_schedule

SUNDAY = date(2025, 7, 6)
MONDAY = date(2025, 7, 7)
SATURDAY = date(2025, 7, 12)


def test_day_of_week_starts_on_sunday() -> None:
    assert day_of_week(SUNDAY) == 0
    assert day_of_week(MONDAY) == 1
    assert day_of_week(SATURDAY) == 6


def test_parse_profile_json() -> None:
    schedule = parse_weekly_schedule({
        "Sunday": {"enabled": False, "start": "09:00", "end": "17:00"},
        "monday": {"enabled": True, "start": "09:30", "end": "17:00"},
        "2": {"enabled": True, "start_hour": 10, "end_hour": "18"},
    })

    assert schedule[0] == DayPolicy(enabled=False, start_hour=9, end_hour=17)
    assert schedule[1] == DayPolicy(enabled=True, start_hour=9, end_hour=17)
    assert schedule[2] == DayPolicy(enabled=True, start_hour=10, end_hour=18)


def test_parse_ignores_unknown_days_and_bad_entries() -> None:
    schedule = parse_weekly_schedule({"funday": {"enabled": True}, "monday": "9-5", 9: {"enabled": True}})

    assert schedule == {}
    assert parse_weekly_schedule(None) == {}


@pytest.mark.parametrize(
    ("hour", "expected"),
    [(8, False), (9, True), (12, True), (17, True), (18, False)],
)
def test_open_hours_include_closing_hour(hour: int, expected: bool) -> None:
    schedule = {1: DayPolicy(enabled=True, start_hour=9, end_hour=17)}

    assert is_open(hour, schedule, MONDAY) is expected


def test_disabled_day_is_closed_all_day() -> None:
    schedule = {0: DayPolicy(enabled=False, start_hour=9, end_hour=17)}

    assert not any(is_open(h, schedule, SUNDAY) for h in range(24))


def test_missing_day_or_schedule_is_closed() -> None:
    schedule = {1: DayPolicy(enabled=True, start_hour=9, end_hour=17)}

    assert not is_open(12, schedule, SATURDAY)
    assert not is_open(12, None, MONDAY)
    assert not is_open(12, {}, MONDAY)


def test_unreadable_hours_close_the_day() -> None:
    schedule = parse_weekly_schedule({"monday": {"enabled": True, "start": "nine", "end": None}})

    assert not any(is_open(h, schedule, MONDAY) for h in range(24))


def test_inverted_range_is_closed() -> None:
    schedule = {1: DayPolicy(enabled=True, start_hour=17, end_hour=9)}

    assert not any(is_open(h, schedule, MONDAY) for h in range(24))


@pytest.mark.parametrize(("start", "end"), [("08:00", "30:00"), ("-2:00", "17:00"), (-1, 12), (9, 24)])
def test_hours_outside_the_day_close_it(start, end) -> None:
    schedule = parse_weekly_schedule({"monday": {"enabled": True, "start": start, "end": end}})

    assert not any(is_open(h, schedule, MONDAY) for h in range(-3, 31))


@pytest.mark.parametrize("policy", [
    DayPolicy(enabled=True, start_hour=8, end_hour=30),
    DayPolicy(enabled=True, start_hour=-2, end_hour=17),
])
def test_out_of_range_policy_is_closed(policy: DayPolicy) -> None:
    assert not any(is_open(h, {1: policy}, MONDAY) for h in range(-3, 31))
