import logging
from datetime import date, datetime

from conftest import make_class
from studio.models.classes import ClassSchedule
from studio.models.sessions import ClassSession
from studio.services import recurrence
from studio.services.recurrence import (
    can_reschedule_session,
    day_of_week_name,
    format_session_date,
    format_session_datetime,
    generate_occurrences,
    group_sessions_by_date,
    is_session_in_past,
    month_bounds,
    payment_week_boundaries,
    sessions_for_month,
    sessions_for_week,
    upcoming_sessions,
    week_boundaries,
)
from studio.utils.clock import FixedClock


def test_monday_wednesday_month_starting_on_monday():
    # February 2027 starts on a Monday and has 28 days
    cls = make_class()
    occurrences = sessions_for_month(cls, date(2027, 2, 1))
    assert [o.date.day for o in occurrences] == [1, 3, 8, 10, 15, 17, 22, 24]
    assert {o.time for o in occurrences} == {"18:00"}
    assert [day_of_week_name(o.date) for o in occurrences[:2]] == ["monday", "wednesday"]


def test_longer_month_gets_a_fifth_monday():
    occurrences = sessions_for_month(make_class(), date(2025, 9, 14))
    mondays = [o for o in occurrences if o.date.weekday() == 0]
    wednesdays = [o for o in occurrences if o.date.weekday() == 2]
    assert len(mondays) == 5
    assert len(wednesdays) == 4


def test_empty_schedule_yields_nothing():
    schedule = ClassSchedule.create([], "09:00")
    assert generate_occurrences(schedule, date(2025, 1, 1), date(2025, 12, 31)) == []


def test_range_end_before_start_yields_nothing():
    schedule = ClassSchedule.create(["monday"], "09:00")
    assert generate_occurrences(schedule, date(2025, 3, 31), date(2025, 3, 1)) == []


def test_bounds_are_inclusive():
    schedule = ClassSchedule.create(["monday"], "09:00")
    out = generate_occurrences(schedule, date(2025, 3, 3), date(2025, 3, 3))
    assert [o.date for o in out] == [date(2025, 3, 3)]


def test_unknown_weekday_is_skipped_with_warning(caplog):
    schedule = ClassSchedule.create(["Funday", "Friday"], "07:30")
    with caplog.at_level(logging.WARNING, logger=recurrence.__name__):
        out = generate_occurrences(schedule, date(2025, 3, 1), date(2025, 3, 31))
    assert [o.date.day for o in out] == [7, 14, 21, 28]
    assert "Funday" in caplog.text


def test_duplicate_and_mixed_case_days_do_not_double_up():
    schedule = ClassSchedule.create(["Tuesday", "tuesday", " TUESDAY "], "12:00")
    out = generate_occurrences(schedule, date(2025, 3, 1), date(2025, 3, 31))
    assert [o.date.day for o in out] == [4, 11, 18, 25]


def test_output_is_sorted_and_repeatable():
    schedule = ClassSchedule.create(["saturday", "monday", "thursday"], "08:00")
    first = generate_occurrences(schedule, date(2025, 3, 1), date(2025, 3, 31))
    second = generate_occurrences(schedule, date(2025, 3, 1), date(2025, 3, 31))
    assert first == second
    assert [o.date for o in first] == sorted(o.date for o in first)


def test_default_time_when_schedule_has_none():
    schedule = ClassSchedule.create(["monday"], None)
    out = generate_occurrences(schedule, date(2025, 3, 3), date(2025, 3, 3))
    assert out[0].time == "18:00"
    assert out[0].key_time == "18:00:00"


def test_week_view_covers_seven_days():
    out = sessions_for_week(make_class(), date(2025, 3, 3))
    assert [o.date for o in out] == [date(2025, 3, 3), date(2025, 3, 5)]


def test_month_bounds_december():
    assert month_bounds(date(2024, 12, 15)) == (date(2024, 12, 1), date(2024, 12, 31))
    assert month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))


def test_upcoming_skips_todays_session_once_started():
    cls = make_class()
    # Monday 3 Feb 2025 at 19:00: today's 18:00 session has already begun
    late = FixedClock(datetime(2025, 2, 3, 19, 0))
    out = upcoming_sessions(cls, late, limit=3)
    assert [o.date for o in out] == [date(2025, 2, 5), date(2025, 2, 10), date(2025, 2, 12)]

    early = FixedClock(datetime(2025, 2, 3, 9, 0))
    assert upcoming_sessions(cls, early, limit=1)[0].date == date(2025, 2, 3)


def test_upcoming_default_limit(clock):
    assert len(upcoming_sessions(make_class(), clock)) == 10


def test_session_in_past_and_reschedule_window(clock):
    # clock: Monday 3 Feb 2025 10:00
    assert is_session_in_past(date(2025, 2, 3), "09:00:00", clock)
    assert not is_session_in_past("2025-02-03", "18:00", clock)
    assert not can_reschedule_session(date(2025, 2, 3), "18:00", clock)
    assert can_reschedule_session(date(2025, 2, 4), "10:00", clock)
    assert not can_reschedule_session(date(2025, 2, 4), "09:59", clock)


def test_week_boundaries_start_on_sunday():
    start, end = week_boundaries(date(2025, 3, 5))  # Wednesday
    assert start == datetime(2025, 3, 2, 0, 0)
    assert end.date() == date(2025, 3, 8)
    assert end.hour == 23 and end.minute == 59


def test_payment_week_ends_on_next_payment_day(clock):
    # Monday 3 Feb 2025; Friday is day 5 counting from Sunday
    start, end = payment_week_boundaries(clock, 5)
    assert end == datetime(2025, 2, 7)
    assert start == datetime(2025, 2, 1)


def test_payment_week_on_the_payment_day_rolls_forward():
    friday = FixedClock(datetime(2025, 2, 7, 12, 0))
    start, end = payment_week_boundaries(friday, 5)
    assert end == datetime(2025, 2, 14)
    assert start == datetime(2025, 2, 8)


def test_payment_week_defaults_to_friday(clock):
    assert payment_week_boundaries(clock, None) == payment_week_boundaries(clock)


def test_formatting_and_grouping():
    assert format_session_date(datetime(2025, 3, 3, 18, 0)) == "2025-03-03"
    assert format_session_datetime(date(2025, 3, 3), "18:00:00") == "2025-03-03 18:00:00"

    sessions = [
        ClassSession.create(class_id=c, session_date=d, session_time="18:00")
        for c, d in [("yoga", date(2025, 3, 3)), ("spin", date(2025, 3, 3)), ("yoga", date(2025, 3, 5))]
    ]
    grouped = group_sessions_by_date(sessions)
    assert [s.class_id for s in grouped[date(2025, 3, 3)]] == ["yoga", "spin"]
    assert len(grouped[date(2025, 3, 5)]) == 1
