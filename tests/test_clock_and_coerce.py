from datetime import date, datetime, time

import pytest
import pytz

from studio.utils.clock import Clock, FixedClock
from studio.utils.coerce import (
    normalize_session_time,
    parse_bool,
    parse_clock_time,
    parse_int,
    parse_iso_date,
    parse_json_list,
)


def test_fixed_clock_in_studio_timezone():
    clock = FixedClock(datetime(2025, 7, 1, 18, 30), tz="America/New_York")
    assert clock.now() == datetime(2025, 7, 1, 18, 30)
    assert clock.today() == date(2025, 7, 1)
    assert clock.now_utc() == datetime(2025, 7, 1, 22, 30, tzinfo=pytz.UTC)
    assert clock.stamp().startswith("2025-07-01T22:30:00")


def test_fixed_clock_accepts_aware_moment():
    aware = datetime(2025, 1, 10, 23, 30, tzinfo=pytz.UTC)
    clock = FixedClock(aware, tz="Asia/Tokyo")
    assert clock.now() == datetime(2025, 1, 11, 8, 30)
    assert clock.today() == date(2025, 1, 11)


def test_clock_now_is_naive_local():
    clock = Clock("Europe/London")
    assert clock.now().tzinfo is None
    assert clock.now_utc().tzinfo is not None


def test_session_time_normalization():
    assert normalize_session_time("18:00") == "18:00:00"
    assert normalize_session_time("07:05:30") == "07:05:30"
    assert normalize_session_time(time(9, 15)) == "09:15:00"
    with pytest.raises(ValueError):
        parse_clock_time("6pm")


def test_parse_helpers():
    assert parse_iso_date("2025-02-03T18:00:00+00:00") == date(2025, 2, 3)
    assert parse_iso_date("") is None
    assert parse_iso_date("garbage") is None
    assert parse_bool("TRUE") and parse_bool(1) and not parse_bool("") and not parse_bool(None)
    assert parse_int("4.0") == 4
    assert parse_int("x", default=0) == 0
    assert parse_json_list('["monday", "friday"]') == ["monday", "friday"]
    assert parse_json_list("monday, friday") == ["monday", "friday"]
    assert parse_json_list(None) == []
