"""Weekly recurrence: project a class schedule onto calendar dates.

Everything here is pure. "Now" always comes from an injected
:class:`studio.utils.clock.Clock`.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Tuple

from studio.config import (
    DEFAULT_PAYMENT_DAY_OF_WEEK,
    DEFAULT_SESSION_TIME,
    RESCHEDULE_NOTICE_HOURS,
    UPCOMING_SESSIONS_LIMIT,
    WEEKDAYS,
)
from studio.models.classes import ClassSchedule, StudioClass
from studio.models.sessions import ClassSession, SessionOccurrence
from studio.utils.clock import Clock
from studio.utils.coerce import parse_clock_time

logger = logging.getLogger(__name__)

# date.weekday() numbering: Monday = 0
DAY_NAME_TO_WEEKDAY = {name: i for i, name in enumerate(WEEKDAYS)}


def _as_date(d) -> date:
    return d.date() if isinstance(d, datetime) else d


def generate_occurrences(
    schedule: ClassSchedule,
    range_start: date,
    range_end: date,
) -> List[SessionOccurrence]:
    """Every occurrence of ``schedule`` between the two dates, both inclusive, by date."""
    start = _as_date(range_start)
    end = _as_date(range_end)

    if not schedule.days:
        logger.debug("Schedule has no weekdays; nothing to project")
        return []

    session_time = schedule.time or DEFAULT_SESSION_TIME
    seen: set[int] = set()
    out: List[SessionOccurrence] = []

    for name in schedule.days:
        target = DAY_NAME_TO_WEEKDAY.get(str(name).strip().lower())
        if target is None:
            logger.warning("Skipping unrecognised weekday %r", name)
            continue
        if target in seen:
            continue
        seen.add(target)

        cur = start + timedelta(days=(target - start.weekday()) % 7)
        while cur <= end:
            out.append(SessionOccurrence(date=cur, time=session_time))
            cur += timedelta(days=7)

    out.sort(key=lambda o: o.date)
    return out


def month_bounds(d: date) -> tuple[date, date]:
    first = d.replace(day=1)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1, day=1)
    else:
        next_month = first.replace(month=first.month + 1, day=1)
    last = next_month - timedelta(days=1)
    return first, last


def sessions_for_range(cls: StudioClass, start: date, end: date) -> List[SessionOccurrence]:
    return generate_occurrences(cls.schedule, start, end)


def sessions_for_week(cls: StudioClass, week_start: date) -> List[SessionOccurrence]:
    week_start = _as_date(week_start)
    return sessions_for_range(cls, week_start, week_start + timedelta(days=6))


def sessions_for_month(cls: StudioClass, month: date) -> List[SessionOccurrence]:
    first, last = month_bounds(_as_date(month))
    return sessions_for_range(cls, first, last)


def _one_year_later(d: date) -> date:
    try:
        return d.replace(year=d.year + 1)
    except ValueError:  # Feb 29
        return d.replace(year=d.year + 1, day=28)


def upcoming_sessions(
    cls: StudioClass,
    clock: Clock,
    limit: int = UPCOMING_SESSIONS_LIMIT,
) -> List[SessionOccurrence]:
    """The next ``limit`` occurrences that start strictly after now, within a year."""
    today = clock.today()
    now = clock.now()
    projected = sessions_for_range(cls, today, _one_year_later(today))
    return [o for o in projected if o.starts_at > now][:limit]


def format_session_date(d: date) -> str:
    return _as_date(d).isoformat()


def format_session_datetime(d: date, session_time: str) -> str:
    return f"{format_session_date(d)} {session_time}"


def _starts_at(session_date, session_time) -> datetime:
    if isinstance(session_date, str):
        session_date = date.fromisoformat(session_date)
    return datetime.combine(_as_date(session_date), parse_clock_time(session_time))


def is_session_in_past(session_date, session_time, clock: Clock) -> bool:
    return _starts_at(session_date, session_time) < clock.now()


def can_reschedule_session(session_date, session_time, clock: Clock) -> bool:
    hours_until = (_starts_at(session_date, session_time) - clock.now()).total_seconds() / 3600
    return hours_until >= RESCHEDULE_NOTICE_HOURS


def group_sessions_by_date(sessions: Iterable[ClassSession]) -> dict[date, list[ClassSession]]:
    grouped: dict[date, list[ClassSession]] = {}
    for s in sessions:
        grouped.setdefault(s.session_date, []).append(s)
    return grouped


def day_of_week_name(d: date) -> str:
    return WEEKDAYS[_as_date(d).weekday()]


def _sunday_index(d: date) -> int:
    # 0 = Sunday ... 6 = Saturday, the numbering payment days are stored in
    return (d.weekday() + 1) % 7


def week_boundaries(d: date) -> Tuple[datetime, datetime]:
    """Sunday 00:00 through Saturday 23:59:59.999999 of the week holding ``d``."""
    d = _as_date(d)
    start = d - timedelta(days=_sunday_index(d))
    end = start + timedelta(days=6)
    return datetime.combine(start, time.min), datetime.combine(end, time.max)


def current_week_boundaries(clock: Clock) -> Tuple[datetime, datetime]:
    return week_boundaries(clock.today())


def payment_week_boundaries(
    clock: Clock,
    payment_day_of_week: Optional[int] = DEFAULT_PAYMENT_DAY_OF_WEEK,
) -> Tuple[datetime, datetime]:
    """The seven-day window ending on the next payment day.

    ``payment_day_of_week`` counts from Sunday = 0. The next payment day is
    strictly after today: on the payment day itself the window ends a
    week later.
    """
    if payment_day_of_week is None:
        payment_day_of_week = DEFAULT_PAYMENT_DAY_OF_WEEK
    today = clock.today()
    days_until = payment_day_of_week - _sunday_index(today)
    if days_until <= 0:
        days_until += 7
    next_payment_day = today + timedelta(days=days_until)
    week_start = next_payment_day - timedelta(days=6)
    return datetime.combine(week_start, time.min), datetime.combine(next_payment_day, time.min)
