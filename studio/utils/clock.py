"""Injectable wall clock in the studio's timezone."""

from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Union

import pytz


class Clock:
    """Reads the current time in the studio's timezone.

    ``now()`` returns naive local wall-clock time, which is how session
    dates and times are stored. Audit stamps use ``now_utc()``.
    """

    def __init__(self, tz: Union[str, tzinfo] = "UTC") -> None:
        self.tz = pytz.timezone(tz) if isinstance(tz, str) else tz

    def now_utc(self) -> datetime:
        return datetime.now(pytz.UTC)

    def now(self) -> datetime:
        return self.now_utc().astimezone(self.tz).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()

    def stamp(self) -> str:
        return self.now_utc().isoformat()


class FixedClock(Clock):
    """A clock stopped at ``moment`` (naive local time)."""

    def __init__(self, moment: datetime, tz: Union[str, tzinfo] = "UTC") -> None:
        super().__init__(tz)
        if moment.tzinfo is not None:
            moment = moment.astimezone(self.tz).replace(tzinfo=None)
        self.moment = moment

    def now_utc(self) -> datetime:
        if hasattr(self.tz, "localize"):
            local = self.tz.localize(self.moment)
        else:
            local = self.moment.replace(tzinfo=self.tz)
        return local.astimezone(pytz.UTC)

    def now(self) -> datetime:
        return self.moment
