from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
import uuid

import pytz

from studio.utils.coerce import normalize_session_time, parse_clock_time, parse_iso_date

CREATED_FROM = ("enrollment", "dropin", "manual")


@dataclass(frozen=True)
class SessionOccurrence:
    """A projected (not necessarily persisted) class meeting."""

    date: date
    time: str  # HH:MM as configured on the class

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, parse_clock_time(self.time))

    @property
    def key_time(self) -> str:
        return normalize_session_time(self.time)


@dataclass
class ClassSession:
    id: str
    class_id: str
    session_date: date
    session_time: str          # HH:MM:SS
    created_from: str = "manual"
    created_at: str = ""

    @staticmethod
    def create(
        *,
        class_id: str,
        session_date: date,
        session_time: str,
        created_from: str = "manual",
        session_id: Optional[str] = None,
    ) -> "ClassSession":
        if created_from not in CREATED_FROM:
            raise ValueError(f"created_from must be one of {CREATED_FROM}, got {created_from!r}")
        return ClassSession(
            id=session_id or str(uuid.uuid4()),
            class_id=str(class_id),
            session_date=session_date,
            session_time=normalize_session_time(session_time),
            created_from=created_from,
            created_at=datetime.now(pytz.UTC).isoformat(),
        )

    @staticmethod
    def from_row(row: dict) -> "ClassSession":
        return ClassSession(
            id=str(row.get("id", "")),
            class_id=str(row.get("class_id", "")),
            session_date=parse_iso_date(row.get("session_date")),
            session_time=normalize_session_time(row.get("session_time")),
            created_from=str(row.get("created_from") or "manual"),
            created_at=str(row.get("created_at") or ""),
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "class_id": self.class_id,
            "session_date": self.session_date.isoformat(),
            "session_time": self.session_time,
            "created_from": self.created_from,
            "created_at": self.created_at,
        }

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.class_id, self.session_date.isoformat(), self.session_time)

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.session_date, parse_clock_time(self.session_time))
