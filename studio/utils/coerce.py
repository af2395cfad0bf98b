# studio/utils/coerce.py
# Store rows come back as strings (Sheets) or native types (Postgres, memory);
# these helpers turn either into the types the models hold.
import json
from datetime import date, datetime, time
from typing import Optional


def parse_iso_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def parse_iso_datetime(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    s = str(value).strip()
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_clock_time(value) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` (or a ``time``)."""
    if isinstance(value, time):
        return value
    s = str(value).strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(s, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time of day: {value!r}")


def normalize_session_time(value) -> str:
    """Sessions are keyed on ``HH:MM:SS``; ``"18:00"`` becomes ``"18:00:00"``."""
    return parse_clock_time(value).strftime("%H:%M:%S")


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in {"true", "1", "yes", "y", "t"}


def parse_int(value, default: Optional[int] = None) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def parse_json_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    s = str(value).strip()
    if not s:
        return []
    try:
        parsed = json.loads(s)
    except json.JSONDecodeError:
        # Hand-typed cells: "monday, wednesday"
        return [p.strip() for p in s.split(",") if p.strip()]
    return list(parsed) if isinstance(parsed, list) else [parsed]


def iso_or_empty(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)
