from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import pytz

from studio.config import DEFAULT_INSTRUCTOR_PERCENTAGE, DEFAULT_SESSION_TIME
from studio.utils.coerce import parse_int, parse_json_list
from studio.utils.money import parse_amount_or

FLAT = "flat"
PERCENTAGE = "percentage"


# -----------------------------
# Data model
# -----------------------------
@dataclass(frozen=True)
class ClassSchedule:
    days: tuple[str, ...] = ()       # weekday names, any case
    time: str = DEFAULT_SESSION_TIME  # HH:MM
    duration_minutes: Optional[int] = None

    @staticmethod
    def create(days=None, time: Optional[str] = None, duration_minutes=None) -> "ClassSchedule":
        return ClassSchedule(
            days=tuple(str(d).strip() for d in (days or []) if str(d).strip()),
            time=(str(time).strip() if time else "") or DEFAULT_SESSION_TIME,
            duration_minutes=parse_int(duration_minutes),
        )


@dataclass(frozen=True)
class PaymentPolicy:
    """How an instructor is paid for one session: a flat fee or a share of revenue."""

    mode: str = PERCENTAGE
    value: Optional[float] = None

    @staticmethod
    def from_fields(payment_type, payment_value) -> "PaymentPolicy":
        mode = FLAT if str(payment_type or "").strip().lower() == FLAT else PERCENTAGE
        return PaymentPolicy(mode=mode, value=parse_amount_or(payment_value, default=None))

    @staticmethod
    def flat(amount: float) -> "PaymentPolicy":
        return PaymentPolicy(mode=FLAT, value=amount)

    @staticmethod
    def percentage(share: float) -> "PaymentPolicy":
        return PaymentPolicy(mode=PERCENTAGE, value=share)

    @property
    def is_flat(self) -> bool:
        return self.mode == FLAT

    @property
    def flat_amount(self) -> float:
        return float(self.value) if self.value is not None else 0.0

    @property
    def share(self) -> float:
        # Not clamped: values outside 0-100 are the caller's business
        return float(self.value) if self.value is not None else float(DEFAULT_INSTRUCTOR_PERCENTAGE)


@dataclass
class StudioClass:
    id: str
    name: str
    instructor_id: Optional[str] = None
    schedule: ClassSchedule = field(default_factory=ClassSchedule)
    payment_policy: PaymentPolicy = field(default_factory=PaymentPolicy)
    description: str = ""
    created_at: str = ""

    @staticmethod
    def create(
    *,
    id: str,
    name: str,
    instructor_id: Optional[str] = None,
    schedule_days: Optional[list[str]] = None,
    schedule_time: Optional[str] = None,
    duration_minutes: Optional[int] = None,
    payment_type: str = PERCENTAGE,
    payment_value: Optional[float] = None,
    description: str = "",
) -> "StudioClass":
        now_utc = datetime.now(pytz.UTC).isoformat()
        return StudioClass(
            id=id,
            name=name.strip(),
            instructor_id=instructor_id,
            schedule=ClassSchedule.create(schedule_days, schedule_time, duration_minutes),
            payment_policy=PaymentPolicy.from_fields(payment_type, payment_value),
            description=description.strip(),
            created_at=now_utc,
        )

    @staticmethod
    def from_row(row: dict) -> "StudioClass":
        return StudioClass(
            id=str(row.get("id", "")),
            name=str(row.get("name") or "").strip(),
            instructor_id=(str(row["instructor_id"]) if row.get("instructor_id") else None),
            schedule=ClassSchedule.create(
                parse_json_list(row.get("schedule_days")),
                row.get("schedule_time"),
                row.get("duration_minutes"),
            ),
            payment_policy=PaymentPolicy.from_fields(
                row.get("instructor_payment_type"), row.get("instructor_payment_value")
            ),
            description=str(row.get("description") or ""),
            created_at=str(row.get("created_at") or ""),
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "instructor_id": self.instructor_id,
            "schedule_days": [d.lower() for d in self.schedule.days],
            "schedule_time": self.schedule.time,
            "duration_minutes": self.schedule.duration_minutes,
            "instructor_payment_type": self.payment_policy.mode,
            "instructor_payment_value": self.payment_policy.value,
            "created_at": self.created_at,
        }
