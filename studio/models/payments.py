from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Optional

from studio.models.classes import PaymentPolicy
from studio.utils.coerce import parse_bool, parse_int, parse_iso_date, parse_json_list
from studio.utils.money import parse_amount_or

PACKAGE = "package"
CREDIT = "credit"

PENDING = "pending"
APPROVED = "approved"
PAID = "paid"


def _opt_str(value) -> Optional[str]:
    return str(value) if value not in (None, "") else None


@dataclass
class PackagePurchase:
    id: str
    user_id: str
    package_name: str
    num_classes: int
    amount_paid: float
    purchase_date: str = ""

    @staticmethod
    def from_row(row: dict) -> "PackagePurchase":
        return PackagePurchase(
            id=str(row.get("id", "")),
            user_id=str(row.get("user_id", "")),
            package_name=str(row.get("package_name") or ""),
            num_classes=parse_int(row.get("num_classes"), default=0),
            amount_paid=parse_amount_or(row.get("amount_paid")),
            purchase_date=str(row.get("purchase_date") or ""),
        )


@dataclass
class CreditPurchase:
    id: str
    user_id: str
    package_name: str
    credits_total: int
    credits_remaining: int
    amount_paid: float
    payment_policy: PaymentPolicy = field(default_factory=PaymentPolicy)
    purchase_date: str = ""

    @staticmethod
    def from_row(row: dict) -> "CreditPurchase":
        return CreditPurchase(
            id=str(row.get("id", "")),
            user_id=str(row.get("user_id", "")),
            package_name=str(row.get("package_name") or ""),
            credits_total=parse_int(row.get("credits_total"), default=0),
            credits_remaining=parse_int(row.get("credits_remaining"), default=0),
            amount_paid=parse_amount_or(row.get("amount_paid")),
            payment_policy=PaymentPolicy.from_fields(row.get("payment_type"), row.get("payment_value")),
            purchase_date=str(row.get("purchase_date") or ""),
        )


@dataclass
class Enrollment:
    id: str
    user_id: str
    class_session_id: str
    package_purchase_id: Optional[str]
    enrolled_at: str = ""
    checked_in: bool = False
    paid_out_at: Optional[str] = None

    @staticmethod
    def from_row(row: dict) -> "Enrollment":
        return Enrollment(
            id=str(row.get("id", "")),
            user_id=str(row.get("user_id", "")),
            class_session_id=str(row.get("class_session_id", "")),
            package_purchase_id=_opt_str(row.get("package_purchase_id")),
            enrolled_at=str(row.get("enrolled_at") or ""),
            checked_in=parse_bool(row.get("checked_in")),
            paid_out_at=_opt_str(row.get("paid_out_at")),
        )


@dataclass
class CheckIn:
    id: str
    class_id: str
    user_id: Optional[str]
    class_session_id: Optional[str]
    payment_method: Optional[str] = None
    enrollment_id: Optional[str] = None
    credit_purchase_id: Optional[str] = None
    instructor_payment_amount: Optional[float] = None
    checked_in_at: str = ""
    is_temporary_user: bool = False
    guest_name: Optional[str] = None
    paid_out_at: Optional[str] = None

    @staticmethod
    def from_row(row: dict) -> "CheckIn":
        return CheckIn(
            id=str(row.get("id", "")),
            class_id=str(row.get("class_id", "")),
            user_id=_opt_str(row.get("user_id")),
            class_session_id=_opt_str(row.get("class_session_id")),
            payment_method=_opt_str(row.get("payment_method")),
            enrollment_id=_opt_str(row.get("enrollment_id")),
            credit_purchase_id=_opt_str(row.get("credit_purchase_id")),
            instructor_payment_amount=parse_amount_or(row.get("instructor_payment_amount"), default=None),
            checked_in_at=str(row.get("checked_in_at") or ""),
            is_temporary_user=parse_bool(row.get("is_temporary_user")),
            guest_name=_opt_str(row.get("guest_name")),
            paid_out_at=_opt_str(row.get("paid_out_at")),
        )


@dataclass
class PaymentLineItem:
    """One paid attendance, split between instructor and studio.

    Built on read from an enrollment (package) or a check-in (drop-in
    credit); never stored until it is part of a finalized batch.
    """

    id: str
    class_id: str
    class_name: str
    instructor_id: Optional[str]
    session_date: Optional[date]
    session_time: str
    amount_paid: float            # per-session price
    instructor_payment: float
    admin_earnings: float
    payment_method: str = PACKAGE
    status: str = PENDING
    enrolled_at: str = ""
    user_id: Optional[str] = None
    user_name: str = ""
    user_email: str = ""
    instructor_name: str = ""
    package_name: str = ""

    def to_dict(self, show_admin_earnings: bool = False) -> dict:
        d = asdict(self)
        d["session_date"] = self.session_date.isoformat() if self.session_date else ""
        if not show_admin_earnings:
            d.pop("admin_earnings")
        return d


@dataclass
class PaymentBatch:
    id: str
    instructor_id: str
    week_start: Optional[date]
    week_end: Optional[date]
    total_amount: float
    status: str = PENDING
    item_ids: list[str] = field(default_factory=list)
    created_at: str = ""
    approved_at: Optional[str] = None
    approved_by: Optional[str] = None
    paid_at: Optional[str] = None
    notes: Optional[str] = None

    @staticmethod
    def from_row(row: dict) -> "PaymentBatch":
        return PaymentBatch(
            id=str(row.get("id", "")),
            instructor_id=str(row.get("instructor_id", "")),
            week_start=parse_iso_date(row.get("week_start")),
            week_end=parse_iso_date(row.get("week_end")),
            # Stored totals are read back as-is, never recomputed
            total_amount=parse_amount_or(row.get("total_amount")),
            status=str(row.get("status") or PENDING),
            item_ids=[str(i) for i in parse_json_list(row.get("item_ids"))],
            created_at=str(row.get("created_at") or ""),
            approved_at=_opt_str(row.get("approved_at")),
            approved_by=_opt_str(row.get("approved_by")),
            paid_at=_opt_str(row.get("paid_at")),
            notes=_opt_str(row.get("notes")),
        )
