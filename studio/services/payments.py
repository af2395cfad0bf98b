"""Instructor payment math and the payment line items built from it."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP
from typing import Iterable, List, Optional

import pandas as pd

from studio.config import (
    CHECK_INS,
    CLASS_ENROLLMENTS,
    CLASS_PACKAGE_PURCHASES,
    CLASS_SESSIONS,
    CLASSES,
    DROP_IN_CREDIT_PURCHASES,
    PROFILES,
)
from studio.models.classes import PaymentPolicy, StudioClass
from studio.models.payments import (
    CREDIT,
    PACKAGE,
    PAID,
    PENDING,
    CheckIn,
    CreditPurchase,
    Enrollment,
    PackagePurchase,
    PaymentLineItem,
)
from studio.models.sessions import ClassSession
from studio.repositories.store import DataStore
from studio.utils.coerce import parse_iso_date
from studio.utils.money import CENT, parse_amount_or, round2, to_decimal

logger = logging.getLogger(__name__)

LINE_ITEM_COLUMNS = [
    "session_date",
    "session_time",
    "user_name",
    "user_email",
    "class_name",
    "instructor_name",
    "package_name",
    "amount_paid",
    "instructor_payment",
    "admin_earnings",
    "payment_method",
    "status",
]


# -----------------------------
# Arithmetic
# -----------------------------
def per_session_price(amount_paid, num_classes) -> float:
    """Price of one session out of a bundle; a bundle of 0 (or unknown) counts as 1."""
    # Counts arrive as int, Decimal (NUMERIC columns) or sheet text
    divisor = max(parse_amount_or(num_classes, default=0.0), 1)
    return parse_amount_or(amount_paid) / divisor


def compute_instructor_payment(policy: PaymentPolicy, per_session_price: float) -> float:
    if policy.is_flat:
        return policy.flat_amount
    return round2(to_decimal(per_session_price) * to_decimal(policy.share) / 100)


def compute_admin_earnings(per_session_price: float, instructor_payment: float) -> float:
    # instructor_payment is already rounded, so the two halves add back up to round2(price)
    diff = to_decimal(per_session_price) - to_decimal(instructor_payment)
    return float(diff.quantize(CENT, rounding=ROUND_HALF_UP))


def split_payment(policy: PaymentPolicy, per_session_price: float) -> tuple[float, float]:
    instructor = compute_instructor_payment(policy, per_session_price)
    return instructor, compute_admin_earnings(per_session_price, instructor)


# -----------------------------
# Line items
# -----------------------------
def _by_id(rows: Iterable[dict]) -> dict[str, dict]:
    return {str(r["id"]): r for r in rows}


def _profiles(store: DataStore) -> dict[str, dict]:
    return _by_id(store.select(PROFILES))


def build_enrollment_line_items(
    store: DataStore,
    instructor_id: Optional[str] = None,
    only_unpaid: bool = False,
) -> List[PaymentLineItem]:
    """One item per package enrollment whose session, class and purchase all exist.

    ``status`` is ``paid`` once the student checked in, ``pending`` before.
    Items come newest enrollment first.
    """
    filters = {"paid_out_at": ("is", None)} if only_unpaid else None
    enrollments = [
        Enrollment.from_row(r)
        for r in store.select(CLASS_ENROLLMENTS, filters, order_by="enrolled_at", descending=True)
    ]
    sessions = {k: ClassSession.from_row(v) for k, v in _by_id(store.select(CLASS_SESSIONS)).items()}
    classes = {k: StudioClass.from_row(v) for k, v in _by_id(store.select(CLASSES)).items()}
    purchases = {
        k: PackagePurchase.from_row(v) for k, v in _by_id(store.select(CLASS_PACKAGE_PURCHASES)).items()
    }
    profiles = _profiles(store)

    items: List[PaymentLineItem] = []
    for e in enrollments:
        session = sessions.get(e.class_session_id)
        cls = classes.get(session.class_id) if session else None
        purchase = purchases.get(e.package_purchase_id) if e.package_purchase_id else None
        user = profiles.get(e.user_id)
        if session is None or cls is None or purchase is None or user is None:
            continue
        if instructor_id and cls.instructor_id != instructor_id:
            continue

        price = per_session_price(purchase.amount_paid, purchase.num_classes)
        instructor_payment, admin_earnings = split_payment(cls.payment_policy, price)
        instructor = profiles.get(cls.instructor_id or "", {})
        items.append(
            PaymentLineItem(
                id=e.id,
                class_id=cls.id,
                class_name=cls.name,
                instructor_id=cls.instructor_id,
                session_date=session.session_date,
                session_time=session.session_time,
                amount_paid=price,
                instructor_payment=instructor_payment,
                admin_earnings=admin_earnings,
                payment_method=PACKAGE,
                status=PAID if e.checked_in else PENDING,
                enrolled_at=e.enrolled_at,
                user_id=e.user_id,
                user_name=str(user.get("name") or ""),
                user_email=str(user.get("email") or ""),
                instructor_name=str(instructor.get("name") or "Unknown"),
                package_name=purchase.package_name,
            )
        )
    return items


def build_credit_line_items(
    store: DataStore,
    instructor_id: Optional[str] = None,
    only_unpaid: bool = False,
) -> List[PaymentLineItem]:
    """One item per check-in paid with a drop-in credit.

    The pay rule comes from the credit purchase, not the class.
    """
    filters = {"payment_method": CREDIT}
    if only_unpaid:
        filters["paid_out_at"] = ("is", None)
    check_ins = [
        CheckIn.from_row(r)
        for r in store.select(CHECK_INS, filters, order_by="checked_in_at", descending=True)
    ]
    sessions = {k: ClassSession.from_row(v) for k, v in _by_id(store.select(CLASS_SESSIONS)).items()}
    classes = {k: StudioClass.from_row(v) for k, v in _by_id(store.select(CLASSES)).items()}
    purchases = {
        k: CreditPurchase.from_row(v) for k, v in _by_id(store.select(DROP_IN_CREDIT_PURCHASES)).items()
    }
    profiles = _profiles(store)

    items: List[PaymentLineItem] = []
    for c in check_ins:
        cls = classes.get(c.class_id)
        purchase = purchases.get(c.credit_purchase_id) if c.credit_purchase_id else None
        if cls is None or purchase is None:
            continue
        if instructor_id and cls.instructor_id != instructor_id:
            continue

        session = sessions.get(c.class_session_id) if c.class_session_id else None
        price = per_session_price(purchase.amount_paid, purchase.credits_total)
        instructor_payment, admin_earnings = split_payment(purchase.payment_policy, price)
        user = profiles.get(c.user_id or "", {})
        instructor = profiles.get(cls.instructor_id or "", {})
        items.append(
            PaymentLineItem(
                id=c.id,
                class_id=cls.id,
                class_name=cls.name,
                instructor_id=cls.instructor_id,
                session_date=session.session_date if session else parse_iso_date(c.checked_in_at),
                session_time=session.session_time if session else "",
                amount_paid=price,
                instructor_payment=instructor_payment,
                admin_earnings=admin_earnings,
                payment_method=CREDIT,
                status=PAID,
                enrolled_at=c.checked_in_at,
                user_id=c.user_id,
                user_name=str(user.get("name") or c.guest_name or ""),
                user_email=str(user.get("email") or ""),
                instructor_name=str(instructor.get("name") or "Unknown"),
                package_name=purchase.package_name,
            )
        )
    return items


def outstanding_line_items(store: DataStore, instructor_id: Optional[str] = None) -> List[PaymentLineItem]:
    """Everything not yet covered by a finalized batch, newest first."""
    items = build_enrollment_line_items(store, instructor_id, only_unpaid=True)
    items += build_credit_line_items(store, instructor_id, only_unpaid=True)
    items.sort(key=lambda i: i.enrolled_at or "", reverse=True)
    return items


def filter_line_items(
    items: Iterable[PaymentLineItem],
    instructor_id: Optional[str] = None,
    class_id: Optional[str] = None,
) -> List[PaymentLineItem]:
    out = []
    for item in items:
        if instructor_id and item.instructor_id != instructor_id:
            continue
        if class_id and item.class_id != class_id:
            continue
        out.append(item)
    return out


def summarize_line_items(items: Iterable[PaymentLineItem]) -> dict:
    items = list(items)
    revenue = sum(to_decimal(i.amount_paid) for i in items)
    count = len(items)
    return {
        "count": count,
        "total_student_revenue": round2(revenue),
        "total_instructor_payments": round2(sum(to_decimal(i.instructor_payment) for i in items)),
        "total_admin_earnings": round2(sum(to_decimal(i.admin_earnings) for i in items)),
        "avg_revenue_per_enrollment": round2(revenue / count) if count else 0.0,
    }


def line_items_frame(items: Iterable[PaymentLineItem], show_admin_earnings: bool = False) -> pd.DataFrame:
    columns = [c for c in LINE_ITEM_COLUMNS if show_admin_earnings or c != "admin_earnings"]
    rows = [i.to_dict(show_admin_earnings=show_admin_earnings) for i in items]
    if not rows:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame(rows)[columns]
    # amount_paid is the raw per-session share; round it for display only
    df["amount_paid"] = df["amount_paid"].map(round2)
    return df


def export_line_items_csv(items: Iterable[PaymentLineItem], show_admin_earnings: bool = False) -> str:
    return line_items_frame(items, show_admin_earnings).to_csv(index=False)
