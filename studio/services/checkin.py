"""Check-in flow: QR payload, today's session, and what the attendance pays."""

from __future__ import annotations

import json
import logging
from typing import Optional

from studio.config import (
    CHECK_INS,
    CLASS_ENROLLMENTS,
    CLASS_PACKAGE_PURCHASES,
    DROP_IN_CREDIT_PURCHASES,
)
from studio.errors import CheckInError, NotEnrolledError, StoreError
from studio.models.classes import StudioClass
from studio.models.payments import CREDIT, PACKAGE, CheckIn, CreditPurchase, Enrollment, PackagePurchase
from studio.models.sessions import ClassSession
from studio.repositories.classes_repo import get_class
from studio.repositories.sessions_repo import find_session
from studio.repositories.store import DataStore
from studio.services.payments import compute_instructor_payment, per_session_price
from studio.services.sessions import get_or_create_session
from studio.utils.clock import Clock
from studio.utils.coerce import normalize_session_time

logger = logging.getLogger(__name__)


def parse_qr_payload(data: str) -> dict:
    """Decode a member QR code: ``{"userId": "...", "name": "..."}``."""
    try:
        payload = json.loads(data)
    except (TypeError, json.JSONDecodeError) as exc:
        raise CheckInError("Invalid QR code") from exc
    if not isinstance(payload, dict) or not payload.get("userId"):
        raise CheckInError("QR code has no user id")
    return {"user_id": str(payload["userId"]), "name": str(payload.get("name") or "")}


def todays_session(store: DataStore, cls: StudioClass, clock: Clock, created_from: str) -> ClassSession:
    return get_or_create_session(store, cls.id, clock.today(), cls.schedule.time, created_from)


def _record(store: DataStore, clock: Clock, **fields) -> CheckIn:
    row = {
        "payment_status": "pending",
        "checked_in_at": clock.stamp(),
        "is_temporary_user": False,
        **fields,
    }
    return CheckIn.from_row(store.insert(CHECK_INS, row))


def check_in_enrollment(store: DataStore, class_id: str, user_id: str, clock: Clock) -> CheckIn:
    """Check a package holder into today's session of the class."""
    cls = get_class(store, class_id)
    # Enrolling always creates the session; look it up without creating one
    session = find_session(store, cls.id, clock.today(), normalize_session_time(cls.schedule.time))
    row = None
    if session is not None:
        row = store.select_one(CLASS_ENROLLMENTS, {"user_id": user_id, "class_session_id": session.id})
    if row is None:
        raise NotEnrolledError(f"User {user_id} is not enrolled in {cls.name} on {clock.today()}")
    enrollment = Enrollment.from_row(row)
    if enrollment.checked_in:
        raise CheckInError(f"User {user_id} already checked in to {cls.name}")

    amount: Optional[float] = None
    if enrollment.package_purchase_id:
        p = store.select_one(CLASS_PACKAGE_PURCHASES, {"id": enrollment.package_purchase_id})
        if p is not None:
            purchase = PackagePurchase.from_row(p)
            amount = compute_instructor_payment(
                cls.payment_policy, per_session_price(purchase.amount_paid, purchase.num_classes)
            )

    store.update(CLASS_ENROLLMENTS, enrollment.id, {"checked_in": True})
    check_in = _record(
        store,
        clock,
        class_id=cls.id,
        user_id=user_id,
        class_session_id=session.id,
        enrollment_id=enrollment.id,
        payment_method=PACKAGE,
        instructor_payment_amount=amount,
    )
    logger.info("Checked in %s to %s (%s) with package", user_id, cls.name, session.session_date)
    return check_in


def check_in_with_credit(store: DataStore, class_id: str, user_id: str, clock: Clock) -> CheckIn:
    """Spend one drop-in credit, oldest purchase first."""
    cls = get_class(store, class_id)
    rows = store.select(
        DROP_IN_CREDIT_PURCHASES,
        {"user_id": user_id},
        order_by="purchase_date",
    )
    purchases = [CreditPurchase.from_row(r) for r in rows]
    purchase = next((p for p in purchases if p.credits_remaining > 0), None)
    if purchase is None:
        raise CheckInError(f"User {user_id} has no drop-in credits left")

    session = todays_session(store, cls, clock, created_from="dropin")
    store.update(
        DROP_IN_CREDIT_PURCHASES,
        purchase.id,
        {"credits_remaining": purchase.credits_remaining - 1},
    )
    amount = compute_instructor_payment(
        purchase.payment_policy, per_session_price(purchase.amount_paid, purchase.credits_total)
    )
    try:
        check_in = _record(
            store,
            clock,
            class_id=cls.id,
            user_id=user_id,
            class_session_id=session.id,
            credit_purchase_id=purchase.id,
            payment_method=CREDIT,
            instructor_payment_amount=amount,
        )
    except StoreError:
        logger.warning("Check-in of %s failed; returning credit to %s", user_id, purchase.id)
        store.update(DROP_IN_CREDIT_PURCHASES, purchase.id, {"credits_remaining": purchase.credits_remaining})
        raise
    logger.info(
        "Checked in %s to %s with a credit (%d left on %s)",
        user_id, cls.name, purchase.credits_remaining - 1, purchase.id,
    )
    return check_in


def check_in_guest(store: DataStore, class_id: str, guest_name: str, clock: Clock) -> CheckIn:
    name = (guest_name or "").strip()
    if not name:
        raise CheckInError("Guest name is required")
    cls = get_class(store, class_id)
    session = todays_session(store, cls, clock, created_from="dropin")
    logger.info("Guest %s checked in to %s", name, cls.name)
    return _record(
        store,
        clock,
        class_id=cls.id,
        user_id=None,
        class_session_id=session.id,
        is_temporary_user=True,
        guest_name=name,
    )


def check_in_from_qr(store: DataStore, class_id: str, qr_data: str, clock: Clock) -> CheckIn:
    """Enrollment first; without one, fall back to a drop-in credit."""
    user_id = parse_qr_payload(qr_data)["user_id"]
    try:
        return check_in_enrollment(store, class_id, user_id, clock)
    except NotEnrolledError:
        return check_in_with_credit(store, class_id, user_id, clock)
