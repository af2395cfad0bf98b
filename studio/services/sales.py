"""Selling class packages and drop-in credit bundles."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional

from studio.config import (
    CLASS_ENROLLMENTS,
    CLASS_PACKAGE_PURCHASES,
    DEFAULT_INSTRUCTOR_PERCENTAGE,
    DROP_IN_CREDIT_PURCHASES,
)
from studio.models.classes import PaymentPolicy
from studio.models.payments import CreditPurchase, Enrollment, PackagePurchase
from studio.repositories.classes_repo import get_class
from studio.repositories.store import DataStore
from studio.services.sessions import get_or_create_session
from studio.utils.clock import Clock

logger = logging.getLogger(__name__)


def sell_class_package(
    store: DataStore,
    *,
    user_id: str,
    package_id: str,
    package_name: str,
    num_classes: int,
    amount_paid: float,
    selections: Iterable[tuple[str, date]],
    assigned_by: Optional[str],
    clock: Clock,
) -> tuple[PackagePurchase, list[Enrollment]]:
    """Record the purchase, then enroll the user in each chosen (class, date).

    Sessions are fetched or created at the class's scheduled time.
    """
    selections = list(selections)
    if len(selections) > max(num_classes, 0):
        raise ValueError(f"{len(selections)} sessions selected but the package holds {num_classes}")
    classes = {class_id: get_class(store, class_id) for class_id, _ in selections}

    purchase = PackagePurchase.from_row(
        store.insert(
            CLASS_PACKAGE_PURCHASES,
            {
                "user_id": user_id,
                "package_id": package_id,
                "package_name": package_name,
                "num_classes": num_classes,
                "amount_paid": amount_paid,
                "purchase_date": clock.stamp(),
                "assigned_by": assigned_by,
            },
        )
    )

    enrollments = []
    for class_id, session_date in selections:
        cls = classes[class_id]
        session = get_or_create_session(
            store, cls.id, session_date, cls.schedule.time, created_from="enrollment"
        )
        row = store.insert(
            CLASS_ENROLLMENTS,
            {
                "user_id": user_id,
                "class_session_id": session.id,
                "package_purchase_id": purchase.id,
                "enrolled_at": clock.stamp(),
                "checked_in": False,
            },
        )
        enrollments.append(Enrollment.from_row(row))

    logger.info(
        "Sold %s to %s: %d of %d sessions booked", package_name, user_id, len(enrollments), num_classes
    )
    return purchase, enrollments


def sell_credit_package(
    store: DataStore,
    *,
    user_id: str,
    package_id: str,
    package_name: str,
    num_credits: int,
    amount_paid: float,
    assigned_by: Optional[str],
    clock: Clock,
    payment_type: Optional[str] = None,
    payment_value: Optional[float] = None,
) -> CreditPurchase:
    policy = PaymentPolicy.from_fields(payment_type, payment_value)
    if policy.value is None and not policy.is_flat:
        policy = PaymentPolicy.percentage(DEFAULT_INSTRUCTOR_PERCENTAGE)

    row = store.insert(
        DROP_IN_CREDIT_PURCHASES,
        {
            "user_id": user_id,
            "package_id": package_id,
            "package_name": package_name,
            "credits_total": num_credits,
            "credits_remaining": num_credits,
            "amount_paid": amount_paid,
            "purchase_date": clock.stamp(),
            "assigned_by": assigned_by,
            "payment_type": policy.mode,
            "payment_value": policy.value,
        },
    )
    logger.info("Sold %d drop-in credits (%s) to %s", num_credits, package_name, user_id)
    return CreditPurchase.from_row(row)
