"""Instructor payment batches: freezing outstanding line items into a payout."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional

from studio.config import (
    CHECK_INS,
    CLASS_ENROLLMENTS,
    DEFAULT_PAYMENT_DAY_OF_WEEK,
    INSTRUCTOR_PAYMENT_BATCHES,
    INSTRUCTOR_PAYMENT_CONFIG,
)
from studio.errors import PaymentError
from studio.models.payments import APPROVED, CREDIT, PAID, PENDING, PaymentBatch, PaymentLineItem
from studio.repositories.store import DataStore
from studio.utils.clock import Clock
from studio.utils.coerce import parse_int
from studio.utils.money import round2, to_decimal

logger = logging.getLogger(__name__)


def _source(item: PaymentLineItem) -> str:
    return CHECK_INS if item.payment_method == CREDIT else CLASS_ENROLLMENTS


def instructor_payment_day(store: DataStore, instructor_id: str) -> int:
    """Configured payout weekday (0 = Sunday), Friday when unset."""
    row = store.select_one(INSTRUCTOR_PAYMENT_CONFIG, {"instructor_id": instructor_id})
    day = parse_int(row.get("payment_day_of_week")) if row else None
    return day if day is not None and 0 <= day <= 6 else DEFAULT_PAYMENT_DAY_OF_WEEK


def finalize_payment_batch(
    store: DataStore,
    instructor_id: str,
    items: Iterable[PaymentLineItem],
    week_start: date,
    week_end: date,
    clock: Clock,
    notes: Optional[str] = None,
) -> PaymentBatch:
    """Persist one batch for ``instructor_id`` and stamp every item as paid out.

    The batch total is the sum of the items' rounded instructor payments.
    """
    items = list(items)
    if not items:
        raise PaymentError("Cannot finalize an empty payment batch")
    foreign = [i.id for i in items if i.instructor_id != instructor_id]
    if foreign:
        raise PaymentError(f"Items {foreign} do not belong to instructor {instructor_id}")
    for item in items:
        row = store.select_one(_source(item), {"id": item.id})
        if row is None:
            raise PaymentError(f"Item {item.id} no longer exists")
        if row.get("paid_out_at"):
            raise PaymentError(f"Item {item.id} was already paid out at {row['paid_out_at']}")

    total = round2(sum(to_decimal(i.instructor_payment) for i in items))
    batch = PaymentBatch.from_row(
        store.insert(
            INSTRUCTOR_PAYMENT_BATCHES,
            {
                "instructor_id": instructor_id,
                "week_start": week_start,
                "week_end": week_end,
                "total_amount": total,
                "status": PENDING,
                "item_ids": [i.id for i in items],
                "created_at": clock.stamp(),
                "notes": notes,
            },
        )
    )

    stamp = clock.stamp()
    for item in items:
        store.update(_source(item), item.id, {"paid_out_at": stamp})

    logger.info(
        "Finalized batch %s for %s: %d items, %.2f", batch.id, instructor_id, len(items), total
    )
    return batch


def _load_batch(store: DataStore, batch_id: str) -> PaymentBatch:
    row = store.select_one(INSTRUCTOR_PAYMENT_BATCHES, {"id": batch_id})
    if row is None:
        raise PaymentError(f"No payment batch {batch_id}")
    return PaymentBatch.from_row(row)


def approve_batch(store: DataStore, batch_id: str, approved_by: str, clock: Clock) -> PaymentBatch:
    batch = _load_batch(store, batch_id)
    if batch.status != PENDING:
        raise PaymentError(f"Batch {batch_id} is {batch.status}, only pending batches can be approved")
    row = store.update(
        INSTRUCTOR_PAYMENT_BATCHES,
        batch_id,
        {"status": APPROVED, "approved_at": clock.stamp(), "approved_by": approved_by},
    )
    return PaymentBatch.from_row(row)


def mark_batch_paid(store: DataStore, batch_id: str, clock: Clock) -> PaymentBatch:
    batch = _load_batch(store, batch_id)
    if batch.status != APPROVED:
        raise PaymentError(f"Batch {batch_id} is {batch.status}, approve it before paying")
    row = store.update(INSTRUCTOR_PAYMENT_BATCHES, batch_id, {"status": PAID, "paid_at": clock.stamp()})
    logger.info("Batch %s paid: %.2f to %s", batch_id, batch.total_amount, batch.instructor_id)
    return PaymentBatch.from_row(row)


def load_batches(store: DataStore, instructor_id: Optional[str] = None) -> List[PaymentBatch]:
    filters = {"instructor_id": instructor_id} if instructor_id else None
    rows = store.select(INSTRUCTOR_PAYMENT_BATCHES, filters, order_by="created_at", descending=True)
    return [PaymentBatch.from_row(r) for r in rows]
