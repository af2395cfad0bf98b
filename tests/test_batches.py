from datetime import date

import pytest

from studio.config import CHECK_INS, CLASS_ENROLLMENTS, INSTRUCTOR_PAYMENT_CONFIG
from studio.errors import PaymentError
from studio.models.payments import APPROVED, PAID, PENDING
from studio.services.batches import (
    approve_batch,
    finalize_payment_batch,
    instructor_payment_day,
    load_batches,
    mark_batch_paid,
)
from studio.services.checkin import check_in_with_credit
from studio.services.payments import outstanding_line_items
from studio.services.sales import sell_class_package, sell_credit_package

WEEK = (date(2025, 2, 1), date(2025, 2, 7))


def _book(store, clock, class_id, *days):
    sell_class_package(
        store,
        user_id="stu-1",
        package_id="pack-7",
        package_name="7 Pack",
        num_classes=7,
        amount_paid=150,
        selections=[(class_id, d) for d in days],
        assigned_by=None,
        clock=clock,
    )


def test_finalize_stamps_items_and_totals(studio, clock):
    _book(studio, clock, "yoga", date(2025, 2, 3), date(2025, 2, 5))
    items = outstanding_line_items(studio, "inst-1")
    batch = finalize_payment_batch(studio, "inst-1", items, *WEEK, clock, notes="week 5")

    assert batch.status == PENDING
    assert batch.total_amount == 30.00
    assert sorted(batch.item_ids) == sorted(i.id for i in items)
    assert batch.week_start == date(2025, 2, 1)
    assert all(r["paid_out_at"] for r in studio.select(CLASS_ENROLLMENTS))
    assert outstanding_line_items(studio, "inst-1") == []


def test_credit_items_are_stamped_on_the_check_in(studio, clock):
    sell_credit_package(
        studio,
        user_id="stu-1",
        package_id="drop-10",
        package_name="10 Drop-ins",
        num_credits=10,
        amount_paid=200,
        assigned_by=None,
        clock=clock,
    )
    check_in = check_in_with_credit(studio, "yoga", "stu-1", clock)
    [item] = outstanding_line_items(studio, "inst-1")
    assert item.id == check_in.id

    batch = finalize_payment_batch(studio, "inst-1", [item], *WEEK, clock)
    assert batch.total_amount == 14.00
    assert studio.select_one(CHECK_INS, {"id": check_in.id})["paid_out_at"]


def test_empty_batch_refused(studio, clock):
    with pytest.raises(PaymentError, match="empty"):
        finalize_payment_batch(studio, "inst-1", [], *WEEK, clock)


def test_items_of_another_instructor_refused(studio, clock):
    _book(studio, clock, "spin", date(2025, 2, 3))
    items = outstanding_line_items(studio)
    with pytest.raises(PaymentError, match="do not belong"):
        finalize_payment_batch(studio, "inst-1", items, *WEEK, clock)


def test_items_cannot_be_paid_twice(studio, clock):
    _book(studio, clock, "yoga", date(2025, 2, 3))
    items = outstanding_line_items(studio, "inst-1")
    finalize_payment_batch(studio, "inst-1", items, *WEEK, clock)
    with pytest.raises(PaymentError, match="already paid out"):
        finalize_payment_batch(studio, "inst-1", items, *WEEK, clock)
    assert len(load_batches(studio, "inst-1")) == 1


def test_batch_lifecycle(studio, clock):
    _book(studio, clock, "yoga", date(2025, 2, 3))
    batch = finalize_payment_batch(studio, "inst-1", outstanding_line_items(studio, "inst-1"), *WEEK, clock)

    with pytest.raises(PaymentError):
        mark_batch_paid(studio, batch.id, clock)

    approved = approve_batch(studio, batch.id, "admin-1", clock)
    assert approved.status == APPROVED
    assert approved.approved_by == "admin-1"
    with pytest.raises(PaymentError):
        approve_batch(studio, batch.id, "admin-1", clock)

    paid = mark_batch_paid(studio, batch.id, clock)
    assert paid.status == PAID
    assert paid.paid_at
    assert paid.total_amount == batch.total_amount


def test_unknown_batch(studio, clock):
    with pytest.raises(PaymentError):
        approve_batch(studio, "nope", "admin-1", clock)


def test_payment_day_from_config(studio):
    assert instructor_payment_day(studio, "inst-1") == 5
    studio.insert(INSTRUCTOR_PAYMENT_CONFIG, {"instructor_id": "inst-1", "payment_day_of_week": 1})
    studio.insert(INSTRUCTOR_PAYMENT_CONFIG, {"instructor_id": "inst-2", "payment_day_of_week": 9})
    assert instructor_payment_day(studio, "inst-1") == 1
    assert instructor_payment_day(studio, "inst-2") == 5
