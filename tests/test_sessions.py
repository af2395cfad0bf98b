import threading
from datetime import date

import pytest

from conftest import make_class
from studio.config import CLASS_SESSIONS
from studio.errors import StoreError, UniqueViolation
from studio.repositories.sessions_repo import load_sessions, load_sessions_df
from studio.repositories.store import MemoryStore
from studio.services.sessions import ensure_month_sessions, get_or_create_session


class RacingStore(MemoryStore):
    """Another writer slips the same session in between our lookup and insert."""

    def __init__(self, winner_visible=True):
        super().__init__()
        self.winner_visible = winner_visible
        self.lookups = 0
        self.inserts = 0

    def select(self, collection, filters=None, **kwargs):
        if collection == CLASS_SESSIONS:
            self.lookups += 1
            if self.lookups == 1:
                return []
        return super().select(collection, filters, **kwargs)

    def insert(self, collection, row):
        if collection == CLASS_SESSIONS and self.inserts == 0:
            self.inserts += 1
            if self.winner_visible:
                super().insert(collection, {**row, "id": "winner"})
            raise UniqueViolation(collection, (row["class_id"], row["session_date"], row["session_time"]))
        return super().insert(collection, row)


class BrokenStore(MemoryStore):
    def insert(self, collection, row):
        raise StoreError("connection reset")


def test_returns_existing_session(store):
    first = get_or_create_session(store, "yoga", date(2025, 2, 3), "18:00")
    again = get_or_create_session(store, "yoga", date(2025, 2, 3), "18:00:00", created_from="dropin")
    assert again.id == first.id
    assert again.created_from == "manual"
    assert store.count(CLASS_SESSIONS) == 1


def test_creates_with_normalized_time(store):
    session = get_or_create_session(store, "yoga", date(2025, 2, 3), "7:30", created_from="enrollment")
    assert session.session_time == "07:30:00"
    assert session.created_from == "enrollment"
    assert store.select_one(CLASS_SESSIONS, {"id": session.id})["session_time"] == "07:30:00"


def test_different_times_are_different_sessions(store):
    a = get_or_create_session(store, "yoga", date(2025, 2, 3), "18:00")
    b = get_or_create_session(store, "yoga", date(2025, 2, 3), "19:00")
    assert a.id != b.id


def test_lost_race_returns_the_winner(caplog):
    store = RacingStore()
    session = get_or_create_session(store, "yoga", date(2025, 2, 3), "18:00")
    assert session.id == "winner"
    assert store.lookups == 2
    assert "Lost race" in caplog.text


def test_conflict_without_a_visible_winner_is_raised():
    store = RacingStore(winner_visible=False)
    with pytest.raises(UniqueViolation):
        get_or_create_session(store, "yoga", date(2025, 2, 3), "18:00")
    assert store.lookups == 2


def test_other_store_errors_are_not_retried():
    with pytest.raises(StoreError, match="connection reset"):
        get_or_create_session(BrokenStore(), "yoga", date(2025, 2, 3), "18:00")


def test_invalid_origin_rejected(store):
    with pytest.raises(ValueError):
        get_or_create_session(store, "yoga", date(2025, 2, 3), "18:00", created_from="walk-in")


def test_concurrent_callers_share_one_row(store):
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        results.append(get_or_create_session(store, "yoga", date(2025, 2, 3), "18:00").id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(results)) == 1
    assert store.count(CLASS_SESSIONS) == 1


def test_ensure_month_sessions_is_idempotent(store):
    classes = [make_class(), make_class(id="spin", schedule_days=["friday"], schedule_time="07:00")]
    created = ensure_month_sessions(store, classes, date(2027, 2, 14))
    assert len(created) == 12
    assert created[0].session_date == date(2027, 2, 1)

    again = ensure_month_sessions(store, classes, date(2027, 2, 1))
    assert [s.id for s in again] == [s.id for s in created]
    assert store.count(CLASS_SESSIONS) == 12


def test_load_sessions_within_bounds(store):
    for day in (1, 15, 28):
        get_or_create_session(store, "yoga", date(2025, 2, day), "18:00")
    get_or_create_session(store, "spin", date(2025, 2, 15), "07:00")
    get_or_create_session(store, "yoga", date(2025, 3, 1), "18:00")

    feb = load_sessions(store, date(2025, 2, 1), date(2025, 2, 28))
    assert [(s.session_date.day, s.session_time) for s in feb] == [
        (1, "18:00:00"),
        (15, "07:00:00"),
        (15, "18:00:00"),
        (28, "18:00:00"),
    ]
    assert len(load_sessions(store, date(2025, 2, 1), date(2025, 2, 28), class_id="spin")) == 1
    assert len(load_sessions_df(store, date(2025, 2, 1), date(2025, 2, 28))) == 4
