from datetime import datetime

import pytest

from studio.config import CLASSES, PROFILES
from studio.models.classes import StudioClass
from studio.repositories.store import MemoryStore
from studio.utils.clock import FixedClock


def make_class(**overrides) -> StudioClass:
    fields = dict(
        id="yoga",
        name="Evening Yoga",
        instructor_id="inst-1",
        schedule_days=["monday", "wednesday"],
        schedule_time="18:00",
        payment_type="percentage",
        payment_value=70,
    )
    fields.update(overrides)
    return StudioClass.create(**fields)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    # Monday 3 Feb 2025, 10:00 studio time
    return FixedClock(datetime(2025, 2, 3, 10, 0))


def seed_studio(store):
    """One instructor, one student and a Monday/Wednesday class at 18:00."""
    store.insert(PROFILES, {"id": "inst-1", "name": "Ana", "email": "ana@studio.test", "role": "instructor"})
    store.insert(PROFILES, {"id": "inst-2", "name": "Ben", "email": "ben@studio.test", "role": "instructor"})
    store.insert(PROFILES, {"id": "stu-1", "name": "Cleo", "email": "cleo@mail.test", "role": "student"})
    store.insert(CLASSES, make_class().to_row())
    store.insert(CLASSES, make_class(id="spin", name="Spin", instructor_id="inst-2", payment_type="flat", payment_value=25).to_row())
    return store


@pytest.fixture
def studio(store):
    return seed_studio(store)
