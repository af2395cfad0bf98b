# studio/repositories/sessions_repo.py
from datetime import date
from typing import Optional

import pandas as pd

from studio.config import CLASS_SESSIONS, HEADERS
from studio.models.sessions import ClassSession
from studio.repositories.store import DataStore


def find_session(store: DataStore, class_id: str, session_date: date, session_time: str) -> Optional[ClassSession]:
    """``session_time`` must already be normalized to HH:MM:SS."""
    row = store.select_one(
        CLASS_SESSIONS,
        {"class_id": class_id, "session_date": session_date, "session_time": session_time},
    )
    return ClassSession.from_row(row) if row else None


def insert_session(store: DataStore, session: ClassSession) -> ClassSession:
    return ClassSession.from_row(store.insert(CLASS_SESSIONS, session.to_row()))


def get_session(store: DataStore, session_id: str) -> Optional[ClassSession]:
    row = store.select_one(CLASS_SESSIONS, {"id": session_id})
    return ClassSession.from_row(row) if row else None


def load_sessions(
    store: DataStore,
    first: date,
    last: date,
    class_id: Optional[str] = None,
) -> list[ClassSession]:
    filters = {"session_date": ("gte", first)}
    if class_id is not None:
        filters["class_id"] = str(class_id)
    rows = store.select(CLASS_SESSIONS, filters, order_by="session_date")
    # Two bounds on one column do not fit a dict filter; trim the upper end here
    out = [ClassSession.from_row(r) for r in rows]
    out = [s for s in out if s.session_date and s.session_date <= last]
    out.sort(key=lambda s: (s.session_date, s.session_time))
    return out


def load_sessions_df(store: DataStore, first: date, last: date) -> pd.DataFrame:
    sessions = load_sessions(store, first, last)
    if not sessions:
        return pd.DataFrame(columns=HEADERS[CLASS_SESSIONS])
    df = pd.DataFrame([s.to_row() for s in sessions])
    df["session_date_dt"] = pd.to_datetime(df["session_date"], errors="coerce")
    return df
