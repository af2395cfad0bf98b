"""Get-or-create for persisted class sessions."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List

from studio.errors import UniqueViolation
from studio.models.classes import StudioClass
from studio.models.sessions import ClassSession
from studio.repositories.sessions_repo import find_session, insert_session
from studio.repositories.store import DataStore
from studio.services.recurrence import sessions_for_month
from studio.utils.coerce import normalize_session_time

logger = logging.getLogger(__name__)


def get_or_create_session(
    store: DataStore,
    class_id: str,
    session_date: date,
    session_time: str,
    created_from: str = "manual",
) -> ClassSession:
    """Return the session for ``(class_id, session_date, session_time)``, creating it if needed.

    Check-ins and sales can race to create the same session. The store's
    unique key picks one winner; the loser looks the row up once more and
    returns it. If that second lookup still finds nothing, the original
    conflict is raised. Other store errors propagate untouched.
    """
    session_time = normalize_session_time(session_time)

    existing = find_session(store, class_id, session_date, session_time)
    if existing is not None:
        return existing

    new = ClassSession.create(
        class_id=class_id,
        session_date=session_date,
        session_time=session_time,
        created_from=created_from,
    )
    try:
        return insert_session(store, new)
    except UniqueViolation:
        logger.warning(
            "Lost race creating session %s %s %s; re-reading", class_id, session_date, session_time
        )
        winner = find_session(store, class_id, session_date, session_time)
        if winner is None:
            raise
        return winner


def ensure_month_sessions(
    store: DataStore,
    classes: Iterable[StudioClass],
    month: date,
    created_from: str = "manual",
) -> List[ClassSession]:
    """Materialize every projected session of the month (idempotent)."""
    out: List[ClassSession] = []
    for cls in classes:
        for occ in sessions_for_month(cls, month):
            out.append(get_or_create_session(store, cls.id, occ.date, occ.time, created_from))
    out.sort(key=lambda s: (s.session_date, s.session_time, s.class_id))
    return out
