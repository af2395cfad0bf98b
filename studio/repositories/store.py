"""Generic query/command interface over named collections.

Rows are plain dicts. Filters map a column to either a value (equality)
or an ``(op, value)`` tuple where ``op`` is one of ``"eq"``, ``"gte"``,
``"lte"``, ``"in"`` or ``"is"`` (``("is", None)`` matches null/blank).
Dates and datetimes in filters compare as ISO strings.
"""

from __future__ import annotations

import copy
import threading
import uuid
from datetime import date, datetime
from typing import Any, Iterable, Optional, Protocol

from studio.config import UNIQUE_KEYS
from studio.errors import NotFoundError, StoreError, UniqueViolation

Filters = dict[str, Any]

OPERATORS = ("eq", "gte", "lte", "in", "is")


class DataStore(Protocol):
    def select(
        self,
        collection: str,
        filters: Optional[Filters] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]: ...

    def select_one(self, collection: str, filters: Filters) -> Optional[dict]: ...

    def insert(self, collection: str, row: dict) -> dict: ...

    def update(self, collection: str, row_id: str, changes: dict) -> dict: ...


def normalize_value(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if value == "":
        return None
    return value


def split_filter(spec: Any) -> tuple[str, Any]:
    if isinstance(spec, tuple) and len(spec) == 2 and spec[0] in OPERATORS:
        return spec
    return "eq", spec


def _matches(row: dict, filters: Filters) -> bool:
    for column, spec in filters.items():
        op, expected = split_filter(spec)
        actual = normalize_value(row.get(column))
        if op == "is":
            if (actual is None) != (expected is None):
                return False
            continue
        if op == "in":
            if actual not in {normalize_value(v) for v in expected}:
                return False
            continue
        expected = normalize_value(expected)
        if actual is None:
            return False
        if op == "eq" and actual != expected:
            return False
        if op == "gte" and actual < expected:
            return False
        if op == "lte" and actual > expected:
            return False
    return True


def apply_query(
    rows: Iterable[dict],
    filters: Optional[Filters] = None,
    order_by: Optional[str] = None,
    descending: bool = False,
    limit: Optional[int] = None,
) -> list[dict]:
    """Filter, order and limit rows in Python (for stores without a query engine)."""
    out = [r for r in rows if _matches(r, filters or {})]
    if order_by:
        # Nulls sort last in either direction
        present = [r for r in out if normalize_value(r.get(order_by)) is not None]
        missing = [r for r in out if normalize_value(r.get(order_by)) is None]
        present.sort(key=lambda r: normalize_value(r.get(order_by)), reverse=descending)
        out = present + missing
    if limit is not None:
        out = out[:limit]
    return out


def unique_key(collection: str, row: dict) -> Optional[tuple]:
    cols = UNIQUE_KEYS.get(collection)
    if not cols:
        return None
    return tuple(normalize_value(row.get(c)) for c in cols)


def new_row_id() -> str:
    return str(uuid.uuid4())


class MemoryStore:
    """In-process store with the same unique keys as the hosted schema.

    Safe to share between threads; every call takes the store lock.
    """

    def __init__(self, data: Optional[dict[str, list[dict]]] = None) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, list[dict]] = {}
        for collection, rows in (data or {}).items():
            for row in rows:
                self.insert(collection, row)

    def select(self, collection, filters=None, *, order_by=None, descending=False, limit=None):
        with self._lock:
            rows = self._data.get(collection, [])
            return copy.deepcopy(apply_query(rows, filters, order_by, descending, limit))

    def select_one(self, collection, filters):
        rows = self.select(collection, filters, limit=1)
        return rows[0] if rows else None

    def insert(self, collection, row):
        with self._lock:
            rows = self._data.setdefault(collection, [])
            new = {k: normalize_value(v) for k, v in row.items()}
            new.setdefault("id", None)
            if new["id"] is None:
                new["id"] = new_row_id()
            if any(r["id"] == new["id"] for r in rows):
                raise UniqueViolation(collection, (new["id"],))
            key = unique_key(collection, new)
            if key is not None and any(unique_key(collection, r) == key for r in rows):
                raise UniqueViolation(collection, key)
            rows.append(new)
            return copy.deepcopy(new)

    def update(self, collection, row_id, changes):
        with self._lock:
            for row in self._data.get(collection, []):
                if row["id"] == row_id:
                    row.update({k: normalize_value(v) for k, v in changes.items()})
                    return copy.deepcopy(row)
        raise NotFoundError(collection, row_id)

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._data.get(collection, []))


__all__ = [
    "DataStore",
    "MemoryStore",
    "StoreError",
    "UniqueViolation",
    "apply_query",
    "new_row_id",
    "normalize_value",
    "split_filter",
    "unique_key",
]
