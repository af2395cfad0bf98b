"""Postgres-backed store (Supabase or any Postgres with the studio tables)."""

from __future__ import annotations

import logging
from typing import Callable, Optional

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from studio.config import HEADERS, JSON_COLUMNS, UNIQUE_KEYS
from studio.errors import NotFoundError, StoreError, UniqueViolation
from studio.repositories.store import normalize_value, split_filter

logger = logging.getLogger(__name__)

_COMPARATORS = {"eq": "=", "gte": ">=", "lte": "<="}


def _check_collection(collection: str) -> None:
    # Table names are interpolated as identifiers; only known ones go through
    if collection not in HEADERS:
        raise StoreError(f"Unknown collection: {collection}")


def _adapt(column: str, value):
    if column in JSON_COLUMNS and value is not None:
        return Jsonb(value)
    return normalize_value(value)


def build_where(filters: Optional[dict]) -> tuple[sql.Composable, list]:
    clauses: list[sql.Composable] = []
    params: list = []
    for column, spec in (filters or {}).items():
        op, value = split_filter(spec)
        ident = sql.Identifier(column)
        if op == "is":
            clauses.append(sql.SQL("{} IS NULL" if value is None else "{} IS NOT NULL").format(ident))
        elif op == "in":
            clauses.append(sql.SQL("{} = ANY(%s)").format(ident))
            params.append([normalize_value(v) for v in value])
        else:
            clauses.append(sql.SQL("{} " + _COMPARATORS[op] + " %s").format(ident))
            params.append(normalize_value(value))
    if not clauses:
        return sql.SQL(""), params
    return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses), params


class PostgresStore:
    """Runs each call in its own connection and transaction.

    The ``class_sessions`` table must carry the unique constraint on
    ``(class_id, session_date, session_time)``; a violation surfaces as
    :class:`studio.errors.UniqueViolation`.
    """

    def __init__(self, dsn: str | None = None, *, connect: Callable | None = None) -> None:
        if connect is None:
            if not dsn:
                raise StoreError("DATABASE_URL is not configured")
            connect = lambda: psycopg.connect(dsn, row_factory=dict_row, connect_timeout=10)  # noqa: E731
        self._connect = connect

    def _execute(self, collection: str, query: sql.Composable, params: list, *, key=None) -> list[dict]:
        try:
            with self._connect() as con:
                with con.cursor() as cur:
                    cur.execute(query, params)
                    rows = cur.fetchall() if cur.description else []
        except psycopg.errors.UniqueViolation as exc:
            raise UniqueViolation(collection, key, str(exc)) from exc
        except psycopg.Error as exc:
            raise StoreError(f"{collection}: {exc}") from exc
        return [dict(r) for r in rows]

    def select(self, collection, filters=None, *, order_by=None, descending=False, limit=None):
        _check_collection(collection)
        where, params = build_where(filters)
        query = sql.SQL("SELECT * FROM {}").format(sql.Identifier(collection)) + where
        if order_by:
            direction = sql.SQL(" DESC NULLS LAST" if descending else " ASC NULLS LAST")
            query += sql.SQL(" ORDER BY {}").format(sql.Identifier(order_by)) + direction
        if limit is not None:
            query += sql.SQL(" LIMIT %s")
            params.append(int(limit))
        return self._execute(collection, query, params)

    def select_one(self, collection, filters):
        rows = self.select(collection, filters, limit=1)
        return rows[0] if rows else None

    def insert(self, collection, row):
        _check_collection(collection)
        # Let the database fill the id when the caller has none
        cols = [c for c in row if not (c == "id" and not row[c])]
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            sql.Identifier(collection),
            sql.SQL(", ").join(sql.Identifier(c) for c in cols),
            sql.SQL(", ").join(sql.Placeholder() for _ in cols),
        )
        key = tuple(normalize_value(row.get(c)) for c in UNIQUE_KEYS.get(collection, ())) or None
        rows = self._execute(collection, query, [_adapt(c, row[c]) for c in cols], key=key)
        return rows[0]

    def update(self, collection, row_id, changes):
        _check_collection(collection)
        if not changes:
            raise StoreError(f"Nothing to update on {collection}/{row_id}")
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(c)) for c in changes
        )
        query = sql.SQL("UPDATE {} SET {} WHERE id = %s RETURNING *").format(
            sql.Identifier(collection), assignments
        )
        params = [_adapt(c, v) for c, v in changes.items()] + [row_id]
        rows = self._execute(collection, query, params)
        if not rows:
            raise NotFoundError(collection, row_id)
        logger.debug("Updated %s/%s: %s", collection, row_id, sorted(changes))
        return rows[0]
