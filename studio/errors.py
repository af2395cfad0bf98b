"""Exceptions raised by the studio library."""

from __future__ import annotations

from typing import Any, Optional


class StudioError(Exception):
    """Base class for every error raised on purpose by this package."""


class StoreError(StudioError):
    """The data store could not complete a query or command."""


class UniqueViolation(StoreError):
    """An insert collided with an existing row on a unique key."""

    def __init__(self, collection: str, key: Optional[tuple[Any, ...]] = None, message: str | None = None):
        self.collection = collection
        self.key = key
        super().__init__(message or f"Duplicate key {key!r} in {collection}")


class NotFoundError(StoreError):
    def __init__(self, collection: str, row_id: Any):
        self.collection = collection
        self.row_id = row_id
        super().__init__(f"No row {row_id!r} in {collection}")


class CheckInError(StudioError):
    """A check-in was refused (not enrolled, no credits left, ...)."""


class PaymentError(StudioError):
    """A payment batch could not be built or moved to the requested status."""


class NotEnrolledError(CheckInError):
    """The user holds no enrollment for the session being checked in."""
