"""
Domain-specific exception hierarchy for the clinic scheduler.
"""

from __future__ import annotations

from typing import Sequence


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InvalidIntervalError(SchedulingError, ValueError):
    """Raised when an interval or duration is malformed (start >= end, duration <= 0)."""


class ConflictError(SchedulingError):
    """
    Raised by the booking writer when a slot was taken after it was computed.

    The caller is expected to re-run slot selection against fresh data.
    """

    def __init__(self, message: str, conflicts: Sequence = ()):
        super().__init__(message)
        self.conflicts = tuple(conflicts)


class NotFoundError(SchedulingError):
    """Raised when a referenced therapist, therapy or patient does not exist."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class SnapshotError(SchedulingError):
    """Raised when snapshot data cannot be loaded or parsed."""
