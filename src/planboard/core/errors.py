# src/planboard/core/errors.py

"""
Error taxonomy.

Validation errors fail fast on the mutation path. Remote-layer errors are
captured by the sync engine and only show up as dirty/error bookkeeping.
"""

from __future__ import annotations


class PlanboardError(Exception):
    """Base class for all planboard errors."""


class ValidationError(PlanboardError):
    """Malformed mutation (empty title, unknown id on update, ...)."""


class NotFoundError(ValidationError):
    def __init__(self, record_id: str, what: str = "task") -> None:
        super().__init__(f"{what} not found: {record_id}")
        self.record_id = record_id


class DuplicateIdError(ValidationError):
    def __init__(self, record_id: str, what: str = "task") -> None:
        super().__init__(f"{what} id already exists: {record_id}")
        self.record_id = record_id


class RemoteUnavailable(PlanboardError):
    """No remote adapter is configured; callers degrade to local-only mode."""


class PersistenceFailure(PlanboardError):
    """A write to a configured remote store failed."""

    def __init__(self, message: str, *, table: str | None = None, record_id: str | None = None) -> None:
        super().__init__(message)
        self.table = table
        self.record_id = record_id


class ReconciliationAmbiguity(PlanboardError):
    """A bulk result cannot be merged unambiguously into the collection."""
