# src/planboard/core/changes.py

"""Change events emitted by the in-memory stores after each mutation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

TASKS_TABLE = "tasks"
PROJECTS_TABLE = "projects"
FREELANCERS_TABLE = "freelancers"
DOCUMENTS_TABLE = "documents"

# Order matters for batch persistence: parents before children.
SYNC_TABLES: tuple[str, ...] = (PROJECTS_TABLE, FREELANCERS_TABLE, TASKS_TABLE, DOCUMENTS_TABLE)


class ChangeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(slots=True, frozen=True)
class RecordChange:
    table: str
    kind: ChangeKind
    record_id: str
    record: Any | None  # None for deletions

    @property
    def key(self) -> tuple[str, str]:
        return (self.table, self.record_id)


ChangeListener = Callable[[RecordChange], None]
