# src/planboard/tasks/reconciler.py

"""
Merge a bulk-edit result back into the full task collection.

A bulk surface works on a filtered subset (one project, a search result, or
everything), mutates/deletes inside it and hands back the resulting subset.
The caller states which subset it was via BulkScope; it is never inferred.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from ..core.errors import ReconciliationAmbiguity
from .task_models import HOME_CONTEXT_ID, Task


class ScopeKind(str, Enum):
    ALL = "all"
    PROJECT = "project"
    IDS = "ids"


@dataclass(frozen=True, slots=True)
class BulkScope:
    kind: ScopeKind
    context_id: str | None = None
    ids: frozenset[str] = field(default_factory=frozenset)
    label: str = ""

    @classmethod
    def all(cls) -> BulkScope:
        return cls(kind=ScopeKind.ALL, label="all tasks")

    @classmethod
    def project(cls, context_id: str) -> BulkScope:
        if not context_id:
            raise ReconciliationAmbiguity("project scope needs a project id")
        if context_id == HOME_CONTEXT_ID:
            raise ReconciliationAmbiguity(
                "the home view is the aggregate of all tasks; use BulkScope.all()"
            )
        return cls(kind=ScopeKind.PROJECT, context_id=context_id, label=f"project {context_id}")

    @classmethod
    def of_ids(cls, ids: Iterable[str], label: str = "filtered view") -> BulkScope:
        return cls(kind=ScopeKind.IDS, ids=frozenset(ids), label=label)

    def contains(self, task: Task) -> bool:
        if self.kind == ScopeKind.ALL:
            return True
        if self.kind == ScopeKind.PROJECT:
            return task.context_id == self.context_id
        return task.id in self.ids


@dataclass(slots=True)
class ReconcileResult:
    tasks: list[Task]
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)


def reconcile(
    authoritative: Iterable[Task],
    returned: Iterable[Task],
    scope: BulkScope,
) -> ReconcileResult:
    """
    Tasks outside the scope are kept as they are. In-scope tasks survive only
    if they came back, with the returned field values. Returned tasks unknown
    to the collection are appended (create-via-edit).
    """
    returned_list = list(returned)
    returned_by_id: dict[str, Task] = {}
    for t in returned_list:
        if t.id in returned_by_id:
            raise ReconciliationAmbiguity(f"bulk result contains task {t.id} twice")
        returned_by_id[t.id] = t

    result = ReconcileResult(tasks=[])

    if scope.kind == ScopeKind.ALL:
        known = set()
        for t in authoritative:
            known.add(t.id)
            if t.id not in returned_by_id:
                result.deleted.append(t.id)
            elif returned_by_id[t.id] != t:
                result.updated.append(t.id)
        result.tasks = returned_list
        result.created = [t.id for t in returned_list if t.id not in known]
        return result

    known_ids: set[str] = set()
    for t in authoritative:
        known_ids.add(t.id)
        if not scope.contains(t):
            if t.id in returned_by_id:
                raise ReconciliationAmbiguity(
                    f"task {t.id} came back from a bulk edit over {scope.label} but lies outside it"
                )
            result.tasks.append(t)
            continue

        new = returned_by_id.get(t.id)
        if new is None:
            result.deleted.append(t.id)
            continue

        result.tasks.append(new)
        if new != t:
            result.updated.append(t.id)

    for t in returned_list:
        if t.id not in known_ids:
            result.tasks.append(t)
            result.created.append(t.id)

    return result
