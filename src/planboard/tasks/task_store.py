# src/planboard/tasks/task_store.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace

from ..core.changes import TASKS_TABLE, ChangeKind, ChangeListener, RecordChange
from ..core.errors import DuplicateIdError, NotFoundError, ValidationError
from .scoring import rescore
from .status import is_completed
from .task_models import HOME_CONTEXT_ID, Task

logger = logging.getLogger(__name__)


def normalize_task(task: Task) -> Task:
    """
    Enforce record-level invariants before a task is stored:
    - completed mirrors status == DONE
    - the RICE score matches its (clamped) inputs
    """
    if not task.id or not str(task.id).strip():
        raise ValidationError("task id is required")
    if not task.title or not task.title.strip():
        raise ValidationError("task title is required")

    rice = rescore(task.rice) if task.rice is not None else None
    completed = is_completed(task.status)
    if rice == task.rice and completed == task.completed:
        return task
    return replace(task, rice=rice, completed=completed)


class TaskStore:
    """
    Authoritative in-memory task collection.

    Every public method is synchronous and atomic with respect to the
    collection. Stored records are frozen dataclasses, so nothing handed out
    by get()/query() can be used to mutate the collection behind the store's
    back; edits go through update().

    Listeners are notified after each mutation (the sync engine is one).
    """

    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self._tasks: dict[str, Task] = {}
        self._listeners: list[ChangeListener] = []
        for t in tasks:
            nt = normalize_task(t)
            if nt.id in self._tasks:
                raise DuplicateIdError(nt.id)
            self._tasks[nt.id] = nt
        logger.debug("TaskStore ready total=%s", len(self._tasks))

    # ---- listeners ----

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _emit(self, change: RecordChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Task listener failed kind=%s task_id=%s", change.kind.value, change.record_id)

    # ---- public API ----

    def count(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def all(self) -> list[Task]:
        return list(self._tasks.values())

    def query(self, predicate: Callable[[Task], bool] | None = None) -> list[Task]:
        if predicate is None:
            return list(self._tasks.values())
        return [t for t in self._tasks.values() if predicate(t)]

    def list_by_project(self, context_id: str) -> list[Task]:
        """
        Tasks of one project, most recent first.

        The "home" pseudo-project is the aggregate view over every task.
        """
        if context_id == HOME_CONTEXT_ID:
            items = list(self._tasks.values())
        else:
            items = [t for t in self._tasks.values() if t.context_id == context_id]
        items.sort(key=lambda t: t.created_at, reverse=True)
        return items

    def create(self, task: Task) -> Task:
        nt = normalize_task(task)
        if nt.id in self._tasks:
            raise DuplicateIdError(nt.id)
        self._tasks[nt.id] = nt
        logger.debug("Task created id=%s context=%s status=%s", nt.id, nt.context_id, nt.status.value)
        self._emit(RecordChange(TASKS_TABLE, ChangeKind.CREATED, nt.id, nt))
        return nt

    def update(self, task: Task) -> Task:
        if task.id not in self._tasks:
            raise NotFoundError(task.id)
        nt = normalize_task(task)
        self._tasks[nt.id] = nt
        logger.debug("Task updated id=%s status=%s", nt.id, nt.status.value)
        self._emit(RecordChange(TASKS_TABLE, ChangeKind.UPDATED, nt.id, nt))
        return nt

    def delete(self, task_id: str) -> bool:
        removed = self._tasks.pop(task_id, None)
        if removed is None:
            return False
        logger.debug("Task deleted id=%s", task_id)
        self._emit(RecordChange(TASKS_TABLE, ChangeKind.DELETED, task_id, None))
        return True

    def replace_all(self, tasks: Iterable[Task], *, notify: bool = True) -> None:
        """
        Swap in a whole new collection (reconciled bulk result or initial load).

        All records are validated before anything changes. With notify=True,
        listeners receive one change per created/updated/deleted record.
        """
        new: dict[str, Task] = {}
        for t in tasks:
            nt = normalize_task(t)
            if nt.id in new:
                raise DuplicateIdError(nt.id)
            new[nt.id] = nt

        old = self._tasks
        self._tasks = new

        if not notify:
            return

        for task_id in old:
            if task_id not in new:
                self._emit(RecordChange(TASKS_TABLE, ChangeKind.DELETED, task_id, None))
        for task_id, nt in new.items():
            prev = old.get(task_id)
            if prev is None:
                self._emit(RecordChange(TASKS_TABLE, ChangeKind.CREATED, task_id, nt))
            elif prev != nt:
                self._emit(RecordChange(TASKS_TABLE, ChangeKind.UPDATED, task_id, nt))
