# src/planboard/tasks/task_api.py

"""
Public task operations used by front-ends (console commands, scripts).

All mutations go through state.task_store, which normalizes the record and
notifies the sync engine. Validation errors are raised before anything is
stored; remote failures never surface here.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from ..ai.planner import new_task_id, suggestion_to_task
from ..core.errors import NotFoundError, ValidationError
from ..core.state import AppState
from ..sync.sync_engine import DirtyState
from . import status as status_machine
from .reconciler import BulkScope, ReconcileResult, reconcile
from .scoring import merge_rice
from .task_models import HOME_CONTEXT_ID, Freelancer, Priority, Task, TaskStatus

logger = logging.getLogger(__name__)

# Fields update_task may change. id/created_at are immutable; completed and the
# RICE score are derived.
EDITABLE_FIELDS = frozenset(
    {
        "title",
        "category",
        "priority",
        "status",
        "date",
        "suggested_time",
        "duration",
        "rationale",
        "context_id",
        "assignee_id",
    }
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _require(state: AppState, task_id: str) -> Task:
    task = state.task_store.get(task_id)
    if task is None:
        raise NotFoundError(task_id)
    return task


def _storage_context(state: AppState, context_id: str | None) -> str:
    ctx = context_id or state.active_context_id
    if not ctx or ctx == HOME_CONTEXT_ID:
        raise ValidationError("pick a project first: the home view cannot own tasks")
    return ctx


# ---- status transitions ----


def toggle_status(state: AppState, task_id: str) -> Task:
    """Single-click shortcut: DONE -> TODO, anything else -> DONE."""
    task = _require(state, task_id)
    return state.task_store.update(status_machine.apply_status(task, status_machine.toggle(task.status)))


def set_status(state: AppState, task_id: str, status: TaskStatus | str) -> Task | None:
    """Drag-and-drop onto a column. Dropping on the task's own column is a no-op (None)."""
    task = _require(state, task_id)
    target = status if isinstance(status, TaskStatus) else TaskStatus.from_db(status)
    new_status = status_machine.drop(task.status, target)
    if new_status is None:
        return None
    return state.task_store.update(status_machine.apply_status(task, new_status))


def advance_status(state: AppState, task_id: str) -> Task:
    task = _require(state, task_id)
    new_status = status_machine.advance(task.status)
    if new_status == task.status:
        return task
    return state.task_store.update(status_machine.apply_status(task, new_status))


def reopen(state: AppState, task_id: str) -> Task:
    task = _require(state, task_id)
    new_status = status_machine.reopen(task.status)
    if new_status == task.status:
        return task
    return state.task_store.update(status_machine.apply_status(task, new_status))


def approve_suggestion(state: AppState, task_id: str) -> Task:
    """Approve a DRAFT task (AI suggestion awaiting review): DRAFT -> TODO."""
    task = _require(state, task_id)
    if task.status != TaskStatus.DRAFT:
        logger.debug("approve_suggestion: task %s is %s, nothing to approve", task_id, task.status.value)
        return task
    return advance_status(state, task_id)


def accept_suggestion(
    state: AppState,
    suggestion: Mapping[str, Any],
    context_id: str | None = None,
    *,
    draft: bool = False,
) -> Task:
    """Turn a generated suggestion into a stored task (TODO, or DRAFT for later approval)."""
    ctx = _storage_context(state, context_id)
    status = TaskStatus.DRAFT if draft else TaskStatus.TODO
    task = suggestion_to_task(suggestion, ctx, status=status)
    if not task.title:
        raise ValidationError("suggestion has no title")
    return state.task_store.create(task)


# ---- field edits ----


def update_rice(state: AppState, task_id: str, **partial: Any) -> Task:
    """
    Change any subset of reach/impact/confidence/effort.

    The other inputs are kept and the score is recomputed from the merged inputs.
    """
    task = _require(state, task_id)
    try:
        rice = merge_rice(task.rice, **partial)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    return state.task_store.update(replace(task, rice=rice))


def update_task(state: AppState, task_id: str, **changes: Any) -> Task:
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"not editable: {', '.join(sorted(unknown))}")

    task = _require(state, task_id)
    if "priority" in changes and not isinstance(changes["priority"], Priority):
        changes["priority"] = Priority.from_db(changes["priority"])
    if "status" in changes and not isinstance(changes["status"], TaskStatus):
        changes["status"] = TaskStatus.from_db(changes["status"])
    if changes.get("context_id") == HOME_CONTEXT_ID:
        raise ValidationError("tasks cannot be moved to the home view")

    return state.task_store.update(replace(task, **changes))


# ---- create / delete ----


def create_task(
    state: AppState,
    title: str,
    *,
    context_id: str | None = None,
    category: str = "Quick Win",
    priority: Priority | str = Priority.MEDIUM,
    status: TaskStatus | str = TaskStatus.TODO,
    date: str | None = None,
    suggested_time: str = "09:00 AM",
    duration: str = "1h",
    rationale: str = "",
    assignee_id: str | None = None,
    task_id: str | None = None,
) -> Task:
    ctx = _storage_context(state, context_id)
    st = status if isinstance(status, TaskStatus) else TaskStatus.from_db(status)
    task = Task(
        id=task_id or new_task_id(),
        title=(title or "").strip(),
        category=category,
        priority=priority if isinstance(priority, Priority) else Priority.from_db(priority),
        status=st,
        date=date or time.strftime("%Y-%m-%d"),
        suggested_time=suggested_time,
        duration=duration,
        rationale=rationale,
        context_id=ctx,
        completed=status_machine.is_completed(st),
        created_at=_now_ms(),
        assignee_id=assignee_id,
    )
    return state.task_store.create(task)


def delete_task(state: AppState, task_id: str) -> bool:
    return state.task_store.delete(task_id)


# ---- bulk ----


def bulk_apply(state: AppState, subset: list[Task], scope: BulkScope) -> ReconcileResult:
    """Merge an edited subset back; tasks outside the scope are never touched."""
    result = reconcile(state.task_store.all(), subset, scope)
    state.task_store.replace_all(result.tasks)
    logger.info(
        "Bulk apply scope=%s updated=%d deleted=%d created=%d",
        scope.label,
        len(result.updated),
        len(result.deleted),
        len(result.created),
    )
    return result


def import_tasks_json(state: AppState, text: str, context_id: str | None = None) -> list[Task]:
    """
    Quick-add import: a JSON object or array of task-like objects.

    Accepted aliases: summary/name -> title, description -> rationale,
    time -> suggested time, assignee -> assignee id. Everything is validated
    before the first task is stored.
    """
    ctx = _storage_context(state, context_id)
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ValidationError(f"invalid JSON: {e}") from e

    items = data if isinstance(data, list) else [data]
    tasks: list[Task] = []
    now = _now_ms()
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"item {i} is not an object")
        task = suggestion_to_task(
            item,
            ctx,
            status=TaskStatus.from_db(item.get("status")),
            # distinct timestamps keep the JSON order in newest-first listings
            now_ms=now - i,
        )
        if not task.title:
            raise ValidationError(f"item {i} has no title")
        tasks.append(task)

    created = [state.task_store.create(t) for t in tasks]
    logger.info("Imported %d task(s) into %s", len(created), ctx)
    return created


# ---- sync ----


async def save_now(state: AppState) -> bool:
    return await state.sync.save_now()


def get_dirty_state(state: AppState) -> DirtyState:
    return state.sync.get_dirty_state()


# ---- views ----


def tasks_for_view(
    state: AppState,
    context_id: str | None = None,
    *,
    status: TaskStatus | None = None,
    search: str | None = None,
) -> list[Task]:
    """Tasks of one project (or all, for home), newest first, optionally filtered."""
    items = state.task_store.list_by_project(context_id or state.active_context_id)
    if status is not None:
        items = [t for t in items if t.status == status]
    if search:
        needle = search.strip().lower()
        items = [t for t in items if needle in t.title.lower() or needle in t.rationale.lower()]
    return items


def scope_for_view(context_id: str, view: list[Task], *, filtered: bool = False) -> BulkScope:
    """The BulkScope matching what a bulk surface was given."""
    if filtered:
        return BulkScope.of_ids((t.id for t in view), label="filtered view")
    if context_id == HOME_CONTEXT_ID:
        return BulkScope.all()
    return BulkScope.project(context_id)


def resolve_assignee(state: AppState, task: Task) -> Freelancer | None:
    """Soft reference: a deleted freelancer resolves to None; the task keeps its id."""
    return state.projects.find_freelancer(task.assignee_id)
