# src/planboard/tasks/status.py

"""
Task lifecycle transitions.

Kanban semantics: every state is reachable from every other one, so nothing
here raises. The only rule is that dropping a task onto its own column is a
no-op (drop() returns None).
"""

from __future__ import annotations

from dataclasses import replace

from .task_models import Task, TaskStatus

WORKFLOW: tuple[TaskStatus, ...] = (
    TaskStatus.DRAFT,
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.REVIEW,
    TaskStatus.DONE,
)


def is_completed(status: TaskStatus) -> bool:
    return status == TaskStatus.DONE


def toggle(status: TaskStatus) -> TaskStatus:
    """Single-click checkbox: DONE -> TODO, anything else -> DONE."""
    return TaskStatus.TODO if status == TaskStatus.DONE else TaskStatus.DONE


def advance(status: TaskStatus) -> TaskStatus:
    """Forward workflow button (DRAFT -> TODO -> IN_PROGRESS -> REVIEW -> DONE)."""
    idx = WORKFLOW.index(status)
    if idx + 1 >= len(WORKFLOW):
        return status
    return WORKFLOW[idx + 1]


def reopen(status: TaskStatus) -> TaskStatus:
    return TaskStatus.TODO if status == TaskStatus.DONE else status


def drop(status: TaskStatus, target: TaskStatus) -> TaskStatus | None:
    """Drag-and-drop onto a column. None means "same column, do nothing"."""
    if status == target:
        return None
    return target


def apply_status(task: Task, status: TaskStatus) -> Task:
    return replace(task, status=status, completed=is_completed(status))
