# src/planboard/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

HOME_CONTEXT_ID = "home"


class TaskStatus(StrEnum):
    """
    Task lifecycle status (kanban columns).

    Values match what the remote store holds, so records round-trip unchanged.
    """

    DRAFT = "Draft"
    TODO = "Todo"
    IN_PROGRESS = "In Progress"
    REVIEW = "Review"
    DONE = "Done"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            pass
        key = str(raw).strip().replace("-", "_").replace(" ", "_").upper()
        try:
            return cls[key]
        except KeyError:
            return cls.TODO


class Priority(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        for p in cls:
            if p.value.lower() == str(raw).strip().lower():
                return p
        return cls.MEDIUM


@dataclass(frozen=True, slots=True)
class RiceScore:
    reach: int
    impact: float
    confidence: float
    effort: float
    score: float


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    category: str
    priority: Priority
    status: TaskStatus
    date: str  # YYYY-MM-DD
    suggested_time: str
    duration: str
    rationale: str
    context_id: str
    completed: bool
    created_at: int  # epoch milliseconds

    assignee_id: str | None = None
    rice: RiceScore | None = None


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    name: str
    color: str = "bg-slate-500"


@dataclass(frozen=True, slots=True)
class Freelancer:
    id: str
    name: str
    project_id: str
    role: str = ""
    sector: str = "Other"
    status: str = "Active"
    rate: str | None = None
    contact: str | None = None


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    name: str
    description: str = ""
    icon: str = ""
    color: str = ""
    group: str | None = None
    strategic_goals: tuple[str, ...] = ()
    tech_stack: tuple[str, ...] = ()
    key_features: tuple[str, ...] = ()
    target_audience: str | None = None
    current_phase: str | None = None
    parent_id: str | None = None
    sector: str | None = None
    categories: tuple[Category, ...] = ()
    freelancers: tuple[Freelancer, ...] = ()


@dataclass(frozen=True, slots=True)
class Document:
    id: str
    title: str
    context_id: str
    type: str
    content: Any = field(default=None)
    created_at: int = 0
    updated_at: int | None = None
