# src/planboard/sync/records.py

"""
Mapping between in-memory models and flat remote records.

Remote column names are snake_case. The RICE block is stored flattened
(rice_reach, rice_impact, rice_confidence, rice_effort, rice_score); older rows
holding a nested object in rice_score are still read correctly.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from ..core.changes import DOCUMENTS_TABLE, FREELANCERS_TABLE, PROJECTS_TABLE, TASKS_TABLE
from ..tasks.scoring import build_rice
from ..tasks.status import is_completed
from ..tasks.task_models import (
    Category,
    Document,
    Freelancer,
    Priority,
    Project,
    RiceScore,
    Task,
    TaskStatus,
)

logger = logging.getLogger(__name__)

Record = dict[str, Any]

_RICE_KEYS = ("reach", "impact", "confidence", "effort")


def _str(v: Any, default: str = "") -> str:
    return default if v is None else str(v)


def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v)
    return s if s.strip() else None


def _int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _str_tuple(v: Any) -> tuple[str, ...]:
    if not isinstance(v, (list, tuple)):
        return ()
    return tuple(str(x) for x in v if x is not None)


# ---- tasks ----


def task_to_record(task: Task) -> Record:
    rec: Record = {
        "id": task.id,
        "title": task.title,
        "category": task.category,
        "priority": task.priority.value,
        "status": task.status.value,
        "date": task.date,
        "suggested_time": task.suggested_time,
        "duration": task.duration,
        "rationale": task.rationale,
        "project_id": task.context_id,
        "completed": task.completed,
        "created_at": task.created_at,
        "freelancer_id": task.assignee_id,
        "rice_reach": None,
        "rice_impact": None,
        "rice_confidence": None,
        "rice_effort": None,
        "rice_score": None,
    }
    if task.rice is not None:
        rec.update(
            rice_reach=task.rice.reach,
            rice_impact=task.rice.impact,
            rice_confidence=task.rice.confidence,
            rice_effort=task.rice.effort,
            rice_score=task.rice.score,
        )
    return rec


def _rice_from_record(rec: Record) -> RiceScore | None:
    nested = rec.get("rice_score")
    if isinstance(nested, dict):
        # legacy layout: the whole block lives in one JSON column
        if not any(nested.get(k) is not None for k in _RICE_KEYS):
            return None
        return build_rice(*(nested.get(k) for k in _RICE_KEYS))

    flat = [rec.get(f"rice_{k}") for k in _RICE_KEYS]
    if all(v is None for v in flat):
        return None
    return build_rice(*flat)


def task_from_record(rec: Record) -> Task:
    status = TaskStatus.from_db(rec.get("status"))
    return Task(
        id=_str(rec.get("id")),
        title=_str(rec.get("title")),
        category=_str(rec.get("category")),
        priority=Priority.from_db(rec.get("priority")),
        status=status,
        date=_str(rec.get("date")),
        suggested_time=_str(rec.get("suggested_time")),
        duration=_str(rec.get("duration")),
        rationale=_str(rec.get("rationale")),
        context_id=_str(rec.get("project_id") or rec.get("context_id")),
        completed=is_completed(status),
        created_at=_int(rec.get("created_at"), int(time.time() * 1000)),
        assignee_id=_opt_str(rec.get("freelancer_id")),
        rice=_rice_from_record(rec),
    )


# ---- projects / freelancers ----


def project_to_record(project: Project) -> Record:
    # freelancers live in their own table
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "icon": project.icon,
        "color": project.color,
        "group_name": project.group,
        "strategic_goals": list(project.strategic_goals),
        "tech_stack": list(project.tech_stack),
        "key_features": list(project.key_features),
        "target_audience": project.target_audience,
        "current_phase": project.current_phase,
        "parent_id": project.parent_id,
        "sector": project.sector,
        "custom_categories": [
            {"id": c.id, "name": c.name, "color": c.color} for c in project.categories
        ],
    }


def project_from_record(rec: Record, freelancers: tuple[Freelancer, ...] = ()) -> Project:
    cats: list[Category] = []
    for c in rec.get("custom_categories") or []:
        if isinstance(c, dict) and c.get("id") and c.get("name"):
            cats.append(Category(id=str(c["id"]), name=str(c["name"]), color=_str(c.get("color"), "bg-slate-500")))
    return Project(
        id=_str(rec.get("id")),
        name=_str(rec.get("name")),
        description=_str(rec.get("description")),
        icon=_str(rec.get("icon")),
        color=_str(rec.get("color")),
        group=_opt_str(rec.get("group_name")),
        strategic_goals=_str_tuple(rec.get("strategic_goals")),
        tech_stack=_str_tuple(rec.get("tech_stack")),
        key_features=_str_tuple(rec.get("key_features")),
        target_audience=_opt_str(rec.get("target_audience")),
        current_phase=_opt_str(rec.get("current_phase")),
        parent_id=_opt_str(rec.get("parent_id")),
        sector=_opt_str(rec.get("sector")),
        categories=tuple(cats),
        freelancers=freelancers,
    )


def freelancer_to_record(freelancer: Freelancer) -> Record:
    return {
        "id": freelancer.id,
        "name": freelancer.name,
        "role": freelancer.role,
        "sector": freelancer.sector,
        "status": freelancer.status,
        "rate": freelancer.rate,
        "contact": freelancer.contact,
        "project_id": freelancer.project_id,
    }


def freelancer_from_record(rec: Record) -> Freelancer:
    return Freelancer(
        id=_str(rec.get("id")),
        name=_str(rec.get("name")),
        project_id=_str(rec.get("project_id")),
        role=_str(rec.get("role")),
        sector=_str(rec.get("sector"), "Other"),
        status=_str(rec.get("status"), "Active"),
        rate=_opt_str(rec.get("rate")),
        contact=_opt_str(rec.get("contact")),
    )


# ---- documents ----


def document_to_record(doc: Document) -> Record:
    return {
        "id": doc.id,
        "title": doc.title,
        "type": doc.type,
        "content": doc.content,
        "context_id": doc.context_id,
        "created_at": doc.created_at,
        "updated_at": doc.updated_at,
    }


def document_from_record(rec: Record) -> Document:
    updated = rec.get("updated_at")
    return Document(
        id=_str(rec.get("id")),
        title=_str(rec.get("title")),
        context_id=_str(rec.get("context_id")),
        type=_str(rec.get("type"), "prd"),
        content=rec.get("content"),
        created_at=_int(rec.get("created_at")),
        updated_at=_int(updated) if updated is not None else None,
    )


_TO_RECORD = {
    TASKS_TABLE: task_to_record,
    PROJECTS_TABLE: project_to_record,
    FREELANCERS_TABLE: freelancer_to_record,
    DOCUMENTS_TABLE: document_to_record,
}


def to_record(table: str, obj: Any) -> Record:
    try:
        fn = _TO_RECORD[table]
    except KeyError:
        raise ValueError(f"unknown table: {table}") from None
    return fn(obj)
