# src/planboard/ai/planner.py

"""
AI planner: every generation goes through the response cache first.

The generator (SDK call) and the SQLite cache are blocking, so both run via
asyncio.to_thread and never block the event loop. A None result means
"nothing generated"; it is returned as an empty value and never cached.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from ..core.ports import Generator
from ..tasks.scoring import build_rice
from ..tasks.task_models import Priority, Project, Task, TaskStatus
from . import prompts
from .cache import ResponseCache, fingerprint, tasks_fingerprint

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Quick Win"
DEFAULT_TIME = "09:00 AM"
DEFAULT_DURATION = "1h"


def _project_inputs(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "strategic_goals": list(project.strategic_goals),
        "current_phase": project.current_phase,
        "tech_stack": list(project.tech_stack),
        "key_features": list(project.key_features),
        "target_audience": project.target_audience,
    }


def _task_inputs(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "context_id": task.context_id,
        "date": task.date,
        "suggested_time": task.suggested_time,
        "status": task.status.value,
    }


def new_task_id() -> str:
    return uuid.uuid4().hex[:12]


def suggestion_to_task(
    suggestion: Mapping[str, Any],
    context_id: str,
    *,
    status: TaskStatus = TaskStatus.TODO,
    task_id: str | None = None,
    now_ms: int | None = None,
) -> Task:
    """Build a Task from a generated (or imported) suggestion dict, filling the usual defaults."""

    def pick(*keys: str, default: str = "") -> str:
        for k in keys:
            v = suggestion.get(k)
            if v is not None and str(v).strip():
                return str(v).strip()
        return default

    rice = None
    raw_rice = suggestion.get("rice") or suggestion.get("riceScore")
    if isinstance(raw_rice, Mapping):
        rice = build_rice(
            raw_rice.get("reach"), raw_rice.get("impact"), raw_rice.get("confidence"), raw_rice.get("effort")
        )

    return Task(
        id=task_id or new_task_id(),
        title=pick("title", "summary", "name"),
        category=pick("category", default=DEFAULT_CATEGORY),
        priority=Priority.from_db(suggestion.get("priority")),
        status=status,
        date=pick("date", default=date.today().isoformat()),
        suggested_time=pick("suggestedTime", "suggested_time", "time", default=DEFAULT_TIME),
        duration=pick("duration", default=DEFAULT_DURATION),
        rationale=pick("rationale", "description"),
        context_id=context_id,
        completed=status == TaskStatus.DONE,
        created_at=now_ms if now_ms is not None else int(time.time() * 1000),
        assignee_id=pick("freelancerId", "freelancer_id", "assignee", "assignee_id") or None,
        rice=rice,
    )


class AIPlanner:
    def __init__(self, generator: Generator, cache: ResponseCache) -> None:
        self._generator = generator
        self._cache = cache

    async def _cached(self, kind: str, fp: str, inputs: dict[str, Any]) -> Any | None:
        hit = await asyncio.to_thread(self._cache.get, fp)
        if hit is not None:
            logger.debug("AI cache hit kind=%s", kind)
            return hit

        logger.info("AI cache miss kind=%s; generating", kind)
        value = await asyncio.to_thread(self._generator.generate, kind, inputs)
        if value is None:
            logger.info("AI generation kind=%s produced nothing", kind)
            return None
        await asyncio.to_thread(self._cache.put, fp, value)
        return value

    async def suggest_tasks(self, project: Project, prompt: str | None = None) -> list[dict[str, Any]]:
        fp = fingerprint(prompts.KIND_TASKS, project=project.name, prompt=prompt or "")
        inputs = {"project": _project_inputs(project), "prompt": prompt or ""}
        return list(await self._cached(prompts.KIND_TASKS, fp, inputs) or [])

    async def parse_quick_task(self, text: str, project_name: str) -> list[dict[str, Any]]:
        fp = fingerprint(prompts.KIND_QUICK_TASK, text=text, project=project_name)
        inputs = {"text": text, "project_name": project_name, "today": date.today().isoformat()}
        return list(await self._cached(prompts.KIND_QUICK_TASK, fp, inputs) or [])

    async def analyze_portfolio(self, tasks: Iterable[Task]) -> dict[str, Any] | None:
        items = list(tasks)
        fp = fingerprint(prompts.KIND_GLOBAL_ANALYSIS, tasks=tasks_fingerprint(items))
        inputs = {"tasks": [_task_inputs(t) for t in items]}
        return await self._cached(prompts.KIND_GLOBAL_ANALYSIS, fp, inputs)

    async def chat_reply(self, project: Project, history: list[dict[str, str]], message: str) -> str | None:
        fp = fingerprint(prompts.KIND_CHAT, project=project.name, history=history, message=message)
        inputs = {"project": _project_inputs(project), "history": history, "message": message}
        return await self._cached(prompts.KIND_CHAT, fp, inputs)

    async def draft_document(self, project: Project, title: str, description: str) -> dict[str, Any] | None:
        fp = fingerprint(prompts.KIND_PRD, project=project.name, title=title, description=description)
        inputs = {"project": _project_inputs(project), "title": title, "description": description}
        return await self._cached(prompts.KIND_PRD, fp, inputs)

    async def discovery_artifact(self, project: Project, artifact_type: str, focus: str) -> dict[str, Any] | None:
        if artifact_type not in {"Interview", "Experiment"}:
            raise ValueError(f"unknown discovery artifact type: {artifact_type}")
        fp = fingerprint(prompts.KIND_DISCOVERY, project=project.id, type=artifact_type, focus=focus)
        inputs = {"project": _project_inputs(project), "type": artifact_type, "focus": focus}
        return await self._cached(prompts.KIND_DISCOVERY, fp, inputs)
