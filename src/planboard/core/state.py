# src/planboard/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..ai.cache import ResponseCache
from ..ai.planner import AIPlanner
from ..projects.document_store import DocumentStore
from ..projects.project_store import ProjectStore
from ..sync.sync_engine import SyncEngine
from ..tasks.task_models import HOME_CONTEXT_ID
from ..tasks.task_store import TaskStore
from .ports import RemoteStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    task_store: TaskStore
    projects: ProjectStore
    documents: DocumentStore
    sync: SyncEngine
    cache: ResponseCache
    planner: AIPlanner
    remote: RemoteStore | None = None

    # Caller context (which board the console is looking at). Not persisted.
    active_context_id: str = HOME_CONTEXT_ID
    chat_histories: dict[str, list[dict[str, str]]] = field(default_factory=dict)
    last_suggestions: list[dict[str, Any]] = field(default_factory=list)
