# src/planboard/sync/loader.py

"""
Initial load of the whole collection.

Loaded data replaces the stores without change events, so nothing is marked
dirty and no write goes back out.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any

from ..core.changes import DOCUMENTS_TABLE, FREELANCERS_TABLE, PROJECTS_TABLE, SYNC_TABLES, TASKS_TABLE
from ..core.errors import PersistenceFailure, RemoteUnavailable
from ..tasks.task_models import Freelancer
from .records import (
    document_from_record,
    freelancer_from_record,
    project_from_record,
    task_from_record,
)
from .snapshot import load_snapshot

if TYPE_CHECKING:
    from ..core.state import AppState

logger = logging.getLogger(__name__)


def apply_tables(state: AppState, tables: dict[str, list[dict[str, Any]]]) -> None:
    by_project: dict[str, list[Freelancer]] = defaultdict(list)
    for rec in tables.get(FREELANCERS_TABLE, []):
        f = freelancer_from_record(rec)
        if f.id and f.project_id:
            by_project[f.project_id].append(f)

    projects = []
    for rec in tables.get(PROJECTS_TABLE, []):
        p = project_from_record(rec, tuple(by_project.get(str(rec.get("id")), ())))
        if p.id and p.name:
            projects.append(p)
        else:
            logger.warning("Skipping malformed project row id=%r", rec.get("id"))

    tasks = []
    for rec in tables.get(TASKS_TABLE, []):
        t = task_from_record(rec)
        if t.id and t.title:
            tasks.append(t)
        else:
            logger.warning("Skipping malformed task row id=%r", rec.get("id"))

    documents = [document_from_record(rec) for rec in tables.get(DOCUMENTS_TABLE, [])]

    state.projects.replace_all(projects)
    state.task_store.replace_all(tasks, notify=False)
    state.documents.replace_all(d for d in documents if d.id)
    logger.info(
        "Collection loaded: projects=%d freelancers=%d tasks=%d documents=%d",
        len(projects),
        sum(len(v) for v in by_project.values()),
        len(tasks),
        len(documents),
    )


async def load_remote_state(state: AppState) -> None:
    """Select every table from the remote store and replace local collections."""
    remote = state.remote
    if remote is None:
        raise RemoteUnavailable("no remote store configured")

    tables: dict[str, list[dict[str, Any]]] = {}
    for table in SYNC_TABLES:
        try:
            tables[table] = await remote.select_all(table)
        except PersistenceFailure:
            logger.exception("Initial load failed for table=%s", table)
            raise
    apply_tables(state, tables)


def load_snapshot_state(state: AppState) -> None:
    """Local-only mode: read the JSON snapshot (missing file -> empty collection)."""
    path = getattr(state.settings, "snapshot_path", None)
    if not path:
        return
    apply_tables(state, load_snapshot(path))
