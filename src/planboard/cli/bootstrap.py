# src/planboard/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (remote store, generator, cache),
- subscribes the sync engine to every store,
- loads the initial collection and persists it on shutdown.
"""

from __future__ import annotations

import logging

from ..ai.cache import ResponseCache
from ..ai.generator import OpenAIGenerator
from ..ai.offline import OfflineGenerator
from ..ai.planner import AIPlanner
from ..config import get_settings
from ..core.errors import PersistenceFailure
from ..core.ports import Generator, RemoteStore
from ..core.state import AppState
from ..projects.document_store import DocumentStore
from ..projects.project_store import ProjectStore
from ..sync.loader import load_remote_state, load_snapshot_state
from ..sync.remote import PostgrestRemoteStore
from ..sync.sync_engine import SyncEngine, collect_records
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.cache_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.snapshot_path.parent.mkdir(parents=True, exist_ok=True)


def build_remote(settings) -> RemoteStore | None:
    """PostgREST adapter when URL + key are configured; None means local-only mode."""
    url = getattr(settings, "remote_url", None)
    key = getattr(settings, "remote_api_key", None)
    if not url or not key:
        logger.info("No remote store configured; running local-only.")
        return None
    return PostgrestRemoteStore(url, key, timeout_seconds=float(getattr(settings, "remote_timeout_seconds", 10.0)))


def build_generator(settings) -> Generator:
    try:
        return OpenAIGenerator(
            api_key=getattr(settings, "openai_api_key", None) or "",
            base_url=getattr(settings, "openai_base_url", None),
            models=list(getattr(settings, "llm_models", []) or []),
        )
    except ValueError as e:
        # Fallback for local runs without an API key.
        logger.info("AI generation offline: %s", e)
        return OfflineGenerator()


def create_initial_state(
    *,
    settings=None,
    remote: RemoteStore | None = None,
    generator: Generator | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    remote/generator can be injected (tests); otherwise they are built from settings.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if remote is None:
        remote = build_remote(settings)
    if generator is None:
        generator = build_generator(settings)

    task_store = TaskStore()
    projects = ProjectStore()
    documents = DocumentStore()

    sync = SyncEngine(
        remote,
        lambda: collect_records(task_store, projects, documents),
        autosave_delay_seconds=float(getattr(settings, "autosave_delay_seconds", 3.0)),
        snapshot_path=None if remote is not None else settings.snapshot_path,
    )
    task_store.subscribe(sync.on_change)
    projects.subscribe(sync.on_change)
    documents.subscribe(sync.on_change)

    cache = ResponseCache(settings.cache_db_path)

    return AppState(
        settings=settings,
        task_store=task_store,
        projects=projects,
        documents=documents,
        sync=sync,
        cache=cache,
        planner=AIPlanner(generator, cache),
        remote=remote,
    )


async def load_initial_state(state: AppState) -> None:
    if state.remote is None:
        load_snapshot_state(state)
        return
    try:
        await load_remote_state(state)
    except PersistenceFailure as e:
        # a batch save only upserts and replays explicit deletes, so remote rows survive
        logger.error("Could not load from the remote store (%s); starting with an empty collection.", e)


async def shutdown_state(state: AppState) -> None:
    """Final save of unsaved changes, then release resources."""
    sync = state.sync
    await sync.flush()
    if sync.is_dirty:
        logger.info("Unsaved changes at shutdown; saving.")
        if not await sync.save_now():
            logger.error("Final save failed: %s", sync.get_dirty_state().last_error)
    sync.close()

    aclose = getattr(state.remote, "aclose", None)
    if aclose is not None:
        await aclose()
