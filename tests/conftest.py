# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from planboard.cli.bootstrap import create_initial_state
from planboard.core.state import AppState
from planboard.tasks.task_models import Freelancer, Project

from .fakes import FakeGenerator, FakeRemoteStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the composition root.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="planboard-test",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        cache_db_path=tmp_path / "ai_cache.sqlite3",
        snapshot_path=tmp_path / "snapshot.json",
        # Autosave off: tests call save_now() explicitly
        autosave_delay_seconds=0,
        # Local-only unless a test injects a remote
        remote_url=None,
        remote_api_key=None,
        remote_timeout_seconds=1.0,
        openai_api_key=None,
        openai_base_url=None,
        llm_models=["test-model"],
    )


@pytest.fixture()
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture()
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


def _with_project(state: AppState) -> AppState:
    state.projects.create(Project(id="p1", name="Project One", strategic_goals=("Ship v1",)))
    state.projects.add_freelancer(Freelancer(id="f1", name="Dana", project_id="p1", role="Designer"))
    state.active_context_id = "p1"
    return state


@pytest.fixture()
def state(settings: SimpleNamespace, generator: FakeGenerator) -> AppState:
    """Local-only AppState with one project (p1) active."""
    return _with_project(create_initial_state(settings=settings, generator=generator))


@pytest.fixture()
def remote_state(settings: SimpleNamespace, generator: FakeGenerator, remote: FakeRemoteStore) -> AppState:
    """AppState wired to the in-memory remote store, one project (p1) active."""
    return _with_project(create_initial_state(settings=settings, remote=remote, generator=generator))
