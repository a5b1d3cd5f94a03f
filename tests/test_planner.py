# tests/test_planner.py

from __future__ import annotations

import threading
from dataclasses import replace
from pathlib import Path

import pytest

from planboard.ai import prompts
from planboard.ai.cache import ResponseCache
from planboard.ai.planner import AIPlanner, suggestion_to_task
from planboard.tasks.task_models import Priority, Project, TaskStatus

from .fakes import FakeGenerator, make_task

PROJECT = Project(id="p1", name="Project One", strategic_goals=("Ship v1",))


def _planner(tmp_path: Path, responses: dict) -> tuple[AIPlanner, FakeGenerator]:
    gen = FakeGenerator(responses)
    return AIPlanner(gen, ResponseCache(tmp_path / "cache.sqlite3")), gen


@pytest.mark.asyncio
async def test_suggest_tasks_is_cached(tmp_path: Path) -> None:
    planner, gen = _planner(tmp_path, {prompts.KIND_TASKS: [{"title": "Write docs"}]})

    first = await planner.suggest_tasks(PROJECT)
    second = await planner.suggest_tasks(PROJECT)

    assert first == second == [{"title": "Write docs"}]
    assert len(gen.calls) == 1

    await planner.suggest_tasks(PROJECT, "focus on growth")
    assert len(gen.calls) == 2


@pytest.mark.asyncio
async def test_failed_generation_is_retried(tmp_path: Path) -> None:
    planner, gen = _planner(tmp_path, {})

    assert await planner.suggest_tasks(PROJECT) == []
    assert await planner.analyze_portfolio([]) is None
    assert await planner.suggest_tasks(PROJECT) == []
    assert len(gen.calls) == 3


@pytest.mark.asyncio
async def test_analysis_invalidates_on_status_change_only(tmp_path: Path) -> None:
    analysis = {"dailyFocus": "ship", "conflicts": [], "missedOpportunities": [], "strategicBrainstorm": []}
    planner, gen = _planner(tmp_path, {prompts.KIND_GLOBAL_ANALYSIS: analysis})
    t = make_task("t1")

    assert await planner.analyze_portfolio([t]) == analysis
    await planner.analyze_portfolio([replace(t, title="renamed")])
    assert len(gen.calls) == 1

    await planner.analyze_portfolio([replace(t, status=TaskStatus.DONE)])
    assert len(gen.calls) == 2


@pytest.mark.asyncio
async def test_analysis_survives_reordering_and_restart(tmp_path: Path) -> None:
    analysis = {"dailyFocus": "ship"}
    planner, gen = _planner(tmp_path, {prompts.KIND_GLOBAL_ANALYSIS: analysis})
    a, b = make_task("a"), make_task("b", status=TaskStatus.REVIEW)

    assert await planner.analyze_portfolio([a, b]) == analysis
    assert await planner.analyze_portfolio([b, a]) == analysis
    assert len(gen.calls) == 1

    # a new session over the same cache file, rows loaded in another order
    restarted, gen2 = _planner(tmp_path, {})
    assert await restarted.analyze_portfolio([b, a]) == analysis
    assert gen2.calls == []


class _ThreadRecordingCache(ResponseCache):
    def __init__(self, db_path: Path) -> None:
        super().__init__(db_path)
        self.threads: list[int] = []

    def get(self, fp: str):
        self.threads.append(threading.get_ident())
        return super().get(fp)

    def put(self, fp: str, value) -> None:
        self.threads.append(threading.get_ident())
        super().put(fp, value)


@pytest.mark.asyncio
async def test_cache_io_runs_off_the_event_loop(tmp_path: Path) -> None:
    cache = _ThreadRecordingCache(tmp_path / "cache.sqlite3")
    planner = AIPlanner(FakeGenerator({prompts.KIND_TASKS: [{"title": "A"}]}), cache)

    await planner.suggest_tasks(PROJECT)
    await planner.suggest_tasks(PROJECT)

    # miss: get + put, hit: get
    assert len(cache.threads) == 3
    assert threading.get_ident() not in cache.threads


@pytest.mark.asyncio
async def test_discovery_rejects_unknown_type(tmp_path: Path) -> None:
    planner, gen = _planner(tmp_path, {prompts.KIND_DISCOVERY: {"title": "Interview script"}})

    assert await planner.discovery_artifact(PROJECT, "Interview", "onboarding") == {"title": "Interview script"}
    with pytest.raises(ValueError):
        await planner.discovery_artifact(PROJECT, "Survey", "onboarding")
    assert len(gen.calls) == 1


def test_suggestion_to_task_fills_defaults_and_aliases() -> None:
    t = suggestion_to_task(
        {
            "summary": "Call the bank",
            "description": "about the loan",
            "time": "02:00 PM",
            "priority": "high",
            "assignee": "f1",
            "rice": {"reach": 8, "impact": 2, "confidence": 90, "effort": 3},
        },
        "p1",
        task_id="x1",
        now_ms=42,
    )
    assert t.id == "x1"
    assert t.title == "Call the bank"
    assert t.rationale == "about the loan"
    assert t.suggested_time == "02:00 PM"
    assert t.priority == Priority.HIGH
    assert t.assignee_id == "f1"
    assert t.category == "Quick Win"
    assert t.duration == "1h"
    assert t.created_at == 42
    assert t.rice.score == pytest.approx(4.8)

    bare = suggestion_to_task({"title": "x"}, "p1")
    assert bare.suggested_time == "09:00 AM"
    assert bare.status == TaskStatus.TODO
    assert bare.rice is None
    assert bare.assignee_id is None


def test_chat_messages_map_model_role() -> None:
    msgs = prompts.build_messages(
        prompts.KIND_CHAT,
        {
            "project": {"name": "One"},
            "history": [{"role": "user", "content": "hi"}, {"role": "model", "content": "hello"}],
            "message": "next?",
        },
    )
    assert [m["role"] for m in msgs] == ["system", "user", "assistant", "user"]
    with pytest.raises(ValueError):
        prompts.build_messages("nope", {})


def test_unwrap_shapes() -> None:
    assert prompts.unwrap(prompts.KIND_TASKS, {"tasks": [{"title": "a"}, "junk"]}) == [{"title": "a"}]
    assert prompts.unwrap(prompts.KIND_QUICK_TASK, {"suggestions": [{"title": "b"}]}) == [{"title": "b"}]
    assert prompts.unwrap(prompts.KIND_TASKS, {"other": 1}) is None
    assert prompts.unwrap(prompts.KIND_PRD, ["not", "a", "dict"]) is None
    assert prompts.unwrap(prompts.KIND_CHAT, "  ") is None
