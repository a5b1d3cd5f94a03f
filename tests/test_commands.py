# tests/test_commands.py

from __future__ import annotations

import pytest

from planboard.ai import prompts
from planboard.cli.commands import CommandRegistry, registry
from planboard.core.errors import ValidationError
from planboard.tasks import task_api
from planboard.tasks.task_models import HOME_CONTEXT_ID, Project, TaskStatus


@pytest.mark.asyncio
async def test_command_registry_routes_sync_and_async_handlers(state) -> None:
    reg = CommandRegistry()
    called = {"sync": 0, "async": 0}

    def h_sync(state, args, emit):
        called["sync"] += 1
        return f"sync {' '.join(args)}"

    async def h_async(state, args, emit):
        called["async"] += 1
        if emit is not None:
            emit("note")
        return "async"

    reg.register("a", h_sync, "a", aliases=["aa"])
    reg.register("b", h_async, "b")

    notes: list[str] = []
    assert await reg.handle(state, "/a x y") == "sync x y"
    assert await reg.handle(state, "/AA") == "sync "
    assert await reg.handle(state, "/b", emit=notes.append) == "async"
    assert called == {"sync": 2, "async": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_domain_errors_become_replies(state) -> None:
    reg = CommandRegistry()

    def bad(state, args, emit):
        raise ValidationError("title is required")

    reg.register("bad", bad, "bad")
    assert await reg.handle(state, "/bad") == "Error: title is required"


@pytest.mark.asyncio
async def test_task_commands_end_to_end(state) -> None:
    reply = await registry.handle(state, "/add Write the changelog")
    assert reply.startswith("Added:")
    (task,) = state.task_store.all()

    assert "<Done>" in await registry.handle(state, f"/toggle {task.id}")
    assert "already Done" in await registry.handle(state, f"/move {task.id} Done")
    assert "<In Progress>" in await registry.handle(state, f"/move {task.id} In Progress")

    reply = await registry.handle(state, f"/rice {task.id} reach=8 impact=2 confidence=90 effort=3")
    assert "RICE 4.8" in reply
    assert "expected key=value" in await registry.handle(state, f"/rice {task.id} reach")

    assert "Write the changelog" in await registry.handle(state, "/list in_progress")
    assert await registry.handle(state, "/list done") == "No tasks."

    assert await registry.handle(state, f"/rm {task.id}") == f"Deleted {task.id}."
    assert state.task_store.count() == 0


@pytest.mark.asyncio
async def test_add_from_home_view_is_rejected(state) -> None:
    assert await registry.handle(state, "/use home") == "Active view: home."
    assert state.active_context_id == HOME_CONTEXT_ID
    reply = await registry.handle(state, "/add Orphan")
    assert reply.startswith("Error:")
    assert state.task_store.count() == 0


@pytest.mark.asyncio
async def test_import_and_save(state, tmp_path) -> None:
    reply = await registry.handle(state, '/import [{"title": "A"}, {"summary": "B", "status": "Draft"}]')
    assert reply == "Imported 2 task(s)."
    drafts = [t for t in state.task_store.all() if t.status == TaskStatus.DRAFT]
    assert [t.title for t in drafts] == ["B"]

    path = tmp_path / "tasks.json"
    path.write_text('{"title": "From file"}', "utf-8")
    assert await registry.handle(state, f"/import {path}") == "Imported 1 task(s)."
    assert (await registry.handle(state, "/import missing.json")).startswith("Cannot read")

    notes: list[str] = []
    assert await registry.handle(state, "/save", emit=notes.append) == "Saved."
    assert notes == ["[SYNC] Saving..."]
    assert "Sync status: clean" in await registry.handle(state, "/sync")


@pytest.mark.asyncio
async def test_suggest_then_accept(state, generator) -> None:
    generator.responses[prompts.KIND_TASKS] = [
        {"title": "Interview 5 users", "priority": "High"},
        {"title": "Draft pricing page"},
    ]
    reply = await registry.handle(state, "/suggest")
    assert "1. Interview 5 users" in reply

    reply = await registry.handle(state, "/accept 2 draft")
    assert "Draft pricing page" in reply
    assert state.task_store.all()[0].status == TaskStatus.DRAFT
    assert len(state.last_suggestions) == 1

    assert "No suggestion #7" in await registry.handle(state, "/accept 7")


@pytest.mark.asyncio
async def test_ai_unavailable_replies(state) -> None:
    assert "No suggestions" in await registry.handle(state, "/suggest")
    assert await registry.handle(state, "/analyze") == "No analysis (AI unavailable)."
    assert "AI cache entries: 0" in await registry.handle(state, "/cache")


@pytest.mark.asyncio
async def test_prd_and_discovery_are_saved_as_documents(state, generator) -> None:
    generator.responses[prompts.KIND_PRD] = {"problemStatement": "slow onboarding", "goals": ["halve it"]}
    generator.responses[prompts.KIND_DISCOVERY] = {"objectives": ["learn"], "questionsOrSteps": ["ask"]}

    reply = await registry.handle(state, "/prd Onboarding v2 | shorter signup flow")
    assert reply.startswith("Document saved:")
    assert (await registry.handle(state, "/discover interview signup drop-off")).startswith("Document saved:")
    assert (await registry.handle(state, "/discover survey x")).startswith("Usage:")

    docs = {d.type: d for d in state.documents.list_by_project("p1")}
    assert docs["prd"].title == "Onboarding v2"
    assert docs["prd"].content["goals"] == ["halve it"]
    assert docs["discovery"].title == "Interview: signup drop-off"
    assert "[prd] Onboarding v2" in await registry.handle(state, "/docs")

    kinds = [kind for kind, _ in generator.calls]
    assert kinds == [prompts.KIND_PRD, prompts.KIND_DISCOVERY]


@pytest.mark.asyncio
async def test_bulk_edits_only_the_listed_tasks(state) -> None:
    state.projects.create(Project(id="p2", name="Project Two"))
    other = task_api.create_task(state, "Other project work", context_id="p2")
    draft_a = task_api.create_task(state, "Research pricing", status=TaskStatus.DRAFT)
    draft_b = task_api.create_task(state, "Research onboarding", status=TaskStatus.DRAFT)
    todo = task_api.create_task(state, "Ship landing page")

    reply = await registry.handle(state, "/bulk todo draft")
    assert reply == "Moved 2 task(s) to Todo."
    assert state.task_store.get(draft_a.id).status == TaskStatus.TODO
    assert state.task_store.get(draft_b.id).status == TaskStatus.TODO

    assert await registry.handle(state, "/bulk rm todo research") == "Deleted 2 task(s)."
    assert state.task_store.get(draft_a.id) is None
    assert state.task_store.get(todo.id) is not None

    # unfiltered: the whole active project, never another one
    assert await registry.handle(state, "/bulk done") == "Moved 1 task(s) to Done."
    assert state.task_store.get(todo.id).completed is True
    assert state.task_store.get(other.id) == other

    assert (await registry.handle(state, "/bulk sideways")).startswith("Usage:")
    assert await registry.handle(state, "/bulk rm review") == "No tasks match."


@pytest.mark.asyncio
async def test_assignment_is_a_soft_reference(state) -> None:
    task = task_api.create_task(state, "Design the logo")

    assert await registry.handle(state, f"/assign {task.id} f1") == f"{task.id} assigned to Dana."
    assert "Dana (Designer, Active) 1 task(s)" in await registry.handle(state, "/team")
    assert await registry.handle(state, f"/assign {task.id} f9") == "No such freelancer: f9."

    assert "keep the reference" in await registry.handle(state, "/team rm f1")
    kept = state.task_store.get(task.id)
    assert kept.assignee_id == "f1"
    assert task_api.resolve_assignee(state, kept) is None

    assert await registry.handle(state, f"/assign {task.id} none") == f"{task.id} is unassigned."
    assert state.task_store.get(task.id).assignee_id is None


@pytest.mark.asyncio
async def test_team_and_categories_commands(state) -> None:
    reply = await registry.handle(state, "/team add Ravi Backend Engineer")
    assert reply.startswith("Freelancer added:")
    (ravi,) = [f for f in state.projects.freelancers_for("p1") if f.name == "Ravi"]
    assert ravi.role == "Backend Engineer"

    reply = await registry.handle(state, f"/team set {ravi.id} status=On_Leave rate=50/h")
    assert "On Leave" in reply
    assert state.projects.find_freelancer(ravi.id).rate == "50/h"
    assert "expected one of" in await registry.handle(state, f"/team set {ravi.id} id=x")

    assert await registry.handle(state, "/categories add Customer Research") == (
        "Category added: customer-research (Customer Research)."
    )
    assert [c.id for c in state.projects.categories_for("p1")] == ["customer-research"]
    assert (await registry.handle(state, "/categories add Customer Research")).startswith("Error:")
    assert await registry.handle(state, "/categories rm customer-research") == "Category removed: customer-research."

    await registry.handle(state, "/use home")
    assert "Pick a project first" in await registry.handle(state, "/team add Solo")
    assert "Pick a project first" in await registry.handle(state, "/categories")
