# src/planboard/cli/commands.py

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from ..ai.planner import new_task_id
from ..core.errors import PlanboardError
from ..core.state import AppState
from ..tasks import status as status_machine
from ..tasks import task_api
from ..tasks.scoring import format_score
from ..tasks.task_models import HOME_CONTEXT_ID, Category, Document, Freelancer, Project, Task, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], str | Awaitable[str]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, /save, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Must run on the engine loop: handlers mutate the stores.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            result = handler(state, args, emit)
            if inspect.isawaitable(result):
                result = await result
        except PlanboardError as e:
            logger.info("/%s rejected: %s", name, e)
            return f"Error: {e}"
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_task(t: Task) -> str:
    mark = "x" if t.completed else " "
    rice = f" RICE {format_score(t.rice.score)}" if t.rice is not None else ""
    return (
        f"[{mark}] {t.id}  {t.title}  <{t.status.value}> "
        f"({t.priority.value}, {t.date} {t.suggested_time}, {t.duration}){rice}"
    )


def _active_project(state: AppState) -> Project:
    ctx = state.active_context_id
    if ctx == HOME_CONTEXT_ID:
        return Project(id=HOME_CONTEXT_ID, name="All projects", description="Aggregate of every project")
    project = state.projects.get(ctx)
    if project is None:
        raise PlanboardError(f"active project {ctx!r} no longer exists; use /use home")
    return project


def _fmt_time(ts: float | None) -> str:
    if ts is None:
        return "never"
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M:%S")


# ---- general ----


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    dirty = task_api.get_dirty_state(state)
    models = ", ".join(list(getattr(state.settings, "llm_models", []) or []))
    return (
        "Status:\n"
        f"  Storage: {'local-only' if state.sync.local_only else 'remote'}\n"
        f"  Active view: {state.active_context_id}\n"
        f"  Projects: {state.projects.count()}  Tasks: {state.task_store.count()}\n"
        f"  Sync: {dirty.status.value} (last synced {_fmt_time(dirty.last_synced_at)})\n"
        f"  Models (priority -> fallback): {models}\n"
        f"  AI cache entries: {state.cache.count()}"
    )


# ---- projects ----


def cmd_projects(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /projects                    -> list projects
    /projects new <id> <name...> -> create a project
    /projects rm <id>            -> delete a project (its tasks stay)
    """
    if not args:
        items = state.projects.all()
        if not items:
            return "No projects yet. Use /projects new <id> <name>."
        lines = ["Projects:"]
        for p in items:
            n = len(state.task_store.list_by_project(p.id))
            active = " *" if p.id == state.active_context_id else ""
            lines.append(f"  {p.id}  {p.name} ({n} tasks){active}")
        return "\n".join(lines)

    sub = args[0].lower()
    if sub == "new" and len(args) >= 3:
        p = state.projects.create(Project(id=args[1], name=" ".join(args[2:])))
        return f"Project created: {p.id} ({p.name})."
    if sub == "rm" and len(args) == 2:
        if not state.projects.delete(args[1]):
            return f"No such project: {args[1]}."
        if state.active_context_id == args[1]:
            state.active_context_id = HOME_CONTEXT_ID
        return f"Project deleted: {args[1]}."
    return "Usage: /projects | /projects new <id> <name> | /projects rm <id>"


def cmd_use(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /use <project_id|home>"
    ctx = args[0]
    if ctx != HOME_CONTEXT_ID and state.projects.get(ctx) is None:
        return f"No such project: {ctx}."
    state.active_context_id = ctx
    return f"Active view: {ctx}."


_FREELANCER_FIELDS = ("name", "role", "sector", "status", "rate", "contact")


def cmd_team(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /team                            -> freelancers of the active view
    /team add <name> <role...>       -> add one to the active project
    /team set <id> role=.. status=.. -> edit fields
    /team rm <id>                    -> remove (assigned tasks keep the id)
    """
    ctx = state.active_context_id
    if not args:
        people = state.projects.all_freelancers() if ctx == HOME_CONTEXT_ID else state.projects.freelancers_for(ctx)
        if not people:
            return "No freelancers."
        lines = ["Team:"]
        for f in people:
            n = len(state.task_store.query(lambda t, fid=f.id: t.assignee_id == fid))
            lines.append(f"  {f.id}  {f.name} ({f.role or '-'}, {f.status}) {n} task(s)")
        return "\n".join(lines)

    sub = args[0].lower()
    if sub == "add" and len(args) >= 2:
        project = _active_project(state)
        if project.id == HOME_CONTEXT_ID:
            return "Pick a project first: /use <project_id>."
        f = state.projects.add_freelancer(
            Freelancer(id=new_task_id(), name=args[1], project_id=project.id, role=" ".join(args[2:]))
        )
        return f"Freelancer added: {f.id} ({f.name})."
    if sub == "set" and len(args) >= 3:
        current = state.projects.find_freelancer(args[1])
        if current is None:
            return f"No such freelancer: {args[1]}."
        changes: dict[str, str] = {}
        for a in args[2:]:
            key, sep, value = a.partition("=")
            if not sep or key not in _FREELANCER_FIELDS:
                return f"Bad argument {a!r}: expected one of {', '.join(_FREELANCER_FIELDS)}=value."
            changes[key] = value.replace("_", " ")
        f = state.projects.update_freelancer(replace(current, **changes))
        return f"Freelancer updated: {f.id} ({f.name}, {f.role or '-'}, {f.status})."
    if sub == "rm" and len(args) == 2:
        if not state.projects.delete_freelancer(args[1]):
            return f"No such freelancer: {args[1]}."
        return f"Freelancer removed: {args[1]}. Assigned tasks keep the reference."
    return "Usage: /team | /team add <name> <role> | /team set <id> key=value | /team rm <id>"


def cmd_categories(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/categories [add <name...> | rm <id>] for the active project."""
    project = _active_project(state)
    if project.id == HOME_CONTEXT_ID:
        return "Pick a project first: /use <project_id>."
    if not args:
        return "\n".join(f"  {c.id}  {c.name}" for c in state.projects.categories_for(project.id))

    sub = args[0].lower()
    if sub == "add" and len(args) >= 2:
        name = " ".join(args[1:])
        cat = Category(id=name.lower().replace(" ", "-"), name=name)
        state.projects.add_category(project.id, cat)
        return f"Category added: {cat.id} ({cat.name})."
    if sub == "rm" and len(args) == 2:
        state.projects.delete_category(project.id, args[1])
        return f"Category removed: {args[1]}."
    return "Usage: /categories | /categories add <name> | /categories rm <id>"


# ---- tasks ----


def _parse_status(word: str) -> TaskStatus | None:
    # strict: TaskStatus.from_db falls back to Todo on unknown input
    wanted = word.replace("_", " ").lower()
    for s in TaskStatus:
        if s.value.lower() == wanted:
            return s
    return None


def _parse_filter(args: list[str]) -> tuple[TaskStatus | None, str | None]:
    """[status] [search words...] as accepted by /list and /bulk."""
    status = _parse_status(args[0]) if args else None
    if status is not None:
        args = args[1:]
    return status, " ".join(args) or None


def cmd_list(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/list [status] [search words...]"""
    status, search = _parse_filter(args)
    items = task_api.tasks_for_view(state, status=status, search=search)
    if not items:
        return "No tasks."
    return "\n".join(_fmt_task(t) for t in items)


def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /add <title...>"
    t = task_api.create_task(state, " ".join(args))
    return f"Added: {_fmt_task(t)}"


def cmd_toggle(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /toggle <task_id>"
    return _fmt_task(task_api.toggle_status(state, args[0]))


def cmd_next(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /next <task_id>"
    return _fmt_task(task_api.advance_status(state, args[0]))


def cmd_reopen(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /reopen <task_id>"
    return _fmt_task(task_api.reopen(state, args[0]))


def cmd_approve(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /approve <task_id>"
    return _fmt_task(task_api.approve_suggestion(state, args[0]))


def cmd_move(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/move <task_id> <status>: same as dropping the card on a column."""
    if len(args) < 2:
        return "Usage: /move <task_id> <Draft|Todo|In Progress|Review|Done>"
    target = TaskStatus.from_db(" ".join(args[1:]))
    t = task_api.set_status(state, args[0], target)
    if t is None:
        return f"Task {args[0]} is already {target.value}."
    return _fmt_task(t)


def cmd_rice(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/rice <task_id> reach=8 impact=2 confidence=90 effort=3 (any subset)"""
    if len(args) < 2:
        return "Usage: /rice <task_id> reach=.. impact=.. confidence=.. effort=.."
    partial: dict[str, str] = {}
    for a in args[1:]:
        key, sep, value = a.partition("=")
        if not sep:
            return f"Bad argument {a!r}: expected key=value."
        partial[key.strip().lower()] = value.strip()
    return _fmt_task(task_api.update_rice(state, args[0], **partial))


def cmd_rm(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /rm <task_id>"
    if task_api.delete_task(state, args[0]):
        return f"Deleted {args[0]}."
    return f"No such task: {args[0]}."


def cmd_bulk(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /bulk <status|rm> [status] [search words...]

    Acts on exactly the tasks /list shows for the same filter. With a filter the
    scope is those task ids; without one it is the active project (or everything
    from the home view).
    """
    usage = "Usage: /bulk <Draft|Todo|In_Progress|Review|Done|rm> [status] [search]"
    if not args:
        return usage
    target = None
    if args[0].lower() != "rm":
        target = _parse_status(args[0])
        if target is None:
            return usage

    status, search = _parse_filter(args[1:])
    view = task_api.tasks_for_view(state, status=status, search=search)
    if not view:
        return "No tasks match."

    scope = task_api.scope_for_view(
        state.active_context_id,
        view,
        filtered=status is not None or search is not None,
    )
    edited = [] if target is None else [status_machine.apply_status(t, target) for t in view]
    result = task_api.bulk_apply(state, edited, scope)
    if target is None:
        return f"Deleted {len(result.deleted)} task(s)."
    return f"Moved {len(result.updated)} task(s) to {target.value}."


def cmd_assign(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/assign <task_id> <freelancer_id|none>"""
    if len(args) != 2:
        return "Usage: /assign <task_id> <freelancer_id|none>"
    assignee_id = None
    if args[1].lower() != "none":
        freelancer = state.projects.find_freelancer(args[1])
        if freelancer is None:
            return f"No such freelancer: {args[1]}."
        assignee_id = freelancer.id
    t = task_api.update_task(state, args[0], assignee_id=assignee_id)
    who = task_api.resolve_assignee(state, t)
    if who is None:
        return f"{t.id} is unassigned."
    return f"{t.id} assigned to {who.name}."


def cmd_import(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/import <inline JSON | path to a .json file>"""
    if not args:
        return "Usage: /import <json> | /import <file.json>"
    raw = " ".join(args)
    if not raw.lstrip().startswith(("[", "{")):
        try:
            raw = Path(raw).expanduser().read_text("utf-8")
        except OSError as e:
            return f"Cannot read {raw}: {e.strerror or e}."
    created = task_api.import_tasks_json(state, raw)
    return f"Imported {len(created)} task(s)."


# ---- sync ----


async def cmd_save(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("[SYNC] Saving...")
    ok = await task_api.save_now(state)
    if ok:
        return "Saved."
    return f"Save failed: {task_api.get_dirty_state(state).last_error}. Your changes are kept; try /save again."


def cmd_sync(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    d = task_api.get_dirty_state(state)
    lines = [
        f"Sync status: {d.status.value}",
        f"  Unsaved records: {len(d.dirty_records)} (pending deletes: {len(d.pending_deletes)})",
        f"  Last synced: {_fmt_time(d.last_synced_at)}",
    ]
    if d.last_error:
        lines.append(f"  Last error: {d.last_error}")
    return "\n".join(lines)


# ---- AI ----


def _fmt_suggestions(state: AppState) -> str:
    if not state.last_suggestions:
        return "No suggestions (AI unavailable or nothing generated)."
    lines = ["Suggestions (accept with /accept <n|all> [draft]):"]
    for i, s in enumerate(state.last_suggestions, start=1):
        lines.append(f"  {i}. {s.get('title', '?')} ({s.get('priority', 'Medium')}, {s.get('date', '')})")
    return "\n".join(lines)


async def cmd_suggest(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    project = _active_project(state)
    if emit:
        emit("[AI] Thinking...")
    state.last_suggestions = await state.planner.suggest_tasks(project, " ".join(args) or None)
    return _fmt_suggestions(state)


async def cmd_quick(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /quick <free text describing the work>"
    project = _active_project(state)
    state.last_suggestions = await state.planner.parse_quick_task(" ".join(args), project.name)
    return _fmt_suggestions(state)


def cmd_accept(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /accept <n|all> [draft]"
    draft = len(args) > 1 and args[1].lower() == "draft"
    if args[0].lower() == "all":
        picked = list(state.last_suggestions)
    else:
        try:
            picked = [state.last_suggestions[int(args[0]) - 1]]
        except (ValueError, IndexError):
            return f"No suggestion #{args[0]}."
    created = [task_api.accept_suggestion(state, s, draft=draft) for s in picked]
    state.last_suggestions = [s for s in state.last_suggestions if s not in picked]
    return "\n".join(f"Added: {_fmt_task(t)}" for t in created)


async def cmd_analyze(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    result = await state.planner.analyze_portfolio(state.task_store.all())
    if not result:
        return "No analysis (AI unavailable)."
    lines = [f"Daily focus: {result.get('dailyFocus', '-')}"]
    for c in result.get("conflicts") or []:
        if isinstance(c, dict):
            lines.append(f"  conflict [{c.get('severity', '?')}] {c.get('title', '')}: {c.get('description', '')}")
    for m in result.get("missedOpportunities") or []:
        lines.append(f"  missed: {m}")
    for b in result.get("strategicBrainstorm") or []:
        lines.append(f"  idea: {b}")
    return "\n".join(lines)


# ---- documents ----


def _save_document(state: AppState, project: Project, title: str, doc_type: str, content) -> Document:
    return state.documents.create(
        Document(
            id=new_task_id(),
            title=title,
            context_id=project.id,
            type=doc_type,
            content=content,
            created_at=int(time.time() * 1000),
        )
    )


def cmd_docs(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    docs = state.documents.list_by_project(state.active_context_id)
    if not docs:
        return "No documents."
    return "\n".join(f"  {d.id}  [{d.type}] {d.title}" for d in docs)


async def cmd_prd(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/prd <title> | <description>"""
    title, _, description = " ".join(args).partition("|")
    if not title.strip():
        return "Usage: /prd <title> | <description>"
    project = _active_project(state)
    if project.id == HOME_CONTEXT_ID:
        return "Pick a project first: /use <project_id>."
    if emit:
        emit("[AI] Drafting...")
    content = await state.planner.draft_document(project, title.strip(), description.strip())
    if not content:
        return "No document (AI unavailable)."
    doc = _save_document(state, project, title.strip(), "prd", content)
    return f"Document saved: {doc.id} ({doc.title})."


async def cmd_discover(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/discover <Interview|Experiment> <focus...>"""
    if len(args) < 2 or args[0].capitalize() not in ("Interview", "Experiment"):
        return "Usage: /discover <Interview|Experiment> <focus...>"
    project = _active_project(state)
    if project.id == HOME_CONTEXT_ID:
        return "Pick a project first: /use <project_id>."
    artifact_type = args[0].capitalize()
    focus = " ".join(args[1:])
    content = await state.planner.discovery_artifact(project, artifact_type, focus)
    if not content:
        return "No artifact (AI unavailable)."
    doc = _save_document(state, project, f"{artifact_type}: {focus}", "discovery", content)
    return f"Document saved: {doc.id} ({doc.title})."


def cmd_cache(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if args and args[0].lower() == "clear":
        return f"AI cache cleared ({state.cache.clear()} entries)."
    return f"AI cache entries: {state.cache.count()}. Use /cache clear to drop them."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage mode, counts and sync state.")
registry.register("projects", cmd_projects, help_text="List / create / delete projects.")
registry.register("use", cmd_use, help_text="Switch the active view: /use <project_id|home>.")
registry.register("team", cmd_team, help_text="Freelancers: /team [add <name> <role> | set <id> k=v | rm <id>].")
registry.register("categories", cmd_categories, help_text="Project categories: /categories [add <name> | rm <id>].")
registry.register("list", cmd_list, help_text="List tasks: /list [status] [search].", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task to the active project.")
registry.register("toggle", cmd_toggle, help_text="Toggle done: /toggle <task_id>.", aliases=["done"])
registry.register("next", cmd_next, help_text="Advance along the workflow: /next <task_id>.")
registry.register("reopen", cmd_reopen, help_text="Reopen a done task: /reopen <task_id>.")
registry.register("approve", cmd_approve, help_text="Approve a draft task: /approve <task_id>.")
registry.register("move", cmd_move, help_text="Move to a status column: /move <task_id> <status>.")
registry.register("rice", cmd_rice, help_text="Edit RICE inputs: /rice <task_id> reach=8 effort=2.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <task_id>.")
registry.register("bulk", cmd_bulk, help_text="Bulk edit the listed tasks: /bulk <status|rm> [status] [search].")
registry.register("assign", cmd_assign, help_text="Assign a task: /assign <task_id> <freelancer_id|none>.")
registry.register("import", cmd_import, help_text="Import tasks from JSON (inline or file).")
registry.register("save", cmd_save, help_text="Save everything now.")
registry.register("sync", cmd_sync, help_text="Show unsaved changes and the last sync error.")
registry.register("suggest", cmd_suggest, help_text="AI task suggestions for the active project.")
registry.register("quick", cmd_quick, help_text="AI: split free text into tasks.")
registry.register("accept", cmd_accept, help_text="Accept suggestions: /accept <n|all> [draft].")
registry.register("analyze", cmd_analyze, help_text="AI portfolio analysis of all tasks.")
registry.register("docs", cmd_docs, help_text="List documents of the active view.")
registry.register("prd", cmd_prd, help_text="AI: draft a PRD: /prd <title> | <description>.")
registry.register(
    "discover", cmd_discover, help_text="AI: discovery artifact: /discover <Interview|Experiment> <focus>."
)
registry.register("cache", cmd_cache, help_text="AI cache stats: /cache | /cache clear.")
