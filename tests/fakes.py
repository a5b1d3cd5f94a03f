# tests/fakes.py

from __future__ import annotations

import asyncio
import copy
from collections import defaultdict
from typing import Any

from planboard.core.errors import PersistenceFailure
from planboard.tasks.scoring import build_rice
from planboard.tasks.task_models import Priority, Task, TaskStatus


def make_task(
    task_id: str,
    *,
    context_id: str = "p1",
    title: str | None = None,
    status: TaskStatus = TaskStatus.TODO,
    created_at: int = 1_700_000_000_000,
    rice: tuple[Any, Any, Any, Any] | None = None,
    assignee_id: str | None = None,
) -> Task:
    return Task(
        id=task_id,
        title=title or f"Task {task_id}",
        category="Quick Win",
        priority=Priority.MEDIUM,
        status=status,
        date="2025-01-15",
        suggested_time="09:00 AM",
        duration="1h",
        rationale="",
        context_id=context_id,
        completed=status == TaskStatus.DONE,
        created_at=created_at,
        assignee_id=assignee_id,
        rice=build_rice(*rice) if rice is not None else None,
    )


class FakeRemoteStore:
    """
    In-memory RemoteStore used by sync tests.

    - Captures calls for assertions: (op, table, record_id)
    - fail_ids: record ids whose writes raise PersistenceFailure
    - gate: when set to an unset asyncio.Event, every call waits for it
      (blocked is set as soon as one call is waiting)
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.calls: list[tuple[str, str, str | None]] = []
        self.fail_ids: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.blocked = asyncio.Event()
        self.closed = False

    async def _enter(self, op: str, table: str, record_id: str | None) -> None:
        self.calls.append((op, table, record_id))
        if self.gate is not None and not self.gate.is_set():
            self.blocked.set()
            await self.gate.wait()
        if record_id is not None and record_id in self.fail_ids:
            raise PersistenceFailure(f"{op} {table} failed: 503", table=table, record_id=record_id)

    def calls_for(self, op: str, record_id: str) -> int:
        return sum(1 for c in self.calls if c[0] == op and c[2] == record_id)

    async def insert(self, table: str, record: dict[str, Any]) -> None:
        rid = str(record.get("id"))
        await self._enter("insert", table, rid)
        if rid in self.tables[table]:
            raise PersistenceFailure(f"insert {table} failed: 409 duplicate", table=table, record_id=rid)
        self.tables[table][rid] = copy.deepcopy(record)

    async def update(self, table: str, record: dict[str, Any], match_id: str) -> int:
        await self._enter("update", table, match_id)
        if match_id not in self.tables[table]:
            return 0
        self.tables[table][match_id] = copy.deepcopy(record)
        return 1

    async def delete(self, table: str, record_id: str) -> None:
        await self._enter("delete", table, record_id)
        self.tables[table].pop(record_id, None)

    async def select_all(self, table: str) -> list[dict[str, Any]]:
        await self._enter("select", table, None)
        return [copy.deepcopy(r) for r in self.tables[table].values()]

    async def aclose(self) -> None:
        self.closed = True


class FakeGenerator:
    """
    Deterministic Generator for planner tests.

    - responses: kind -> value returned by generate() (None when missing)
    - calls: captured (kind, inputs) pairs
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def generate(self, kind: str, inputs: dict[str, Any]) -> Any:
        self.calls.append((kind, inputs))
        return copy.deepcopy(self.responses.get(kind))
