# src/planboard/sync/sync_engine.py

"""
Sync engine.

Keeps the dirty/clean bookkeeping for optimistic local mutations:
- every store mutation marks its record and the collection dirty,
- a detached single-record write goes out immediately (fire-and-forget),
- a debounce timer triggers a full batch save after a quiet period,
- save_now() runs the batch immediately (coalesced with an in-flight one).

Remote results never touch the in-memory collection. Local state is the
source of truth until a batch save confirms it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from ..core.changes import (
    DOCUMENTS_TABLE,
    FREELANCERS_TABLE,
    PROJECTS_TABLE,
    SYNC_TABLES,
    TASKS_TABLE,
    ChangeKind,
    RecordChange,
)
from ..core.errors import PersistenceFailure
from ..core.ports import RemoteStore
from .records import Record, to_record
from .snapshot import save_snapshot

logger = logging.getLogger(__name__)

RecordKey = tuple[str, str]  # (table, record id)
Collector = Callable[[], dict[str, list[Record]]]


class SyncStatus(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    SYNCING = "syncing"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class DirtyState:
    status: SyncStatus
    is_dirty: bool
    dirty_records: frozenset[RecordKey]
    pending_deletes: frozenset[RecordKey]
    last_synced_at: float | None
    last_error: str | None
    in_flight: bool


class SyncEngine:
    def __init__(
        self,
        remote: RemoteStore | None,
        collect: Collector,
        *,
        autosave_delay_seconds: float = 3.0,
        snapshot_path: str | Path | None = None,
    ) -> None:
        self._remote = remote
        self._collect = collect
        self._delay = float(autosave_delay_seconds)
        self._snapshot_path = Path(snapshot_path) if snapshot_path else None

        self._generation = 0
        self._clean_generation = 0
        self._record_versions: dict[RecordKey, int] = {}
        self._dirty: set[RecordKey] = set()
        self._pending_deletes: set[RecordKey] = set()
        self._record_errors: dict[RecordKey, str] = {}
        self._record_inflight: Counter[RecordKey] = Counter()

        self._error: str | None = None
        self._last_synced_at: float | None = None

        self._batch: asyncio.Task[bool] | None = None
        self._debounce: asyncio.TimerHandle | None = None
        self._detached: set[asyncio.Task[Any]] = set()

        logger.info(
            "SyncEngine ready mode=%s autosave_delay=%.1fs",
            "remote" if remote is not None else "local-only",
            self._delay,
        )

    # ---- state ----

    @property
    def local_only(self) -> bool:
        return self._remote is None

    @property
    def is_dirty(self) -> bool:
        return self._generation != self._clean_generation

    @property
    def in_flight(self) -> bool:
        return self._batch is not None and not self._batch.done()

    @property
    def status(self) -> SyncStatus:
        if self.in_flight:
            return SyncStatus.SYNCING
        if self._error is not None:
            return SyncStatus.ERROR
        if self.is_dirty:
            return SyncStatus.DIRTY
        return SyncStatus.CLEAN

    def record_status(self, table: str, record_id: str) -> SyncStatus:
        key = (table, record_id)
        if self._record_inflight[key] > 0:
            return SyncStatus.SYNCING
        if key in self._record_errors:
            return SyncStatus.ERROR
        if key in self._dirty:
            return SyncStatus.DIRTY
        return SyncStatus.CLEAN

    def get_dirty_state(self) -> DirtyState:
        return DirtyState(
            status=self.status,
            is_dirty=self.is_dirty,
            dirty_records=frozenset(self._dirty),
            pending_deletes=frozenset(self._pending_deletes),
            last_synced_at=self._last_synced_at,
            last_error=self._error,
            in_flight=self.in_flight,
        )

    # ---- mutation hook ----

    def on_change(self, change: RecordChange) -> None:
        """Store listener: mark dirty, restart the debounce, fire a single write."""
        self._generation += 1
        key = change.key
        self._record_versions[key] = self._generation
        self._dirty.add(key)
        if change.kind == ChangeKind.DELETED:
            self._pending_deletes.add(key)
        else:
            self._pending_deletes.discard(key)

        record = to_record(change.table, change.record) if change.record is not None else None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (scripts, sync tests): stay dirty, the next save picks it up.
            logger.debug("No running loop; %s %s stays dirty", change.table, change.record_id)
            return

        self._schedule_autosave(loop)
        if self._remote is not None:
            self._spawn(loop, self._write_one(change.kind, key, record, self._generation))

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro) -> asyncio.Task[Any]:
        task = loop.create_task(coro)
        self._detached.add(task)
        task.add_done_callback(self._detached.discard)
        return task

    # ---- single-record writes ----

    async def _write_one(self, kind: ChangeKind, key: RecordKey, record: Record | None, version: int) -> None:
        remote = self._remote
        if remote is None:
            return

        table, record_id = key
        self._record_inflight[key] += 1
        try:
            if kind == ChangeKind.DELETED:
                await remote.delete(table, record_id)
            elif kind == ChangeKind.CREATED:
                await remote.insert(table, record or {})
            else:
                await self._upsert(remote, table, record or {})
        except Exception as e:
            logger.warning("Single write failed table=%s id=%s op=%s: %s", table, record_id, kind.value, e)
            self._record_errors[key] = str(e) or e.__class__.__name__
            return
        finally:
            self._record_inflight[key] -= 1
            if self._record_inflight[key] <= 0:
                del self._record_inflight[key]

        # A newer mutation of the same record keeps it dirty.
        if self._record_versions.get(key) == version:
            self._dirty.discard(key)
            self._pending_deletes.discard(key)
            self._record_errors.pop(key, None)
        logger.debug("Single write ok table=%s id=%s op=%s", table, record_id, kind.value)

    @staticmethod
    async def _upsert(remote: RemoteStore, table: str, record: Record) -> None:
        record_id = str(record.get("id"))
        matched = await remote.update(table, record, record_id)
        if not matched:
            # never synced before: the row does not exist remotely yet
            await remote.insert(table, record)

    # ---- debounce ----

    def _schedule_autosave(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._delay <= 0:
            return
        if self._debounce is not None:
            self._debounce.cancel()
        self._debounce = loop.call_later(self._delay, self._on_autosave_timer)

    def _on_autosave_timer(self) -> None:
        self._debounce = None
        if not self.is_dirty:
            return
        loop = asyncio.get_running_loop()
        if self.in_flight:
            # a save is running; look again after another quiet period
            self._schedule_autosave(loop)
            return
        logger.debug("Autosave timer fired")
        self._spawn(loop, self.save_now())

    def _cancel_autosave(self) -> None:
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

    # ---- batch persistence ----

    async def save_now(self) -> bool:
        """
        Persist the whole collection now.

        Returns True on success. A call made while a batch is running waits for
        that batch and returns its result instead of starting a second one.
        """
        if self._batch is not None and not self._batch.done():
            logger.info("Save already in progress; coalescing")
            return await asyncio.shield(self._batch)

        self._cancel_autosave()
        self._batch = asyncio.get_running_loop().create_task(self._run_batch())
        return await asyncio.shield(self._batch)

    async def _run_batch(self) -> bool:
        started_gen = self._generation
        keys_at_start = set(self._dirty)
        deletes = sorted(self._pending_deletes)
        tables = self._collect()

        try:
            if self._remote is None:
                await self._save_local(tables)
            else:
                await self._save_remote(self._remote, tables, deletes)
        except Exception as e:
            self._error = str(e) or e.__class__.__name__
            logger.error("Batch save failed: %s", self._error)
            return False

        self._error = None
        self._last_synced_at = time.time()
        for key in keys_at_start:
            if self._record_versions.get(key, 0) <= started_gen:
                self._dirty.discard(key)
                self._pending_deletes.discard(key)
                self._record_errors.pop(key, None)
        self._clean_generation = started_gen

        if self.is_dirty:
            logger.info("Batch save done; %d mutation(s) arrived meanwhile", self._generation - started_gen)
            self._schedule_autosave(asyncio.get_running_loop())
        else:
            logger.info("Batch save done")
        return True

    async def _save_local(self, tables: dict[str, list[Record]]) -> None:
        if self._snapshot_path is None:
            return
        try:
            await asyncio.to_thread(save_snapshot, self._snapshot_path, tables)
        except OSError as e:
            raise PersistenceFailure(f"snapshot write failed: {e}") from e

    async def _save_remote(
        self,
        remote: RemoteStore,
        tables: dict[str, list[Record]],
        deletes: list[RecordKey],
    ) -> None:
        failures: list[str] = []

        for table in SYNC_TABLES:
            for record in tables.get(table, []):
                try:
                    await self._upsert(remote, table, record)
                except Exception as e:
                    logger.warning("Batch upsert failed table=%s id=%s: %s", table, record.get("id"), e)
                    failures.append(f"{table}/{record.get('id')}")

        for table, record_id in deletes:
            try:
                await remote.delete(table, record_id)
            except Exception as e:
                logger.warning("Batch delete failed table=%s id=%s: %s", table, record_id, e)
                failures.append(f"{table}/{record_id}")

        if failures:
            raise PersistenceFailure(f"{len(failures)} record(s) failed to sync: {', '.join(failures[:5])}")

    # ---- lifecycle ----

    async def flush(self) -> None:
        """Wait for detached writes and any running batch to finish."""
        while True:
            pending = list(self._detached)
            if self._batch is not None and not self._batch.done():
                pending.append(self._batch)
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        self._cancel_autosave()


def collect_records(task_store, project_store, document_store) -> dict[str, list[Record]]:
    """Snapshot the whole collection as remote records, keyed by table."""
    return {
        PROJECTS_TABLE: [to_record(PROJECTS_TABLE, p) for p in project_store.all()],
        FREELANCERS_TABLE: [to_record(FREELANCERS_TABLE, f) for f in project_store.all_freelancers()],
        TASKS_TABLE: [to_record(TASKS_TABLE, t) for t in task_store.all()],
        DOCUMENTS_TABLE: [to_record(DOCUMENTS_TABLE, d) for d in document_store.all()],
    }
