# src/planboard/ai/cache.py

"""
Durable memoization of AI artifacts.

Keys are deterministic fingerprints of (kind, inputs): identical inputs never
hit the generator twice, across restarts. The table is unbounded:
fingerprints accumulate until clear() is called.
"""

from __future__ import annotations

import contextlib
import hashlib
import json
import logging
import sqlite3
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


def fingerprint(kind: str, **inputs: Any) -> str:
    """Stable key: same kind + same inputs (any dict order) -> same string."""
    payload = json.dumps({"kind": kind, "inputs": inputs}, sort_keys=True, ensure_ascii=False, default=str)
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return f"{kind}:{digest}"


def tasks_fingerprint(tasks: Iterable[Task]) -> str:
    # only id + status, sorted: a status change invalidates the analysis,
    # title edits and collection order do not
    return "|".join(sorted(f"{t.id}:{t.status.value}" for t in tasks))


class ResponseCache:
    """
    SQLite-backed key/value cache for generated content.

    Each operation opens its own connection, like the other local stores.
    Values are stored as JSON text; None is never stored.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("ResponseCache ready db=%s entries=%s", self._db_path, self.count())

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS ai_cache (
                    fingerprint TEXT PRIMARY KEY,
                    kind        TEXT NOT NULL,
                    value_json  TEXT NOT NULL,
                    created_at  REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def get(self, fp: str) -> Any | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value_json FROM ai_cache WHERE fingerprint = ?", (fp,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError:
            logger.warning("Dropping unreadable cache entry %s", fp)
            self.delete(fp)
            return None

    def put(self, fp: str, value: Any) -> None:
        if value is None:
            return
        kind = fp.split(":", 1)[0]
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO ai_cache(fingerprint, kind, value_json, created_at) VALUES (?, ?, ?, ?)",
                (fp, kind, json.dumps(value, ensure_ascii=False), time.time()),
            )
            conn.commit()
        finally:
            conn.close()

    def delete(self, fp: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM ai_cache WHERE fingerprint = ?", (fp,))
            conn.commit()
        finally:
            conn.close()

    def count(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM ai_cache").fetchone()
        finally:
            conn.close()
        return int(n)

    def clear(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM ai_cache")
            conn.commit()
            removed = cur.rowcount
        finally:
            conn.close()
        logger.info("ResponseCache cleared (%d entries)", removed)
        return int(removed)
