# src/planboard/sync/snapshot.py

"""
Local JSON snapshot of the whole collection.

Used in local-only mode (no remote store configured): a batch save writes the
snapshot, startup reads it back. Same atomic write as the rest of the app's
local files: tmp file + os.replace.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

from ..core.changes import SYNC_TABLES

logger = logging.getLogger(__name__)


def save_snapshot(path: str | Path, tables: dict[str, list[dict[str, Any]]]) -> None:
    """Write all tables to path. Raises OSError on failure (the caller decides)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {name: tables.get(name, []) for name in SYNC_TABLES}
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), "utf-8")
    os.replace(tmp, path)
    with contextlib.suppress(OSError):
        os.chmod(path, 0o600)
    logger.debug("Snapshot saved to %s (%s)", path, ", ".join(f"{k}={len(v)}" for k, v in payload.items()))


def load_snapshot(path: str | Path) -> dict[str, list[dict[str, Any]]]:
    """Best-effort read: a missing or broken file yields empty tables."""
    path = Path(path)
    empty: dict[str, list[dict[str, Any]]] = {name: [] for name in SYNC_TABLES}
    if not path.exists():
        return empty
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, ValueError):
        logger.exception("Failed to read snapshot %s", path)
        return empty
    if not isinstance(data, dict):
        return empty
    out = dict(empty)
    for name in SYNC_TABLES:
        rows = data.get(name)
        if isinstance(rows, list):
            out[name] = [r for r in rows if isinstance(r, dict)]
    logger.info("Loaded snapshot from %s", path)
    return out
