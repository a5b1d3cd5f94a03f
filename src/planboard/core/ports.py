# src/planboard/core/ports.py

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the remote store and the AI provider swappable and makes testing easier.
"""

from __future__ import annotations

from typing import Any, Protocol

Record = dict[str, Any]
# Flat remote row: {"id": "...", "title": "...", "rice_score": 4.0, ...}.

Generated = dict[str, Any] | list[Any] | str | None


class RemoteStore(Protocol):
    """
    Async persistence backend (Supabase/PostgREST-style).

    update() returns the number of matched rows; 0 means the row does not exist
    yet and the caller falls back to insert().
    """

    async def insert(self, table: str, record: Record) -> None: ...
    async def update(self, table: str, record: Record, match_id: str) -> int: ...
    async def delete(self, table: str, record_id: str) -> None: ...
    async def select_all(self, table: str) -> list[Record]: ...


class Generator(Protocol):
    """
    Blocking AI generation backend.

    generate() returns parsed output for the given kind, or None when the backend
    is unavailable or the answer could not be parsed. None is a normal outcome.
    """

    def generate(self, kind: str, inputs: dict[str, Any]) -> Generated: ...
