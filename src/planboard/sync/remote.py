# src/planboard/sync/remote.py

"""
Remote store adapter over a Supabase/PostgREST HTTP API.

Only the save/load contract matters to the engine:
- insert(table, record)
- update(table, record, match_id) -> rows matched (0 means "no such row yet")
- delete(table, record_id)
- select_all(table)

Transport errors and non-2xx answers surface as PersistenceFailure; the sync
engine turns them into dirty/error bookkeeping.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import PersistenceFailure

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class PostgrestRemoteStore:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("remote base URL is required")
        self._base_url = base_url.rstrip("/") + "/rest/v1"
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds, connect=min(5.0, timeout_seconds)),
            transport=transport,
        )
        logger.info("Remote store configured url=%s", self._base_url)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(
        self,
        method: str,
        table: str,
        *,
        record_id: str | None = None,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        headers = {"Prefer": prefer} if prefer else None
        try:
            resp = await self._client.request(method, f"/{table}", params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise PersistenceFailure(
                f"{method} {table} failed: {e.__class__.__name__}", table=table, record_id=record_id
            ) from e

        if resp.is_error:
            raise PersistenceFailure(
                f"{method} {table} failed: {resp.status_code} {resp.text[:200]}",
                table=table,
                record_id=record_id,
            )
        return resp

    async def insert(self, table: str, record: Record) -> None:
        await self._send("POST", table, record_id=str(record.get("id")), json=record, prefer="return=minimal")

    async def update(self, table: str, record: Record, match_id: str) -> int:
        resp = await self._send(
            "PATCH",
            table,
            record_id=match_id,
            params={"id": f"eq.{match_id}"},
            json=record,
            prefer="return=representation",
        )
        try:
            rows = resp.json()
        except ValueError:
            return 0
        return len(rows) if isinstance(rows, list) else 0

    async def delete(self, table: str, record_id: str) -> None:
        await self._send("DELETE", table, record_id=record_id, params={"id": f"eq.{record_id}"})

    async def select_all(self, table: str) -> list[Record]:
        resp = await self._send("GET", table, params={"select": "*"})
        try:
            rows = resp.json()
        except ValueError as e:
            raise PersistenceFailure(f"GET {table} returned invalid JSON", table=table) from e
        if not isinstance(rows, list):
            return []
        return [r for r in rows if isinstance(r, dict)]
