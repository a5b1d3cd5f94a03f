# tests/test_remote.py

from __future__ import annotations

import json

import httpx
import pytest

from planboard.core.errors import PersistenceFailure
from planboard.sync.remote import PostgrestRemoteStore


def _store(handler) -> tuple[PostgrestRemoteStore, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def _wrapped(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    store = PostgrestRemoteStore(
        "https://db.example.test/",
        "anon-key",
        transport=httpx.MockTransport(_wrapped),
    )
    return store, seen


@pytest.mark.asyncio
async def test_update_reports_matched_rows() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("id") == "eq.t1":
            return httpx.Response(200, json=[{"id": "t1"}])
        return httpx.Response(200, json=[])

    store, seen = _store(handler)
    assert await store.update("tasks", {"id": "t1", "title": "x"}, "t1") == 1
    assert await store.update("tasks", {"id": "t2", "title": "y"}, "t2") == 0

    req = seen[0]
    assert req.method == "PATCH"
    assert req.url.path == "/rest/v1/tasks"
    assert req.headers["apikey"] == "anon-key"
    assert req.headers["Authorization"] == "Bearer anon-key"
    assert req.headers["Prefer"] == "return=representation"
    assert json.loads(req.content) == {"id": "t1", "title": "x"}
    await store.aclose()


@pytest.mark.asyncio
async def test_insert_delete_and_select() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=[{"id": "p1", "name": "One"}, "junk"])
        return httpx.Response(201 if request.method == "POST" else 204)

    store, seen = _store(handler)
    await store.insert("projects", {"id": "p1", "name": "One"})
    await store.delete("projects", "p1")
    rows = await store.select_all("projects")

    assert rows == [{"id": "p1", "name": "One"}]
    assert [r.method for r in seen] == ["POST", "DELETE", "GET"]
    assert seen[1].url.params["id"] == "eq.p1"
    assert seen[2].url.params["select"] == "*"
    await store.aclose()


@pytest.mark.asyncio
async def test_errors_become_persistence_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(409, text="duplicate key")
        raise httpx.ConnectError("refused", request=request)

    store, _ = _store(handler)
    with pytest.raises(PersistenceFailure) as e:
        await store.insert("tasks", {"id": "t1"})
    assert e.value.record_id == "t1"
    assert "409" in str(e.value)

    with pytest.raises(PersistenceFailure):
        await store.select_all("tasks")
    await store.aclose()


def test_base_url_is_required() -> None:
    with pytest.raises(ValueError):
        PostgrestRemoteStore("  ", "key")
