# tests/test_project_store.py

from __future__ import annotations

from dataclasses import replace

import pytest

from planboard.core.changes import ChangeKind, RecordChange
from planboard.core.errors import DuplicateIdError, ValidationError
from planboard.projects.document_store import DocumentStore
from planboard.projects.project_store import DEFAULT_CATEGORIES, ProjectStore
from planboard.tasks.task_models import HOME_CONTEXT_ID, Category, Document, Freelancer, Project


def test_home_cannot_be_stored() -> None:
    store = ProjectStore()
    with pytest.raises(ValidationError):
        store.create(Project(id=HOME_CONTEXT_ID, name="Home"))


def test_categories_default_until_customized() -> None:
    store = ProjectStore([Project(id="p1", name="One")])
    assert store.categories_for("p1") == DEFAULT_CATEGORIES

    store.add_category("p1", Category("c1", "Core"))
    assert [c.id for c in store.categories_for("p1")] == ["c1"]
    with pytest.raises(DuplicateIdError):
        store.add_category("p1", Category("c1", "Again"))


def test_freelancers_belong_to_one_project() -> None:
    store = ProjectStore([Project(id="p1", name="One"), Project(id="p2", name="Two")])
    events: list[RecordChange] = []
    store.subscribe(events.append)

    f = store.add_freelancer(Freelancer(id="f1", name="Dana", project_id="p1"))
    assert store.freelancers_for("p1") == (f,)
    with pytest.raises(ValidationError):
        store.update_freelancer(replace(f, project_id="p2"))

    # project edits never drop the team
    store.update(replace(store.get("p1"), name="Renamed", freelancers=()))
    assert store.get("p1").freelancers == (f,)

    assert store.delete("p1") is True
    assert [(e.table, e.kind) for e in events][-2:] == [
        ("freelancers", ChangeKind.DELETED),
        ("projects", ChangeKind.DELETED),
    ]
    assert store.find_freelancer("f1") is None


def test_document_store_hands_out_copies() -> None:
    docs = DocumentStore()
    docs.create(Document(id="d1", title="PRD", context_id="p1", type="prd", content={"goals": ["a"]}))

    got = docs.get("d1")
    got.content["goals"].append("mutated")
    assert docs.get("d1").content == {"goals": ["a"]}

    updated = docs.update(replace(docs.get("d1"), title="PRD v2"))
    assert updated.updated_at is not None
    assert [d.id for d in docs.list_by_project(HOME_CONTEXT_ID)] == ["d1"]
    with pytest.raises(ValidationError):
        docs.create(Document(id="d2", title=" ", context_id="p1", type="prd"))
