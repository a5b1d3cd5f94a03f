# tests/test_records.py

from __future__ import annotations

from dataclasses import replace

import pytest

from planboard.sync import records
from planboard.tasks.task_models import Category, Document, Freelancer, Priority, Project, TaskStatus

from .fakes import make_task


def test_task_record_is_flat_snake_case() -> None:
    t = make_task("t1", rice=(8, 2, 90, 3), assignee_id="f1")
    rec = records.task_to_record(t)
    assert rec["project_id"] == "p1"
    assert rec["freelancer_id"] == "f1"
    assert rec["status"] == "Todo"
    assert rec["rice_reach"] == 8
    assert rec["rice_score"] == pytest.approx(4.8)

    back = records.task_from_record(rec)
    assert back == t


def test_task_without_rice_has_null_columns() -> None:
    rec = records.task_to_record(make_task("t1"))
    assert rec["rice_score"] is None
    assert records.task_from_record(rec).rice is None


def test_legacy_nested_rice_is_read() -> None:
    rec = {
        "id": "old",
        "title": "Legacy row",
        "status": "Done",
        "priority": "high",
        "project_id": "p1",
        "created_at": 5,
        "rice_score": {"reach": 10, "impact": 3, "confidence": 100, "effort": 0.5, "score": 1},
    }
    t = records.task_from_record(rec)
    assert t.status == TaskStatus.DONE
    assert t.completed is True
    assert t.priority == Priority.HIGH
    # the stored score is ignored; it is recomputed from the inputs
    assert t.rice.score == pytest.approx(60.0)


def test_project_and_freelancer_records() -> None:
    p = Project(
        id="p1",
        name="One",
        group="Work",
        strategic_goals=("grow",),
        categories=(Category("c1", "Core", "bg-red-500"),),
    )
    rec = records.project_to_record(p)
    assert rec["group_name"] == "Work"
    assert rec["custom_categories"] == [{"id": "c1", "name": "Core", "color": "bg-red-500"}]
    assert "freelancers" not in rec

    f = Freelancer(id="f1", name="Dana", project_id="p1", role="Designer")
    back = records.project_from_record(rec, freelancers=(f,))
    assert back == replace(p, freelancers=(f,))
    assert records.freelancer_from_record(records.freelancer_to_record(f)) == f


def test_document_record_and_unknown_table() -> None:
    d = Document(id="d1", title="PRD", context_id="p1", type="prd", content={"sections": []}, created_at=1)
    rec = records.to_record("documents", d)
    assert records.document_from_record(rec) == d
    with pytest.raises(ValueError):
        records.to_record("nope", d)
