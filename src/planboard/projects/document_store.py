# src/planboard/projects/document_store.py

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Iterable
from dataclasses import replace

from ..core.changes import DOCUMENTS_TABLE, ChangeKind, ChangeListener, RecordChange
from ..core.errors import DuplicateIdError, NotFoundError, ValidationError
from ..tasks.task_models import HOME_CONTEXT_ID, Document

logger = logging.getLogger(__name__)


def _copy(doc: Document) -> Document:
    # content is free-form JSON; hand out copies so callers cannot edit stored state
    return replace(doc, content=copy.deepcopy(doc.content))


class DocumentStore:
    """Product documents (PRDs, discovery notes, ...). Content is opaque here."""

    def __init__(self, documents: Iterable[Document] = ()) -> None:
        self._docs: dict[str, Document] = {d.id: _copy(d) for d in documents}
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _emit(self, change: RecordChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Document listener failed id=%s", change.record_id)

    def get(self, doc_id: str) -> Document | None:
        d = self._docs.get(doc_id)
        return _copy(d) if d is not None else None

    def all(self) -> list[Document]:
        return [_copy(d) for d in self._docs.values()]

    def list_by_project(self, context_id: str) -> list[Document]:
        items = [
            _copy(d)
            for d in self._docs.values()
            if context_id == HOME_CONTEXT_ID or d.context_id == context_id
        ]
        items.sort(key=lambda d: d.created_at, reverse=True)
        return items

    def create(self, doc: Document) -> Document:
        if not doc.title or not doc.title.strip():
            raise ValidationError("document title is required")
        if doc.id in self._docs:
            raise DuplicateIdError(doc.id, "document")
        stored = _copy(doc)
        self._docs[doc.id] = stored
        self._emit(RecordChange(DOCUMENTS_TABLE, ChangeKind.CREATED, doc.id, _copy(stored)))
        return _copy(stored)

    def update(self, doc: Document) -> Document:
        if doc.id not in self._docs:
            raise NotFoundError(doc.id, "document")
        stored = _copy(replace(doc, updated_at=int(time.time() * 1000)))
        self._docs[doc.id] = stored
        self._emit(RecordChange(DOCUMENTS_TABLE, ChangeKind.UPDATED, doc.id, _copy(stored)))
        return _copy(stored)

    def delete(self, doc_id: str) -> bool:
        if self._docs.pop(doc_id, None) is None:
            return False
        self._emit(RecordChange(DOCUMENTS_TABLE, ChangeKind.DELETED, doc_id, None))
        return True

    def replace_all(self, documents: Iterable[Document]) -> None:
        self._docs = {d.id: _copy(d) for d in documents}
