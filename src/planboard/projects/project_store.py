# src/planboard/projects/project_store.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from ..core.changes import (
    FREELANCERS_TABLE,
    PROJECTS_TABLE,
    ChangeKind,
    ChangeListener,
    RecordChange,
)
from ..core.errors import DuplicateIdError, NotFoundError, ValidationError
from ..tasks.task_models import HOME_CONTEXT_ID, Category, Freelancer, Project

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category("product", "Product", "bg-blue-500"),
    Category("tech", "Tech", "bg-purple-500"),
    Category("strategy", "Strategy", "bg-indigo-500"),
    Category("content", "Content", "bg-pink-500"),
    Category("growth", "Growth", "bg-green-500"),
    Category("personal", "Personal", "bg-orange-500"),
    Category("health", "Health", "bg-red-500"),
    Category("admin", "Admin", "bg-slate-500"),
    Category("finance", "Finance", "bg-emerald-500"),
    Category("marketing", "Marketing", "bg-cyan-500"),
)


class ProjectStore:
    """
    In-memory projects with their categories and team members (freelancers).

    The "home" id is reserved: it names the aggregate view over all tasks and
    is never stored. Freelancers belong to exactly one project; tasks point at
    them by id only, so removing a freelancer leaves tasks untouched.
    """

    def __init__(self, projects: Iterable[Project] = ()) -> None:
        self._projects: dict[str, Project] = {}
        self._listeners: list[ChangeListener] = []
        for p in projects:
            self._check_project(p)
            if p.id in self._projects:
                raise DuplicateIdError(p.id, "project")
            self._projects[p.id] = p

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _emit(self, change: RecordChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Project listener failed table=%s id=%s", change.table, change.record_id)

    @staticmethod
    def _check_project(project: Project) -> None:
        if not project.id or not project.id.strip():
            raise ValidationError("project id is required")
        if project.id == HOME_CONTEXT_ID:
            raise ValidationError("'home' is the aggregate view and cannot be stored as a project")
        if not project.name or not project.name.strip():
            raise ValidationError("project name is required")

    def _require(self, project_id: str) -> Project:
        p = self._projects.get(project_id)
        if p is None:
            raise NotFoundError(project_id, "project")
        return p

    # ---- projects ----

    def get(self, project_id: str) -> Project | None:
        return self._projects.get(project_id)

    def all(self) -> list[Project]:
        return list(self._projects.values())

    def count(self) -> int:
        return len(self._projects)

    def create(self, project: Project) -> Project:
        self._check_project(project)
        if project.id in self._projects:
            raise DuplicateIdError(project.id, "project")
        self._projects[project.id] = project
        logger.debug("Project created id=%s name=%s", project.id, project.name)
        self._emit(RecordChange(PROJECTS_TABLE, ChangeKind.CREATED, project.id, project))
        return project

    def update(self, project: Project) -> Project:
        self._check_project(project)
        current = self._require(project.id)
        # Team membership is edited through the freelancer operations.
        project = replace(project, freelancers=current.freelancers)
        self._projects[project.id] = project
        self._emit(RecordChange(PROJECTS_TABLE, ChangeKind.UPDATED, project.id, project))
        return project

    def delete(self, project_id: str) -> bool:
        """Remove a project. Its tasks are not touched (they keep the dangling id)."""
        removed = self._projects.pop(project_id, None)
        if removed is None:
            return False
        for f in removed.freelancers:
            self._emit(RecordChange(FREELANCERS_TABLE, ChangeKind.DELETED, f.id, None))
        self._emit(RecordChange(PROJECTS_TABLE, ChangeKind.DELETED, project_id, None))
        return True

    def replace_all(self, projects: Iterable[Project]) -> None:
        new: dict[str, Project] = {}
        for p in projects:
            self._check_project(p)
            new[p.id] = p
        self._projects = new

    # ---- categories ----

    def categories_for(self, project_id: str) -> tuple[Category, ...]:
        p = self._projects.get(project_id)
        if p is None or not p.categories:
            return DEFAULT_CATEGORIES
        return p.categories

    def add_category(self, project_id: str, category: Category) -> Project:
        p = self._require(project_id)
        if not category.name.strip():
            raise ValidationError("category name is required")
        if any(c.id == category.id for c in p.categories):
            raise DuplicateIdError(category.id, "category")
        return self.update(replace(p, categories=(*p.categories, category)))

    def delete_category(self, project_id: str, category_id: str) -> Project:
        p = self._require(project_id)
        return self.update(replace(p, categories=tuple(c for c in p.categories if c.id != category_id)))

    # ---- freelancers ----

    def freelancers_for(self, project_id: str) -> tuple[Freelancer, ...]:
        p = self._projects.get(project_id)
        return p.freelancers if p is not None else ()

    def all_freelancers(self) -> list[Freelancer]:
        return [f for p in self._projects.values() for f in p.freelancers]

    def find_freelancer(self, freelancer_id: str | None) -> Freelancer | None:
        """Resolve a soft assignee reference; None when it no longer resolves."""
        if not freelancer_id:
            return None
        for p in self._projects.values():
            for f in p.freelancers:
                if f.id == freelancer_id:
                    return f
        return None

    def add_freelancer(self, freelancer: Freelancer) -> Freelancer:
        if not freelancer.name.strip():
            raise ValidationError("freelancer name is required")
        p = self._require(freelancer.project_id)
        if self.find_freelancer(freelancer.id) is not None:
            raise DuplicateIdError(freelancer.id, "freelancer")
        self._projects[p.id] = replace(p, freelancers=(*p.freelancers, freelancer))
        self._emit(RecordChange(FREELANCERS_TABLE, ChangeKind.CREATED, freelancer.id, freelancer))
        return freelancer

    def update_freelancer(self, freelancer: Freelancer) -> Freelancer:
        current = self.find_freelancer(freelancer.id)
        if current is None:
            raise NotFoundError(freelancer.id, "freelancer")
        if current.project_id != freelancer.project_id:
            raise ValidationError("a freelancer cannot move between projects")
        p = self._require(freelancer.project_id)
        self._projects[p.id] = replace(
            p,
            freelancers=tuple(freelancer if f.id == freelancer.id else f for f in p.freelancers),
        )
        self._emit(RecordChange(FREELANCERS_TABLE, ChangeKind.UPDATED, freelancer.id, freelancer))
        return freelancer

    def delete_freelancer(self, freelancer_id: str) -> bool:
        current = self.find_freelancer(freelancer_id)
        if current is None:
            return False
        p = self._require(current.project_id)
        self._projects[p.id] = replace(
            p,
            freelancers=tuple(f for f in p.freelancers if f.id != freelancer_id),
        )
        self._emit(RecordChange(FREELANCERS_TABLE, ChangeKind.DELETED, freelancer_id, None))
        return True
