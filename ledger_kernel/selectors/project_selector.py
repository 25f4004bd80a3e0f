"""
Module: ledger_kernel.selectors.project_selector
Responsibility: Read-only queries over projects, including the lookup the
    journal service uses to check line projects.
Architecture position: Kernel > Selectors.
"""

from typing import Iterable
from uuid import UUID

from sqlalchemy import exists, select

from ledger_kernel.db.engine import translate_store_errors
from ledger_kernel.domain.dtos import ProjectInfo
from ledger_kernel.exceptions import ProjectNotFoundError
from ledger_kernel.models.journal import JournalEntryLine
from ledger_kernel.models.project import Project
from ledger_kernel.selectors.base import BaseSelector


class ProjectSelector(BaseSelector[Project]):
    """Selector for projects."""

    @translate_store_errors
    def get_project(self, project_id: UUID) -> ProjectInfo:
        project = self.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        return ProjectInfo.from_model(project)

    @translate_store_errors
    def list_projects(self, include_inactive: bool = False) -> list[ProjectInfo]:
        """Projects by name; active ones only unless asked otherwise."""
        query = select(Project).order_by(Project.name)
        if not include_inactive:
            query = query.where(Project.is_active.is_(True))
        return [ProjectInfo.from_model(p) for p in self.session.scalars(query)]

    @translate_store_errors
    def projects_by_id(self, project_ids: Iterable[UUID]) -> dict[UUID, ProjectInfo]:
        """Existing projects among ``project_ids``; unknown ids are omitted."""
        ids = set(project_ids)
        if not ids:
            return {}
        query = select(Project).where(Project.id.in_(ids))
        return {p.id: ProjectInfo.from_model(p) for p in self.session.scalars(query)}

    @translate_store_errors
    def is_referenced(self, project_id: UUID) -> bool:
        return bool(
            self.session.scalar(
                select(exists().where(JournalEntryLine.project_id == project_id))
            )
        )
