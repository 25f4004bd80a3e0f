"""
ProjectService -- project maintenance.

Responsibility:
    Creates, renames, deactivates and deletes the projects that journal
    lines can be tagged with.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/, selectors/.

Invariants enforced:
    - Project names are unique after trimming (UNIQUE constraint; a
      violation rolls back its savepoint only).
    - Deletion is one guarded DELETE ... WHERE NOT EXISTS(lines), so a
      concurrent posting cannot slip between the check and the delete.
      Deactivation is the way to retire a project that has history.

Failure modes:
    - InvalidProjectError for a blank name.
    - DuplicateProjectError when the name is taken.
    - ProjectNotFoundError on an unknown id.
    - ProjectInUseError on delete of a project referenced by lines.
    - UnauthorizedActorError without the edit_ledger capability.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import delete, exists
from sqlalchemy.exc import IntegrityError

from ledger_kernel.db.engine import translate_store_errors
from ledger_kernel.domain.actor import Actor, Capability
from ledger_kernel.domain.dtos import ProjectInfo
from ledger_kernel.exceptions import (
    ConcurrentModificationError,
    DuplicateProjectError,
    InvalidProjectError,
    ProjectInUseError,
    ProjectNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.journal import JournalEntryLine
from ledger_kernel.models.project import Project
from ledger_kernel.selectors.project_selector import ProjectSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.project")

_UNSET: Any = object()


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidProjectError("name is required")
    return cleaned


def _clean_description(description: str | None) -> str | None:
    return (description or "").strip() or None


class ProjectService(BaseService[Project]):
    """Write side of projects."""

    @translate_store_errors
    def create_project(
        self, name: str, actor: Actor, description: str | None = None,
    ) -> ProjectInfo:
        actor.require(Capability.EDIT_LEDGER, "create_project")
        project = Project(
            name=_clean_name(name),
            description=_clean_description(description),
            is_active=True,
            created_by_id=actor.user_id,
        )
        try:
            with self.session.begin_nested():
                self.session.add(project)
                self.session.flush()
        except IntegrityError as exc:
            raise DuplicateProjectError(project.name) from exc

        logger.info(
            "project_created",
            extra={"project_id": str(project.id), "project_name": project.name},
        )
        return ProjectInfo.from_model(project)

    @translate_store_errors
    def update_project(
        self,
        project_id: UUID,
        actor: Actor,
        name: str | None = None,
        description: Any = _UNSET,
        is_active: bool | None = None,
    ) -> ProjectInfo:
        """Rename, re-describe or (de)activate; ``description=None`` clears it."""
        actor.require(Capability.EDIT_LEDGER, "update_project")
        project = self._get_project_model(project_id)
        new_name = _clean_name(name) if name is not None else None

        try:
            with self.session.begin_nested():
                if new_name is not None:
                    project.name = new_name
                if description is not _UNSET:
                    project.description = _clean_description(description)
                if is_active is not None:
                    project.is_active = is_active
                project.updated_by_id = actor.user_id
                self.session.flush()
        except IntegrityError as exc:
            raise DuplicateProjectError(new_name or project.name) from exc

        logger.info("project_updated", extra={"project_id": str(project_id)})
        return ProjectInfo.from_model(project)

    def deactivate_project(self, project_id: UUID, actor: Actor) -> ProjectInfo:
        return self.update_project(project_id, actor, is_active=False)

    @translate_store_errors
    def delete_project(self, project_id: UUID, actor: Actor) -> None:
        actor.require(Capability.EDIT_LEDGER, "delete_project")
        result = self.session.execute(
            delete(Project)
            .where(Project.id == project_id)
            .where(~exists().where(JournalEntryLine.project_id == project_id))
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 1:
            logger.info("project_deleted", extra={"project_id": str(project_id)})
            return

        self._get_project_model(project_id)
        if ProjectSelector(self.session).is_referenced(project_id):
            logger.warning("project_delete_blocked", extra={"project_id": str(project_id)})
            raise ProjectInUseError(str(project_id))
        raise ConcurrentModificationError("project", str(project_id), "deletable")

    def list_projects(self, include_inactive: bool = False) -> list[ProjectInfo]:
        return ProjectSelector(self.session).list_projects(include_inactive)

    def _get_project_model(self, project_id: UUID) -> Project:
        project = self.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        return project
