"""
Module: ledger_kernel.models.project
Responsibility: ORM persistence for projects, the optional cost-tracking
    tag carried by journal lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - name is unique (uq_project_name).
    - A project referenced by journal lines cannot be deleted; the line
      foreign key has no cascade, so the store refuses it as well.
"""

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Project(TrackedBase):
    """Named tag that journal lines may be allocated to."""

    __tablename__ = "projects"

    __table_args__ = (
        UniqueConstraint("name", name="uq_project_name"),
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # Inactive projects stay on historical lines but take no new postings
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Project {self.name}>"
