"""
Module: ledger_kernel.models.user
Responsibility: ORM persistence for users and their role.
Architecture position: Kernel > Models.  May import from db/base.py only.

The role column is resolved into a capability set by UserService; the
kernel never reads it ambiently.
"""

from sqlalchemy import Boolean, CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.actor import Role

_ROLE_VALUES = ", ".join(f"'{r.value}'" for r in Role)


class User(TrackedBase):
    """A person who can act on the ledger."""

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
        CheckConstraint(f"role IN ({_ROLE_VALUES})", name="ck_user_role"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Role.USER.value,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
