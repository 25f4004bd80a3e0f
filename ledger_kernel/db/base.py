"""
Module: ledger_kernel.db.base
Responsibility: Declarative roots for the ledger tables.  ``Base`` fixes how
    Python annotations become columns; ``TrackedBase`` adds who/when columns
    to every user-editable table.
Architecture position: Kernel > DB.  Imported by models/, services/ (for
    metadata) and selectors/.  Depends only on db/types.py.

Invariants enforced:
    - Every row is keyed by a uuid4 held in a 36-character string column.
    - A ``Decimal`` annotation always means a Money column (18 digits, 2 after
      the point); no monetary column is ever declared as float.
    - Rows written through TrackedBase always name the actor that created
      them.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ledger_kernel.db.types import MONEY_PRECISION, MONEY_SCALE, Money, UUIDString


class Base(DeclarativeBase):
    """Shared metadata and annotation-to-column mapping for all tables."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Money(MONEY_PRECISION, MONEY_SCALE),
        datetime: DateTime(timezone=True),
        date: Date,
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds creation and last-change stamps.

    ``created_at`` comes from the database clock on insert; ``updated_at``
    is refreshed on every UPDATE that does not set it itself.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
    created_by_id: Mapped[UUID] = mapped_column(UUIDString())
    updated_by_id: Mapped[UUID | None] = mapped_column(UUIDString())


# Actor recorded on rows installed by the system itself (seed data).
SYSTEM_ACTOR_ID = UUID(int=0)
