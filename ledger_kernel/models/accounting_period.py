"""
Module: ledger_kernel.models.accounting_period
Responsibility: ORM persistence for accounting periods and their lock flag.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - name is unique; start_date <= end_date (ck_period_dates).
    - Periods do not overlap (enforced by PeriodService at creation).
    - When is_locked is true, no journal entry dated inside the period may be
      created, edited, deleted or used as a reversal date.
"""

from datetime import date

from sqlalchemy import Boolean, CheckConstraint, Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class AccountingPeriod(TrackedBase):
    """A named date range whose lock state gates journal writes."""

    __tablename__ = "accounting_periods"

    __table_args__ = (
        UniqueConstraint("name", name="uq_accounting_period_name"),
        CheckConstraint("start_date <= end_date", name="ck_period_dates"),
        Index("idx_accounting_period_dates", "start_date", "end_date"),
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    is_locked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        state = "locked" if self.is_locked else "open"
        return f"<AccountingPeriod {self.name} {self.start_date}..{self.end_date} {state}>"
