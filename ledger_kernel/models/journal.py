"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines -- the
    double-entry transaction records that every balance is derived from.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - entry_number is unique (uq_journal_entry_number).
    - entry_sequence is unique and orders entries; entry_number is only
      its rendering.
    - A line's project_id, when set, references an existing project.
    - A JournalEntry exclusively owns its lines: deleting the entry deletes
      them (ORM cascade plus ON DELETE CASCADE).
    - Every line has debit_amount >= 0 and credit_amount >= 0 with exactly
      one side nonzero (ck_line_one_side).
    - total_debit == total_credit for a committed entry; the totals are a
      denormalized cache that JournalService writes from the validated
      lines and verify_entry re-derives.
    - An entry is reversed at most once (reversal_of_id is UNIQUE).

Failure modes:
    - IntegrityError on duplicate entry_number or a second reversal.
    - IntegrityError on a line pointing at an unknown project.
    - IntegrityError on a line violating ck_line_one_side.

Audit relevance:
    Lines are created only as part of an entry's creation or edit
    transaction and are immutable once the owning period is locked.
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import Base, TrackedBase
from ledger_kernel.db.types import UUIDString
from ledger_kernel.domain.money import ZERO, amounts_equal

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class JournalEntry(TrackedBase):
    """
    Journal entry header.

    Contract:
        Written only by JournalService after JournalEntryValidator accepts
        the lines.  created_by_id is the acting user.

    Guarantees:
        - entry_number is unique and sequential (sequence_counters).
        - lines are ordered by line_number.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("entry_number", name="uq_journal_entry_number"),
        UniqueConstraint("entry_sequence", name="uq_journal_entry_sequence"),
        UniqueConstraint("reversal_of_id", name="uq_journal_entry_reversal_of"),
        Index("idx_journal_entry_date", "entry_date"),
    )

    # Numeric position in the entry sequence; orders entries sharing a date
    entry_sequence: Mapped[int] = mapped_column(nullable=False)

    entry_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    entry_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    reference: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    total_debit: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=ZERO,
    )

    total_credit: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=ZERO,
    )

    # If this is a reversal, points to the original entry
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    # Relationships
    lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="JournalEntryLine.line_number",
        lazy="selectin",
    )

    reversal_of: Mapped["JournalEntry | None"] = relationship(
        remote_side="JournalEntry.id",
        foreign_keys=[reversal_of_id],
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number} {self.entry_date}>"

    @property
    def line_debits(self) -> Decimal:
        """Sum of debit amounts re-derived from the lines."""
        return sum((line.debit_amount for line in self.lines), ZERO)

    @property
    def line_credits(self) -> Decimal:
        """Sum of credit amounts re-derived from the lines."""
        return sum((line.credit_amount for line in self.lines), ZERO)

    @property
    def is_balanced(self) -> bool:
        """Check the balanced predicate from the lines, not the cached totals."""
        return amounts_equal(self.line_debits, self.line_credits)


class JournalEntryLine(Base):
    """
    Individual debit or credit line within a journal entry.

    Guarantees:
        - Exactly one of debit_amount / credit_amount is positive.
        - (journal_entry_id, line_number) is unique.
    """

    __tablename__ = "journal_entry_lines"

    __table_args__ = (
        UniqueConstraint(
            "journal_entry_id", "line_number", name="uq_journal_line_number",
        ),
        CheckConstraint(
            "debit_amount >= 0 AND credit_amount >= 0 "
            "AND ((debit_amount > 0 AND credit_amount = 0) "
            "OR (credit_amount > 0 AND debit_amount = 0))",
            name="ck_line_one_side",
        ),
        Index("idx_journal_line_account", "account_id"),
        Index("idx_journal_line_entry", "journal_entry_id"),
        Index("idx_journal_line_project", "project_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    debit_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=ZERO,
    )

    credit_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=ZERO,
    )

    project_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=True,
    )

    # Attached supporting document (path or storage key)
    document_ref: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # Relationships
    entry: Mapped[JournalEntry] = relationship(
        back_populates="lines",
    )

    account: Mapped["Account"] = relationship()

    def __repr__(self) -> str:
        side = "Dr" if self.debit_amount > 0 else "Cr"
        amount = self.debit_amount if self.debit_amount > 0 else self.credit_amount
        return f"<JournalEntryLine {self.line_number} {side} {amount}>"
