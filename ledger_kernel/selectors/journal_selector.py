"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read-only queries over journal entries and the committed
    posting stream that feeds the aggregator and the reports.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - postings() returns lines in the deterministic ledger order
      (entry_date, entry_sequence, line_number).  entry_sequence is numeric,
      so JE-9999 still sorts before JE-10000.
    - Only committed rows are visible: the caller's transaction isolation
      guarantees that an entry's lines are seen all together or not at all.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.db.engine import translate_store_errors
from ledger_kernel.domain.dtos import JournalEntryRecord, PostingLine
from ledger_kernel.exceptions import JournalEntryNotFoundError
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.selectors.base import BaseSelector


class JournalSelector(BaseSelector[JournalEntry]):
    """Selector for journal entries and posting lines."""

    @translate_store_errors
    def get_entry(self, journal_entry_id: UUID) -> JournalEntryRecord:
        entry = self.session.get(JournalEntry, journal_entry_id)
        if entry is None:
            raise JournalEntryNotFoundError(str(journal_entry_id))
        return JournalEntryRecord.from_model(entry)

    @translate_store_errors
    def list_entries(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[JournalEntryRecord]:
        """Entries in the inclusive date range, newest first."""
        query = select(JournalEntry).order_by(
            JournalEntry.entry_date.desc(), JournalEntry.entry_sequence.desc(),
        )
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            query = query.where(JournalEntry.entry_date <= end_date)
        return [JournalEntryRecord.from_model(e) for e in self.session.scalars(query)]

    @translate_store_errors
    def find_reversal(self, journal_entry_id: UUID) -> JournalEntryRecord | None:
        entry = self.session.scalar(
            select(JournalEntry).where(JournalEntry.reversal_of_id == journal_entry_id)
        )
        return JournalEntryRecord.from_model(entry) if entry is not None else None

    @translate_store_errors
    def postings(
        self,
        end_date: date | None = None,
        account_ids: set[UUID] | None = None,
    ) -> list[PostingLine]:
        """
        Committed posting lines up to ``end_date`` (inclusive).

        There is no lower bound: reports need the earlier postings for
        opening balances.
        """
        query = (
            select(
                JournalEntryLine.id,
                JournalEntryLine.journal_entry_id,
                JournalEntry.entry_number,
                JournalEntry.entry_sequence,
                JournalEntry.entry_date,
                JournalEntryLine.line_number,
                JournalEntryLine.account_id,
                JournalEntryLine.debit_amount,
                JournalEntryLine.credit_amount,
                JournalEntryLine.description,
                JournalEntry.description,
                JournalEntry.reference,
            )
            .join(JournalEntry, JournalEntryLine.journal_entry_id == JournalEntry.id)
            .order_by(
                JournalEntry.entry_date,
                JournalEntry.entry_sequence,
                JournalEntryLine.line_number,
            )
        )
        if end_date is not None:
            query = query.where(JournalEntry.entry_date <= end_date)
        if account_ids is not None:
            query = query.where(JournalEntryLine.account_id.in_(account_ids))

        return [
            PostingLine(
                line_id=row[0],
                journal_entry_id=row[1],
                entry_number=row[2],
                entry_sequence=row[3],
                entry_date=row[4],
                line_number=row[5],
                account_id=row[6],
                debit_amount=row[7],
                credit_amount=row[8],
                description=row[9],
                entry_description=row[10],
                reference=row[11],
            )
            for row in self.session.execute(query)
        ]
