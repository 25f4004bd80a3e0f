"""
JournalService -- the only writer of journal entries.

Responsibility:
    Validates proposed entries with JournalEntryValidator and persists the
    header and every line atomically.  Also edits, deletes, verifies and
    reverses committed entries.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/, selectors/.

Invariants enforced:
    - An entry's header and lines are written in one savepoint: a reader
      sees all of them or none.
    - Stored totals are taken from the validated lines, so total_debit ==
      total_credit for every committed entry.
    - No entry is created, edited, deleted or reversed into a locked
      accounting period.  An edit checks both the old and the new date.
    - Reversal never mutates the original; it posts a NEW entry with the
      sides swapped.  reversal_of_id is UNIQUE, so an entry is reversed at
      most once even under concurrent reversals.

Failure modes:
    - Validation errors from JournalEntryValidator (InsufficientLinesError,
      InvalidLineError, HeaderAccountPostingError, InvalidAmountError,
      UnbalancedEntryError, ClosedPeriodError).
    - ProjectNotFoundError for a line tagged with an unknown project;
      InvalidLineError for an inactive one.
    - JournalEntryNotFoundError on an unknown entry id.
    - EntryAlreadyReversedError on a second reversal, and on edit or delete
      of an entry that already has a reversal.
    - ReversalEntryImmutableError on edit, delete or reversal of an entry
      that is itself a reversal.
    - UnauthorizedActorError without the edit_ledger capability.
"""

from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.db.engine import translate_store_errors
from ledger_kernel.domain.actor import Actor, Capability
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import (
    EntryHeader,
    EntryVerification,
    JournalEntryRecord,
    LineSpec,
    ValidatedEntry,
)
from ledger_kernel.domain.numbering import JOURNAL_ENTRY_FORMAT, NumberFormat
from ledger_kernel.domain.validator import JournalEntryValidator
from ledger_kernel.exceptions import (
    ClosedPeriodError,
    EntryAlreadyReversedError,
    InvalidLineError,
    JournalEntryNotFoundError,
    LedgerKernelError,
    ProjectNotFoundError,
    ReversalEntryImmutableError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.period_selector import PeriodSelector
from ledger_kernel.selectors.project_selector import ProjectSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal")


class JournalService(BaseService[JournalEntry]):
    """
    Write side of the journal.

    Contract:
        Every write requires an actor holding edit_ledger.  Methods flush
        but never commit; the caller owns the transaction.

    Guarantees:
        - A failed write leaves the caller's transaction unchanged
          (savepoint rollback).
        - Entry numbers come from SequenceService, never from counting rows.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        validator: JournalEntryValidator | None = None,
        entry_number_format: NumberFormat = JOURNAL_ENTRY_FORMAT,
    ):
        super().__init__(session, clock)
        self._validator = validator or JournalEntryValidator()
        self._sequence = SequenceService(
            session, journal_entry_format=entry_number_format,
        )
        self._accounts = AccountSelector(session)
        self._periods = PeriodSelector(session)
        self._journal = JournalSelector(session)
        self._projects = ProjectSelector(session)

    # =========================================================================
    # Create
    # =========================================================================

    @translate_store_errors
    def create_entry(
        self,
        header: EntryHeader,
        lines: Sequence[LineSpec],
        actor: Actor,
    ) -> JournalEntryRecord:
        """
        Validate and persist a journal entry.

        Preconditions:
            actor holds edit_ledger.

        Postconditions:
            The entry and all its lines are flushed with a fresh
            entry_number, or nothing is written.
        """
        actor.require(Capability.EDIT_LEDGER, "create_entry")
        validated = self._validate(header, lines)
        entry = self._persist(validated, actor)
        return JournalEntryRecord.from_model(entry)

    def _validate(
        self, header: EntryHeader, lines: Sequence[LineSpec],
    ) -> ValidatedEntry:
        accounts = self._accounts.accounts_by_id(line.account_id for line in lines)
        try:
            validated = self._validator.validate(header, lines, accounts, self._periods)
            self._check_projects(validated)
            return validated
        except LedgerKernelError as exc:
            logger.warning(
                "journal_entry_rejected",
                extra={
                    "entry_date": header.entry_date,
                    "line_count": len(lines),
                    "error_code": getattr(exc, "code", type(exc).__name__),
                },
            )
            raise

    def _check_projects(self, validated: ValidatedEntry) -> None:
        """Tagged lines must name an existing, active project."""
        projects = self._projects.projects_by_id(
            line.project_id for line in validated.lines if line.project_id is not None
        )
        for line in validated.lines:
            if line.project_id is None:
                continue
            project = projects.get(line.project_id)
            if project is None:
                raise ProjectNotFoundError(str(line.project_id))
            if not project.is_active:
                raise InvalidLineError(
                    line.line_number,
                    str(line.account_id),
                    f"project {project.name} is inactive",
                )

    def _persist(
        self,
        validated: ValidatedEntry,
        actor: Actor,
        reversal_of_id: UUID | None = None,
    ) -> JournalEntry:
        header = validated.header
        savepoint = self.session.begin_nested()
        try:
            sequence, number = self._sequence.allocate(SequenceService.JOURNAL_ENTRY)
            entry = JournalEntry(
                entry_sequence=sequence,
                entry_number=number,
                entry_date=header.entry_date,
                description=header.description,
                reference=header.reference,
                total_debit=validated.total_debit,
                total_credit=validated.total_credit,
                reversal_of_id=reversal_of_id,
                created_by_id=actor.user_id,
            )
            entry.lines = self._build_lines(validated)
            self.session.add(entry)
            self.session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            if reversal_of_id is not None:
                raise EntryAlreadyReversedError(str(reversal_of_id)) from exc
            raise

        with LogContext.bind(entry_id=str(entry.id), actor_id=str(actor.user_id)):
            logger.info(
                "journal_entry_committed",
                extra={
                    "entry_number": entry.entry_number,
                    "entry_date": entry.entry_date,
                    "line_count": len(validated.lines),
                    "total_debit": validated.total_debit,
                    "total_credit": validated.total_credit,
                    "reversal_of_id": str(reversal_of_id) if reversal_of_id else None,
                },
            )
        return entry

    @staticmethod
    def _build_lines(validated: ValidatedEntry) -> list[JournalEntryLine]:
        return [
            JournalEntryLine(
                line_number=line.line_number,
                account_id=line.account_id,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                description=line.description,
                project_id=line.project_id,
                document_ref=line.document_ref,
            )
            for line in validated.lines
        ]

    # =========================================================================
    # Update / delete
    # =========================================================================

    @translate_store_errors
    def update_entry(
        self,
        journal_entry_id: UUID,
        header: EntryHeader,
        lines: Sequence[LineSpec],
        actor: Actor,
    ) -> JournalEntryRecord:
        """
        Replace an entry's header and its whole line set.

        The current date must not be in a locked period (that would edit
        closed history) and neither may the new one (the validator checks
        that).  entry_number is kept.
        """
        actor.require(Capability.EDIT_LEDGER, "update_entry")
        entry = self._get_entry_model(journal_entry_id)
        self._ensure_not_locked(entry.entry_date)
        self._ensure_mutable(entry)
        validated = self._validate(header, lines)

        savepoint = self.session.begin_nested()
        try:
            entry.lines.clear()
            # Old lines must be gone before new ones reuse their line numbers
            self.session.flush()
            entry.entry_date = header.entry_date
            entry.description = header.description
            entry.reference = header.reference
            entry.total_debit = validated.total_debit
            entry.total_credit = validated.total_credit
            entry.updated_by_id = actor.user_id
            entry.lines.extend(self._build_lines(validated))
            self.session.flush()
            savepoint.commit()
        except Exception:
            savepoint.rollback()
            raise

        logger.info(
            "journal_entry_updated",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry.entry_number,
                "line_count": len(validated.lines),
            },
        )
        return JournalEntryRecord.from_model(entry)

    @translate_store_errors
    def delete_entry(self, journal_entry_id: UUID, actor: Actor) -> None:
        """Delete an entry and its lines.  Locked periods are immutable."""
        actor.require(Capability.EDIT_LEDGER, "delete_entry")
        entry = self._get_entry_model(journal_entry_id)
        self._ensure_not_locked(entry.entry_date)
        self._ensure_mutable(entry)
        entry_number = entry.entry_number
        self.session.delete(entry)
        self.session.flush()
        logger.info(
            "journal_entry_deleted",
            extra={"entry_id": str(journal_entry_id), "entry_number": entry_number},
        )

    # =========================================================================
    # Reads, verification and reversal
    # =========================================================================

    def get_entry(self, journal_entry_id: UUID) -> JournalEntryRecord:
        return self._journal.get_entry(journal_entry_id)

    def list_entries(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[JournalEntryRecord]:
        return self._journal.list_entries(start_date, end_date)

    @translate_store_errors
    def verify_entry(self, journal_entry_id: UUID) -> EntryVerification:
        """Re-derive the totals from the stored lines and compare."""
        entry = self._get_entry_model(journal_entry_id)
        verification = EntryVerification(
            journal_entry_id=entry.id,
            line_debits=entry.line_debits,
            line_credits=entry.line_credits,
            stored_debit=entry.total_debit,
            stored_credit=entry.total_credit,
            verified_at=self.clock.now(),
        )
        if not (verification.is_balanced and verification.totals_match_lines):
            logger.error(
                "journal_entry_verification_failed",
                extra={
                    "entry_id": str(entry.id),
                    "line_debits": verification.line_debits,
                    "line_credits": verification.line_credits,
                    "stored_debit": verification.stored_debit,
                    "stored_credit": verification.stored_credit,
                },
            )
        return verification

    @translate_store_errors
    def reverse_entry(
        self,
        journal_entry_id: UUID,
        reversal_date: date,
        actor: Actor,
        description: str | None = None,
    ) -> JournalEntryRecord:
        """
        Post a new entry that offsets ``journal_entry_id``.

        Every line is copied with debit and credit swapped.  The reversal
        is validated like any other entry, so reversal_date must not be in
        a locked period.

        Raises:
            EntryAlreadyReversedError: A reversal already exists.
            ReversalEntryImmutableError: The entry is itself a reversal.
        """
        actor.require(Capability.EDIT_LEDGER, "reverse_entry")
        original = self._get_entry_model(journal_entry_id)
        self._ensure_mutable(original)

        header = EntryHeader(
            entry_date=reversal_date,
            description=description or f"Reversal of {original.entry_number}",
            reference=original.entry_number,
        )
        lines = [
            LineSpec(
                account_id=line.account_id,
                debit_amount=line.credit_amount,
                credit_amount=line.debit_amount,
                description=line.description,
                project_id=line.project_id,
                document_ref=line.document_ref,
            )
            for line in original.lines
        ]
        validated = self._validate(header, lines)
        entry = self._persist(validated, actor, reversal_of_id=original.id)
        logger.info(
            "journal_entry_reversed",
            extra={
                "entry_id": str(original.id),
                "reversal_entry_id": str(entry.id),
                "reversal_date": reversal_date,
            },
        )
        return JournalEntryRecord.from_model(entry)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_entry_model(self, journal_entry_id: UUID) -> JournalEntry:
        entry = self.session.get(JournalEntry, journal_entry_id)
        if entry is None:
            raise JournalEntryNotFoundError(str(journal_entry_id))
        return entry

    def _ensure_not_locked(self, entry_date: date) -> None:
        locked = self._periods.locked_period_for(entry_date)
        if locked is not None:
            raise ClosedPeriodError(locked.name, entry_date.isoformat())

    def _ensure_mutable(self, entry: JournalEntry) -> None:
        """Reversal pairs are frozen on both sides."""
        if entry.reversal_of_id is not None:
            raise ReversalEntryImmutableError(str(entry.id), str(entry.reversal_of_id))
        if self._journal.find_reversal(entry.id) is not None:
            raise EntryAlreadyReversedError(str(entry.id))
