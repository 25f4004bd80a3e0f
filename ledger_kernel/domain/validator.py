"""
JournalEntryValidator -- double-entry rules for a proposed entry.

Responsibility:
    Checks a proposed entry (header + line specs) against the posting rules
    and returns the normalized, rounded line set ready for commit.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    The account lookup and the period lock lookup are passed in by
    JournalService; the validator never reads the store.

Invariants enforced (rules evaluated in this order):
    1. At least two lines.
    2. Every line references an existing, active, non-header account.
    3. Every line has a positive amount in exactly one of debit / credit.
    4. Sum of debits equals sum of credits at currency precision
       (amounts_equal), never by raw comparison of unrounded values.
    5. The entry date is not inside a locked accounting period.

Failure modes:
    - InsufficientLinesError      (rule 1)
    - InvalidLineError            (rule 2: missing or inactive account)
    - HeaderAccountPostingError   (rule 2: header account)
    - InvalidAmountError          (rule 3)
    - UnbalancedEntryError        (rule 4, imbalance = debits - credits)
    - ClosedPeriodError           (rule 5)
"""

from __future__ import annotations

from datetime import date
from typing import Mapping, Protocol, Sequence
from uuid import UUID

from ledger_kernel.domain.dtos import (
    AccountInfo,
    AccountingPeriodInfo,
    EntryHeader,
    LineSpec,
    ValidatedEntry,
    ValidatedLine,
)
from ledger_kernel.domain.money import ZERO, amounts_equal, sum_money, to_money
from ledger_kernel.exceptions import (
    ClosedPeriodError,
    HeaderAccountPostingError,
    InsufficientLinesError,
    InvalidAmountError,
    InvalidLineError,
    UnbalancedEntryError,
)

MINIMUM_LINES = 2


class PeriodLockProvider(Protocol):
    """Answers which locked period, if any, contains a date."""

    def locked_period_for(self, entry_date: date) -> AccountingPeriodInfo | None:
        ...


class NoPeriodLocks:
    """Lock provider for callers with no accounting periods."""

    def locked_period_for(self, entry_date: date) -> AccountingPeriodInfo | None:
        return None


class JournalEntryValidator:
    """
    Stateless validator for proposed journal entries.

    Contract:
        validate() either returns a ValidatedEntry or raises the typed
        error of the first rule that fails.  It has no side effects.
    """

    def __init__(self, minimum_lines: int = MINIMUM_LINES):
        self._minimum_lines = minimum_lines

    def validate(
        self,
        header: EntryHeader,
        lines: Sequence[LineSpec],
        accounts: Mapping[UUID, AccountInfo],
        periods: PeriodLockProvider | None = None,
    ) -> ValidatedEntry:
        if len(lines) < self._minimum_lines:
            raise InsufficientLinesError(len(lines), self._minimum_lines)

        for line_number, line in enumerate(lines, start=1):
            self._check_account(line_number, line, accounts)

        validated = tuple(
            self._normalize_line(line_number, line)
            for line_number, line in enumerate(lines, start=1)
        )

        total_debit = sum_money(line.debit_amount for line in validated)
        total_credit = sum_money(line.credit_amount for line in validated)
        if not amounts_equal(total_debit, total_credit):
            raise UnbalancedEntryError(total_debit, total_credit)

        if periods is not None:
            locked = periods.locked_period_for(header.entry_date)
            if locked is not None:
                raise ClosedPeriodError(locked.name, header.entry_date.isoformat())

        return ValidatedEntry(
            header=header,
            lines=validated,
            total_debit=total_debit,
            total_credit=total_credit,
        )

    @staticmethod
    def _check_account(
        line_number: int, line: LineSpec, accounts: Mapping[UUID, AccountInfo],
    ) -> None:
        account = accounts.get(line.account_id)
        if account is None:
            raise InvalidLineError(line_number, str(line.account_id), "account does not exist")
        if not account.is_active:
            raise InvalidLineError(line_number, str(line.account_id), "account is inactive")
        if account.is_header:
            raise HeaderAccountPostingError(line_number, str(account.id), account.code)

    @staticmethod
    def _normalize_line(line_number: int, line: LineSpec) -> ValidatedLine:
        try:
            debit = to_money(line.debit_amount)
            credit = to_money(line.credit_amount)
        except ValueError as exc:
            raise InvalidLineError(line_number, str(line.account_id), str(exc)) from exc

        if debit < ZERO or credit < ZERO or (debit > ZERO) == (credit > ZERO):
            raise InvalidAmountError(
                line_number, str(line.account_id), debit, credit,
            )

        return ValidatedLine(
            line_number=line_number,
            account_id=line.account_id,
            debit_amount=debit,
            credit_amount=credit,
            description=line.description,
            project_id=line.project_id,
            document_ref=line.document_ref,
        )

