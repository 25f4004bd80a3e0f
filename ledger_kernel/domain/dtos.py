"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that flow between the store and
    the pure ledger functions: account and account-type snapshots, posted
    lines, proposed entries (header + line specs), validated entries, and
    the records returned across the service boundary.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies, database access, and external services.
    from_model() class methods exist as boundary converters but are only
    invoked from the selector and service layers (never from domain logic).

Invariants enforced:
    - Account identifiers are always UUIDs; a name-or-id union is never
      accepted inside the kernel.
    - Amounts on every DTO are Decimals already rounded to the currency
      precision (see domain/money.py).

Failure modes:
    - ValueError on DateRange with start after end.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from ledger_kernel.domain.money import ZERO, amounts_equal

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account as AccountModel
    from ledger_kernel.models.account import AccountType as AccountTypeModel
    from ledger_kernel.models.accounting_period import (
        AccountingPeriod as AccountingPeriodModel,
    )
    from ledger_kernel.models.journal import JournalEntry as JournalEntryModel
    from ledger_kernel.models.project import Project as ProjectModel


class NormalBalance(str, Enum):
    """Side on which an account's balance conventionally increases."""

    DEBIT = "debit"
    CREDIT = "credit"


class AccountClassification(str, Enum):
    """Financial statement placement of an account type."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class CashFlowCategory(str, Enum):
    """Cash-flow statement section of an account."""

    OPERATING = "operating"
    INVESTING = "investing"
    FINANCING = "financing"
    NONE = "none"


# Conventional normal balance per classification.
DEFAULT_NORMAL_BALANCE: dict[AccountClassification, NormalBalance] = {
    AccountClassification.ASSET: NormalBalance.DEBIT,
    AccountClassification.EXPENSE: NormalBalance.DEBIT,
    AccountClassification.LIABILITY: NormalBalance.CREDIT,
    AccountClassification.EQUITY: NormalBalance.CREDIT,
    AccountClassification.REVENUE: NormalBalance.CREDIT,
}


# =============================================================================
# Chart of accounts
# =============================================================================


@dataclass(frozen=True)
class AccountTypeInfo:
    """Snapshot of an account type."""

    id: UUID
    name: str
    normal_balance: NormalBalance
    classification: AccountClassification
    is_system: bool = False
    is_active: bool = True
    description: str | None = None
    default_cash_flow_category: CashFlowCategory | None = None

    @classmethod
    def from_model(cls, model: AccountTypeModel) -> AccountTypeInfo:
        return cls(
            id=model.id,
            name=model.name,
            normal_balance=NormalBalance(model.normal_balance),
            classification=AccountClassification(model.classification),
            is_system=model.is_system,
            is_active=model.is_active,
            description=model.description,
            default_cash_flow_category=(
                CashFlowCategory(model.default_cash_flow_category)
                if model.default_cash_flow_category
                else None
            ),
        )


@dataclass(frozen=True)
class AccountInfo:
    """
    Snapshot of an account, denormalized with its type's sign convention.

    normal_balance and classification are copied from the account type at
    load time so the pure functions never need a second lookup.
    """

    id: UUID
    code: str
    name: str
    account_type_id: UUID
    normal_balance: NormalBalance
    classification: AccountClassification
    parent_account_id: UUID | None = None
    is_header: bool = False
    is_active: bool = True
    description: str | None = None
    cash_flow_category: CashFlowCategory | None = None

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT

    @classmethod
    def from_model(cls, model: AccountModel) -> AccountInfo:
        account_type = model.account_type
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            account_type_id=model.account_type_id,
            normal_balance=NormalBalance(account_type.normal_balance),
            classification=AccountClassification(account_type.classification),
            parent_account_id=model.parent_account_id,
            is_header=model.is_header,
            is_active=model.is_active,
            description=model.description,
            cash_flow_category=(
                CashFlowCategory(model.cash_flow_category)
                if model.cash_flow_category
                else None
            ),
        )


# =============================================================================
# Postings
# =============================================================================


@dataclass(frozen=True)
class PostingLine:
    """
    One committed journal line as seen by the aggregator and reports.

    Ordering key inside a ledger stream is (entry_date, entry_sequence,
    line_number), which is total and deterministic.  entry_sequence is the
    integer behind entry_number; the rendered number stops sorting
    correctly once it outgrows its padding.
    """

    line_id: UUID
    journal_entry_id: UUID
    entry_number: str
    entry_sequence: int
    entry_date: date
    line_number: int
    account_id: UUID
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    description: str | None = None
    entry_description: str | None = None
    reference: str | None = None

    @property
    def sort_key(self) -> tuple[date, int, int]:
        return (self.entry_date, self.entry_sequence, self.line_number)


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive date range; either bound may be open.

    Postings dated before ``start`` are "opening" postings; postings after
    ``end`` are ignored by range reports.
    """

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError(
                f"DateRange start {self.start} is after end {self.end}"
            )

    def contains(self, value: date) -> bool:
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True

    def is_before(self, value: date) -> bool:
        """True iff the date falls strictly before the range start."""
        return self.start is not None and value < self.start

    def is_after(self, value: date) -> bool:
        return self.end is not None and value > self.end


# =============================================================================
# Proposed and validated entries
# =============================================================================


@dataclass(frozen=True)
class EntryHeader:
    """Header of a proposed journal entry."""

    entry_date: date
    description: str
    reference: str | None = None


@dataclass(frozen=True)
class LineSpec:
    """
    Caller-supplied journal line.

    Amounts are taken as given (Decimal, int, str or float) and normalized
    by the validator; a missing side is None or zero.
    """

    account_id: UUID
    debit_amount: Decimal | int | float | str | None = None
    credit_amount: Decimal | int | float | str | None = None
    description: str | None = None
    project_id: UUID | None = None
    document_ref: str | None = None


@dataclass(frozen=True)
class ValidatedLine:
    """A line that passed every validation rule, amounts rounded."""

    line_number: int
    account_id: UUID
    debit_amount: Decimal
    credit_amount: Decimal
    description: str | None = None
    project_id: UUID | None = None
    document_ref: str | None = None


@dataclass(frozen=True)
class ValidatedEntry:
    """Normalized entry ready for commit."""

    header: EntryHeader
    lines: tuple[ValidatedLine, ...]
    total_debit: Decimal
    total_credit: Decimal


# =============================================================================
# Records returned across the service boundary
# =============================================================================


@dataclass(frozen=True)
class JournalLineRecord:
    id: UUID
    line_number: int
    account_id: UUID
    debit_amount: Decimal
    credit_amount: Decimal
    description: str | None = None
    project_id: UUID | None = None
    document_ref: str | None = None


@dataclass(frozen=True)
class JournalEntryRecord:
    """Committed journal entry with its lines."""

    id: UUID
    entry_number: str
    entry_date: date
    description: str
    total_debit: Decimal
    total_credit: Decimal
    created_by: UUID
    reference: str | None = None
    reversal_of_id: UUID | None = None
    lines: tuple[JournalLineRecord, ...] = field(default_factory=tuple)

    @property
    def is_balanced(self) -> bool:
        return amounts_equal(self.total_debit, self.total_credit)

    @classmethod
    def from_model(cls, model: JournalEntryModel) -> JournalEntryRecord:
        return cls(
            id=model.id,
            entry_number=model.entry_number,
            entry_date=model.entry_date,
            description=model.description,
            total_debit=model.total_debit,
            total_credit=model.total_credit,
            created_by=model.created_by_id,
            reference=model.reference,
            reversal_of_id=model.reversal_of_id,
            lines=tuple(
                JournalLineRecord(
                    id=line.id,
                    line_number=line.line_number,
                    account_id=line.account_id,
                    debit_amount=line.debit_amount,
                    credit_amount=line.credit_amount,
                    description=line.description,
                    project_id=line.project_id,
                    document_ref=line.document_ref,
                )
                for line in sorted(model.lines, key=lambda l: l.line_number)
            ),
        )


@dataclass(frozen=True)
class AccountingPeriodInfo:
    id: UUID
    name: str
    start_date: date
    end_date: date
    is_locked: bool = False

    def contains(self, value: date) -> bool:
        return self.start_date <= value <= self.end_date

    def overlaps(self, start_date: date, end_date: date) -> bool:
        return self.start_date <= end_date and start_date <= self.end_date

    @classmethod
    def from_model(cls, model: AccountingPeriodModel) -> AccountingPeriodInfo:
        return cls(
            id=model.id,
            name=model.name,
            start_date=model.start_date,
            end_date=model.end_date,
            is_locked=model.is_locked,
        )


@dataclass(frozen=True)
class ProjectInfo:
    id: UUID
    name: str
    description: str | None = None
    is_active: bool = True

    @classmethod
    def from_model(cls, model: ProjectModel) -> ProjectInfo:
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            is_active=model.is_active,
        )


@dataclass(frozen=True)
class EntryVerification:
    """Result of re-deriving an entry's totals from its lines."""

    journal_entry_id: UUID
    line_debits: Decimal
    line_credits: Decimal
    stored_debit: Decimal
    stored_credit: Decimal
    verified_at: datetime | None = None

    @property
    def is_balanced(self) -> bool:
        return amounts_equal(self.line_debits, self.line_credits)

    @property
    def totals_match_lines(self) -> bool:
        return amounts_equal(self.line_debits, self.stored_debit) and amounts_equal(
            self.line_credits, self.stored_credit
        )
