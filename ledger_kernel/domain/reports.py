"""
Ledger report calculator -- trial balance, general ledger, account detail.

Responsibility:
    Read-only views over the account forest and the committed posting
    stream, all built on the balance aggregator:

    * Trial balance: per account, the opening balance (postings strictly
      before the range start), period debit and credit totals, closing
      balance, and the closing total including children.  Grand debits
      must equal grand credits.
    * General ledger: the chronological posting stream of an account and,
      when it has descendants, of its whole subtree merged into one stream.
      Each line carries its originating account and a running balance.
    * Account detail: opening, current and closing balances, a summary, the
      general-ledger transactions, and a recursive breakdown per direct
      child.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    LedgerSelector loads the forest and postings and calls these functions.

Invariants enforced:
    - Deterministic stream order: (entry_date, entry_sequence, line_number).
    - Running balances apply signed_delta with the normal balance of each
      posting's own account, so the last running balance of a subtree
      stream equals the subtree's total balance at the range end.
    - Trial balance grand totals are asserted equal (LedgerIntegrityError
      otherwise).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence
from uuid import UUID

from ledger_kernel.domain.aggregator import (
    AccountBalance,
    compute_balances,
    roll_up,
    signed_delta,
)
from ledger_kernel.domain.dtos import (
    AccountClassification,
    AccountInfo,
    DateRange,
    NormalBalance,
    PostingLine,
)
from ledger_kernel.domain.hierarchy import AccountForest
from ledger_kernel.domain.money import ZERO, amounts_equal, round_money, sum_money
from ledger_kernel.exceptions import LedgerIntegrityError


# =============================================================================
# Trial balance
# =============================================================================


@dataclass(frozen=True)
class TrialBalanceRow:
    account_id: UUID
    account_code: str
    account_name: str
    parent_account_id: UUID | None
    level: int
    normal_balance: NormalBalance
    classification: AccountClassification
    is_header: bool
    has_children: bool
    opening_balance: Decimal
    debit_total: Decimal
    credit_total: Decimal
    closing_balance: Decimal
    total_balance: Decimal


@dataclass(frozen=True)
class TrialBalance:
    date_range: DateRange
    rows: tuple[TrialBalanceRow, ...]
    total_debits: Decimal
    total_credits: Decimal

    @property
    def is_balanced(self) -> bool:
        return amounts_equal(self.total_debits, self.total_credits)


def _opening_postings(
    postings: Sequence[PostingLine], date_range: DateRange,
) -> list[PostingLine]:
    return [p for p in postings if date_range.is_before(p.entry_date)]


def _period_postings(
    postings: Sequence[PostingLine], date_range: DateRange,
) -> list[PostingLine]:
    return [p for p in postings if date_range.contains(p.entry_date)]


def trial_balance(
    forest: AccountForest,
    postings: Iterable[PostingLine],
    date_range: DateRange | None = None,
) -> TrialBalance:
    """
    Build the trial balance over ``date_range`` (open range = all time).

    Rows are in display order (pre-order, siblings by code).

    Raises:
        LedgerIntegrityError: Grand debits differ from grand credits.
    """
    date_range = date_range or DateRange()
    postings = list(postings)

    opening = compute_balances(forest, _opening_postings(postings, date_range))
    period = compute_balances(forest, _period_postings(postings, date_range))

    closing_own = {
        account_id: opening[account_id].own_balance + period[account_id].own_balance
        for account_id in period
    }
    closing_totals = roll_up(forest, closing_own)

    rows = []
    for node in forest.pre_order():
        account = node.account
        rows.append(
            TrialBalanceRow(
                account_id=account.id,
                account_code=account.code,
                account_name=account.name,
                parent_account_id=account.parent_account_id,
                level=node.level,
                normal_balance=account.normal_balance,
                classification=account.classification,
                is_header=account.is_header,
                has_children=node.has_children,
                opening_balance=opening[account.id].own_balance,
                debit_total=period[account.id].debit_total,
                credit_total=period[account.id].credit_total,
                closing_balance=round_money(closing_own[account.id]),
                total_balance=closing_totals[account.id],
            )
        )

    total_debits = sum_money(row.debit_total for row in rows)
    total_credits = sum_money(row.credit_total for row in rows)
    if not amounts_equal(total_debits, total_credits):
        raise LedgerIntegrityError(
            subject="trial balance",
            debits=total_debits,
            credits=total_credits,
        )

    return TrialBalance(
        date_range=date_range,
        rows=tuple(rows),
        total_debits=total_debits,
        total_credits=total_credits,
    )


# =============================================================================
# General ledger
# =============================================================================


@dataclass(frozen=True)
class LedgerLine:
    """One posting in a general-ledger stream, with its running balance."""

    journal_entry_id: UUID
    entry_number: str
    entry_date: date
    line_number: int
    account_id: UUID
    account_code: str
    account_name: str
    is_child_account: bool
    debit_amount: Decimal
    credit_amount: Decimal
    running_balance: Decimal
    description: str | None = None
    reference: str | None = None


@dataclass(frozen=True)
class GeneralLedger:
    account_id: UUID
    account_code: str
    account_name: str
    date_range: DateRange
    includes_descendants: bool
    opening_balance: Decimal
    closing_balance: Decimal
    total_debits: Decimal
    total_credits: Decimal
    lines: tuple[LedgerLine, ...] = field(default_factory=tuple)


def _subtree_opening(
    forest: AccountForest,
    subtree: frozenset[UUID],
    postings: Sequence[PostingLine],
    date_range: DateRange,
) -> Decimal:
    balance = ZERO
    for posting in postings:
        if posting.account_id in subtree and date_range.is_before(posting.entry_date):
            account = forest.account(posting.account_id)
            balance += signed_delta(
                account.normal_balance, posting.debit_amount, posting.credit_amount,
            )
    return round_money(balance)


def general_ledger(
    forest: AccountForest,
    account_id: UUID,
    postings: Iterable[PostingLine],
    date_range: DateRange | None = None,
    include_descendants: bool = True,
) -> GeneralLedger:
    """
    Chronological posting stream for ``account_id`` with running balances.

    When the account has descendants (and include_descendants is true) the
    stream merges the postings of the whole subtree, each line tagged with
    its originating account.
    """
    date_range = date_range or DateRange()
    root = forest.account(account_id)
    postings = list(postings)

    if include_descendants:
        subtree = forest.subtree_ids(account_id)
    else:
        subtree = frozenset({account_id})

    opening = _subtree_opening(forest, subtree, postings, date_range)

    stream = sorted(
        (
            p for p in postings
            if p.account_id in subtree and date_range.contains(p.entry_date)
        ),
        key=lambda p: p.sort_key,
    )

    running = opening
    lines = []
    for posting in stream:
        account = forest.account(posting.account_id)
        running = round_money(
            running
            + signed_delta(account.normal_balance, posting.debit_amount, posting.credit_amount)
        )
        lines.append(
            LedgerLine(
                journal_entry_id=posting.journal_entry_id,
                entry_number=posting.entry_number,
                entry_date=posting.entry_date,
                line_number=posting.line_number,
                account_id=account.id,
                account_code=account.code,
                account_name=account.name,
                is_child_account=account.id != account_id,
                debit_amount=posting.debit_amount,
                credit_amount=posting.credit_amount,
                running_balance=running,
                description=posting.description or posting.entry_description,
                reference=posting.reference,
            )
        )

    return GeneralLedger(
        account_id=root.id,
        account_code=root.code,
        account_name=root.name,
        date_range=date_range,
        includes_descendants=len(subtree) > 1,
        opening_balance=opening,
        closing_balance=running,
        total_debits=sum_money(line.debit_amount for line in lines),
        total_credits=sum_money(line.credit_amount for line in lines),
        lines=tuple(lines),
    )


# =============================================================================
# Account detail report
# =============================================================================


@dataclass(frozen=True)
class AccountSummary:
    total_debits: Decimal
    total_credits: Decimal
    net_change: Decimal
    transaction_count: int


@dataclass(frozen=True)
class AccountDetailReport:
    """
    Detail of one account over a range.

    ``current_balance`` is the all-time total balance (no end bound);
    ``closing_balance`` is the total balance at the range end.
    ``net_change`` is ``closing_balance - opening_balance`` in the
    account's normal-balance sign.
    """

    account: AccountInfo
    account_path: str
    date_range: DateRange
    opening_balance: Decimal
    current_balance: Decimal
    closing_balance: Decimal
    summary: AccountSummary
    transactions: tuple[LedgerLine, ...]
    sub_accounts: tuple["AccountDetailReport", ...] = ()


def account_detail_report(
    forest: AccountForest,
    account_id: UUID,
    postings: Iterable[PostingLine],
    date_range: DateRange | None = None,
) -> AccountDetailReport:
    """Build the detail report for ``account_id`` and, recursively, its children."""
    date_range = date_range or DateRange()
    postings = list(postings)
    current = compute_balances(forest, postings)
    return _detail(forest, account_id, postings, date_range, current)


def _detail(
    forest: AccountForest,
    account_id: UUID,
    postings: list[PostingLine],
    date_range: DateRange,
    current: dict[UUID, AccountBalance],
) -> AccountDetailReport:
    ledger = general_ledger(forest, account_id, postings, date_range)
    sub_accounts = tuple(
        _detail(forest, child.id, postings, date_range, current)
        for child in forest.children(account_id)
    )
    return AccountDetailReport(
        account=forest.account(account_id),
        account_path=forest.path(account_id),
        date_range=date_range,
        opening_balance=ledger.opening_balance,
        current_balance=current[account_id].total_balance,
        closing_balance=ledger.closing_balance,
        summary=AccountSummary(
            total_debits=ledger.total_debits,
            total_credits=ledger.total_credits,
            net_change=round_money(ledger.closing_balance - ledger.opening_balance),
            transaction_count=len(ledger.lines),
        ),
        transactions=ledger.lines,
        sub_accounts=sub_accounts,
    )
