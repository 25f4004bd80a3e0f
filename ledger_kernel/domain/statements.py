"""
Financial statements -- balance sheet, income statement and cash flow.

Responsibility:
    Presents aggregator balances grouped by account classification.
    Section totals add each account's own balance in the classification's
    conventional sign, so contra accounts (a credit-normal account under
    assets) reduce their section instead of inflating it.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Balance sheet: assets == liabilities + equity + retained earnings
      + current-year net income, where the two earnings figures are the
      unclosed revenue minus expenses before and since the fiscal year start.
    - Cash flow: cash_at_end - cash_at_beginning == net_cash_flow
      + unclassified, where unclassified is cash moved against accounts
      without a cash-flow category.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from ledger_kernel.domain.aggregator import (
    AccountBalance,
    classification_sign,
    compute_balances,
    signed_delta,
)
from ledger_kernel.domain.dtos import (
    AccountClassification,
    CashFlowCategory,
    DateRange,
    PostingLine,
)
from ledger_kernel.domain.hierarchy import AccountForest
from ledger_kernel.domain.money import ZERO, amounts_equal, round_money


@dataclass(frozen=True)
class StatementLine:
    account_id: UUID
    account_code: str
    account_name: str
    level: int
    own_balance: Decimal
    total_balance: Decimal


@dataclass(frozen=True)
class StatementSection:
    classification: AccountClassification
    lines: tuple[StatementLine, ...]
    total: Decimal


@dataclass(frozen=True)
class BalanceSheet:
    as_of: date
    assets: StatementSection
    liabilities: StatementSection
    equity: StatementSection
    retained_earnings: Decimal
    current_year_net_income: Decimal

    @property
    def total_liabilities_and_equity(self) -> Decimal:
        return round_money(
            self.liabilities.total
            + self.equity.total
            + self.retained_earnings
            + self.current_year_net_income
        )

    @property
    def is_balanced(self) -> bool:
        return amounts_equal(self.assets.total, self.total_liabilities_and_equity)


@dataclass(frozen=True)
class IncomeStatement:
    date_range: DateRange
    revenue: StatementSection
    expenses: StatementSection

    @property
    def net_income(self) -> Decimal:
        return round_money(self.revenue.total - self.expenses.total)


def _section(
    forest: AccountForest,
    balances: dict[UUID, AccountBalance],
    classification: AccountClassification,
) -> StatementSection:
    lines = []
    total = ZERO
    for node in forest.pre_order():
        account = node.account
        if account.classification != classification:
            continue
        balance = balances[account.id]
        total += classification_sign(account) * balance.own_balance
        lines.append(
            StatementLine(
                account_id=account.id,
                account_code=account.code,
                account_name=account.name,
                level=node.level,
                own_balance=balance.own_balance,
                total_balance=balance.total_balance,
            )
        )
    return StatementSection(
        classification=classification,
        lines=tuple(lines),
        total=round_money(total),
    )


def _net_income(
    forest: AccountForest, balances: dict[UUID, AccountBalance],
) -> Decimal:
    revenue = _section(forest, balances, AccountClassification.REVENUE).total
    expenses = _section(forest, balances, AccountClassification.EXPENSE).total
    return round_money(revenue - expenses)


def income_statement(
    forest: AccountForest,
    postings: Iterable[PostingLine],
    date_range: DateRange | None = None,
) -> IncomeStatement:
    date_range = date_range or DateRange()
    balances = compute_balances(forest, postings, date_range)
    return IncomeStatement(
        date_range=date_range,
        revenue=_section(forest, balances, AccountClassification.REVENUE),
        expenses=_section(forest, balances, AccountClassification.EXPENSE),
    )


def balance_sheet(
    forest: AccountForest,
    postings: Iterable[PostingLine],
    as_of: date,
    fiscal_year_start: date | None = None,
) -> BalanceSheet:
    """
    Balance sheet as of ``as_of`` (inclusive).

    ``fiscal_year_start`` defaults to January 1st of the ``as_of`` year.
    """
    fiscal_year_start = fiscal_year_start or date(as_of.year, 1, 1)
    postings = [p for p in postings if p.entry_date <= as_of]

    cumulative = compute_balances(forest, postings)
    prior = compute_balances(
        forest, [p for p in postings if p.entry_date < fiscal_year_start],
    )
    current_year = compute_balances(
        forest, [p for p in postings if p.entry_date >= fiscal_year_start],
    )

    return BalanceSheet(
        as_of=as_of,
        assets=_section(forest, cumulative, AccountClassification.ASSET),
        liabilities=_section(forest, cumulative, AccountClassification.LIABILITY),
        equity=_section(forest, cumulative, AccountClassification.EQUITY),
        retained_earnings=_net_income(forest, prior),
        current_year_net_income=_net_income(forest, current_year),
    )


# =============================================================================
# Cash flow statement
# =============================================================================

_CASH_NAME_MARKERS = ("cash", "bank")


@dataclass(frozen=True)
class CashFlowLine:
    account_id: UUID
    account_code: str
    account_name: str
    amount: Decimal


@dataclass(frozen=True)
class CashFlowSection:
    category: CashFlowCategory
    lines: tuple[CashFlowLine, ...]
    total: Decimal


@dataclass(frozen=True)
class CashFlowStatement:
    """
    Cash movement over a range, grouped by activity.

    Line amounts are signed: positive brings cash in, negative pays it out.
    """

    date_range: DateRange
    operating: CashFlowSection
    investing: CashFlowSection
    financing: CashFlowSection
    cash_at_beginning: Decimal
    cash_at_end: Decimal

    @property
    def net_cash_flow(self) -> Decimal:
        return round_money(
            self.operating.total + self.investing.total + self.financing.total
        )

    @property
    def net_change_in_cash(self) -> Decimal:
        return round_money(self.cash_at_end - self.cash_at_beginning)

    @property
    def unclassified(self) -> Decimal:
        """Cash moved against accounts that carry no cash-flow category."""
        return round_money(self.net_change_in_cash - self.net_cash_flow)


def default_cash_accounts(forest: AccountForest) -> frozenset[UUID]:
    """Postable asset accounts named like a till or a bank account."""
    return frozenset(
        node.id
        for node in forest
        if node.account.classification == AccountClassification.ASSET
        and not node.account.is_header
        and any(marker in node.account.name.lower() for marker in _CASH_NAME_MARKERS)
    )


def cash_flow_statement(
    forest: AccountForest,
    postings: Iterable[PostingLine],
    date_range: DateRange | None = None,
    cash_account_ids: Iterable[UUID] | None = None,
) -> CashFlowStatement:
    """
    Cash flow statement for ``date_range``.

    Every categorized non-cash account contributes ``credits - debits``
    of its in-range postings to its section: the other side of such a
    line is, directly or through other accounts, a movement of cash.
    Cash balances come from the cash accounts themselves, which are
    ``cash_account_ids`` or, when omitted, default_cash_accounts().
    """
    date_range = date_range or DateRange()
    cash_ids = (
        frozenset(cash_account_ids)
        if cash_account_ids is not None
        else default_cash_accounts(forest)
    )
    for account_id in cash_ids:
        forest.node(account_id)  # AccountNotFoundError for strangers

    activity: dict[UUID, Decimal] = {}
    cash_at_beginning = ZERO
    cash_at_end = ZERO
    for posting in postings:
        if date_range.is_after(posting.entry_date):
            continue
        account = forest.account(posting.account_id)
        if posting.account_id in cash_ids:
            delta = signed_delta(
                account.normal_balance, posting.debit_amount, posting.credit_amount,
            )
            cash_at_end += delta
            if date_range.is_before(posting.entry_date):
                cash_at_beginning += delta
            continue
        if date_range.is_before(posting.entry_date):
            continue
        if account.cash_flow_category in (None, CashFlowCategory.NONE):
            continue
        activity[account.id] = (
            activity.get(account.id, ZERO) + posting.credit_amount - posting.debit_amount
        )

    def section(category: CashFlowCategory) -> CashFlowSection:
        lines = [
            CashFlowLine(
                account_id=account_id,
                account_code=forest.account(account_id).code,
                account_name=forest.account(account_id).name,
                amount=round_money(amount),
            )
            for account_id, amount in activity.items()
            if forest.account(account_id).cash_flow_category == category
            and not amounts_equal(amount, ZERO)
        ]
        lines.sort(key=lambda line: line.account_code)
        return CashFlowSection(
            category=category,
            lines=tuple(lines),
            total=round_money(sum((line.amount for line in lines), ZERO)),
        )

    return CashFlowStatement(
        date_range=date_range,
        operating=section(CashFlowCategory.OPERATING),
        investing=section(CashFlowCategory.INVESTING),
        financing=section(CashFlowCategory.FINANCING),
        cash_at_beginning=round_money(cash_at_beginning),
        cash_at_end=round_money(cash_at_end),
    )
