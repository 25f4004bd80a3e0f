"""
Balance aggregator -- own and roll-up balances over the account forest.

Responsibility:
    For every account computes ``own_balance`` (signed sum of its direct
    postings) and ``total_balance`` (own balance plus the total balance of
    every direct child).  The sign follows the account's normal balance:
    debit-normal accounts grow with debits, credit-normal accounts grow
    with credits.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Consumed by the report calculator, the statements and LedgerSelector.

Invariants enforced:
    - Closed operation: totals are computed in post-order, so no account's
      total is produced before every descendant's total exists.  The forest
      is acyclic by construction (build_account_forest).
    - Header accounts have own_balance == 0.  A posting to a header account
      is a structural defect and raises LedgerIntegrityError.
    - Idempotent and deterministic: the result depends only on the forest,
      the postings and the range.

Failure modes:
    - AccountNotFoundError for a posting whose account is not in the forest.
    - LedgerIntegrityError for a posting to a header account.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping
from uuid import UUID

from ledger_kernel.domain.dtos import (
    DEFAULT_NORMAL_BALANCE,
    AccountInfo,
    DateRange,
    NormalBalance,
    PostingLine,
)
from ledger_kernel.domain.hierarchy import AccountForest
from ledger_kernel.domain.money import ZERO, round_money
from ledger_kernel.exceptions import AccountNotFoundError, LedgerIntegrityError


@dataclass(frozen=True)
class AccountBalance:
    """Balances of one account over a set of postings."""

    account_id: UUID
    own_balance: Decimal
    total_balance: Decimal
    debit_total: Decimal = ZERO
    credit_total: Decimal = ZERO
    posting_count: int = 0


def signed_delta(
    normal_balance: NormalBalance, debit: Decimal, credit: Decimal,
) -> Decimal:
    """Change in balance that a posting causes on an account."""
    if normal_balance == NormalBalance.DEBIT:
        return debit - credit
    return credit - debit


def classification_sign(account: AccountInfo) -> int:
    """
    +1 when the account grows on its classification's conventional side,
    -1 for contra accounts (e.g. accumulated depreciation under assets).
    """
    expected = DEFAULT_NORMAL_BALANCE[account.classification]
    return 1 if account.normal_balance == expected else -1


def _own_totals(
    forest: AccountForest,
    postings: Iterable[PostingLine],
    date_range: DateRange | None,
) -> dict[UUID, tuple[Decimal, Decimal, int]]:
    totals: dict[UUID, tuple[Decimal, Decimal, int]] = {}
    for posting in postings:
        if date_range is not None and not date_range.contains(posting.entry_date):
            continue
        if posting.account_id not in forest:
            raise AccountNotFoundError(str(posting.account_id))
        debits, credits, count = totals.get(posting.account_id, (ZERO, ZERO, 0))
        totals[posting.account_id] = (
            debits + posting.debit_amount,
            credits + posting.credit_amount,
            count + 1,
        )
    return totals


def compute_balances(
    forest: AccountForest,
    postings: Iterable[PostingLine],
    date_range: DateRange | None = None,
) -> dict[UUID, AccountBalance]:
    """
    Compute ``{account_id: AccountBalance}`` for every account in the forest.

    Args:
        forest: The complete, acyclic account forest.
        postings: Committed posting lines.  Postings outside ``date_range``
            (when given) are ignored.
        date_range: Optional inclusive range filter on entry_date.

    Postconditions:
        For every account:
        ``total_balance == own_balance + sum(child.total_balance)``.
    """
    own_totals = _own_totals(forest, postings, date_range)

    balances: dict[UUID, AccountBalance] = {}
    for node in forest.post_order():
        account = node.account
        debits, credits, count = own_totals.get(account.id, (ZERO, ZERO, 0))
        if account.is_header and count:
            raise LedgerIntegrityError(
                subject=f"header account {account.code} has direct postings",
                debits=round_money(debits),
                credits=round_money(credits),
            )
        own = round_money(signed_delta(account.normal_balance, debits, credits))
        total = own
        for child_id in node.children:
            total += balances[child_id].total_balance
        balances[account.id] = AccountBalance(
            account_id=account.id,
            own_balance=own,
            total_balance=round_money(total),
            debit_total=round_money(debits),
            credit_total=round_money(credits),
            posting_count=count,
        )
    return balances


def roll_up(forest: AccountForest, own: Mapping[UUID, Decimal]) -> dict[UUID, Decimal]:
    """Roll arbitrary per-account figures up the forest in post-order."""
    totals: dict[UUID, Decimal] = {}
    for node in forest.post_order():
        total = own.get(node.id, ZERO)
        for child_id in node.children:
            total += totals[child_id]
        totals[node.id] = round_money(total)
    return totals
