"""
Balance aggregator tests: signed own balances and bottom-up roll-up.

Covers the closed-operation invariant (total = own + sum of child totals),
idempotence, header-account defects and range filtering.
"""

from datetime import date
from decimal import Decimal
from itertools import count
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ledger_kernel.domain.aggregator import compute_balances, roll_up, signed_delta
from ledger_kernel.domain.dtos import (
    AccountClassification,
    AccountInfo,
    DateRange,
    NormalBalance,
    PostingLine,
)
from ledger_kernel.domain.hierarchy import build_account_forest
from ledger_kernel.domain.money import ZERO
from ledger_kernel.exceptions import AccountNotFoundError, LedgerIntegrityError

_line_ids = count(1)


def _account(code, name, parent=None, is_header=False, normal=NormalBalance.DEBIT):
    return AccountInfo(
        id=uuid4(),
        code=code,
        name=name,
        account_type_id=uuid4(),
        normal_balance=normal,
        classification=(
            AccountClassification.ASSET
            if normal == NormalBalance.DEBIT
            else AccountClassification.LIABILITY
        ),
        parent_account_id=parent.id if parent else None,
        is_header=is_header,
    )


def _posting(account, debit="0", credit="0", on=date(2024, 1, 15), sequence=1):
    return PostingLine(
        line_id=uuid4(),
        journal_entry_id=uuid4(),
        entry_number=f"JE-{sequence:04d}",
        entry_sequence=sequence,
        entry_date=on,
        line_number=next(_line_ids),
        account_id=account.id,
        debit_amount=Decimal(debit),
        credit_amount=Decimal(credit),
    )


class TestSignedDelta:
    def test_debit_normal(self):
        assert signed_delta(NormalBalance.DEBIT, Decimal("500"), Decimal("200")) == Decimal("300")

    def test_credit_normal(self):
        assert signed_delta(NormalBalance.CREDIT, Decimal("500"), Decimal("200")) == Decimal("-300")


class TestScenarios:
    def test_debit_normal_own_balance(self):
        """Cash (debit-normal): debit 500, credit 200 -> own balance 300."""
        cash = _account("1000", "Cash")
        forest = build_account_forest([cash])

        balances = compute_balances(
            forest, [_posting(cash, debit="500"), _posting(cash, credit="200")],
        )

        assert balances[cash.id].own_balance == Decimal("300.00")
        assert balances[cash.id].total_balance == Decimal("300.00")
        assert balances[cash.id].posting_count == 2

    def test_header_rolls_up_children(self):
        """Assets header over Cash (300) and Bank (700) -> total 1000, own 0."""
        assets = _account("1000", "Assets", is_header=True)
        cash = _account("1010", "Cash", assets)
        bank = _account("1020", "Bank", assets)
        forest = build_account_forest([assets, cash, bank])

        balances = compute_balances(
            forest, [_posting(cash, debit="300"), _posting(bank, debit="700")],
        )

        assert balances[assets.id].own_balance == ZERO
        assert balances[assets.id].total_balance == Decimal("1000.00")
        assert balances[cash.id].total_balance == Decimal("300.00")
        assert balances[bank.id].total_balance == Decimal("700.00")


class TestRollUp:
    def test_deep_chain(self):
        accounts = [_account("1", "L0", is_header=True)]
        for depth in range(1, 6):
            accounts.append(
                _account("1" * (depth + 1), f"L{depth}", accounts[-1], is_header=depth < 5)
            )
        forest = build_account_forest(accounts)

        balances = compute_balances(forest, [_posting(accounts[-1], debit="42.50")])

        for account in accounts:
            assert balances[account.id].total_balance == Decimal("42.50")

    def test_credit_normal_child_under_debit_parent(self):
        parent = _account("1000", "Fixed Assets", is_header=True)
        equipment = _account("1010", "Equipment", parent)
        depreciation = _account("1090", "Accumulated Depreciation", parent, normal=NormalBalance.CREDIT)
        forest = build_account_forest([parent, equipment, depreciation])

        balances = compute_balances(
            forest,
            [_posting(equipment, debit="1000"), _posting(depreciation, credit="250")],
        )

        assert balances[depreciation.id].own_balance == Decimal("250.00")
        assert balances[parent.id].total_balance == Decimal("1250.00")

    def test_roll_up_arbitrary_figures(self):
        parent = _account("1000", "Parent", is_header=True)
        child = _account("1010", "Child", parent)
        forest = build_account_forest([parent, child])

        totals = roll_up(forest, {child.id: Decimal("5"), parent.id: Decimal("1")})

        assert totals[parent.id] == Decimal("6.00")


class TestDefects:
    def test_posting_to_header_is_integrity_error(self):
        header = _account("1000", "Assets", is_header=True)
        forest = build_account_forest([header])

        with pytest.raises(LedgerIntegrityError):
            compute_balances(forest, [_posting(header, debit="1")])

    def test_posting_to_unknown_account(self):
        cash = _account("1000", "Cash")
        stranger = _account("9999", "Stranger")
        forest = build_account_forest([cash])

        with pytest.raises(AccountNotFoundError):
            compute_balances(forest, [_posting(stranger, debit="1")])


class TestDateRange:
    def test_postings_outside_range_ignored(self):
        cash = _account("1000", "Cash")
        forest = build_account_forest([cash])
        postings = [
            _posting(cash, debit="100", on=date(2024, 1, 1)),
            _posting(cash, debit="10", on=date(2024, 2, 1)),
            _posting(cash, debit="1", on=date(2024, 3, 1)),
        ]

        balances = compute_balances(
            forest, postings, DateRange(date(2024, 1, 15), date(2024, 2, 28)),
        )

        assert balances[cash.id].own_balance == Decimal("10.00")

    def test_inverted_range_rejected(self):
        with pytest.raises(ValueError):
            DateRange(date(2024, 2, 1), date(2024, 1, 1))


# =============================================================================
# Properties
# =============================================================================

amounts = st.decimals(
    min_value=Decimal("0.01"), max_value=Decimal("100000"), places=2,
    allow_nan=False, allow_infinity=False,
)


@st.composite
def forests_with_postings(draw):
    size = draw(st.integers(min_value=1, max_value=12))
    accounts: list[AccountInfo] = []
    for index in range(size):
        parent = draw(st.sampled_from([None] + accounts)) if accounts else None
        normal = draw(st.sampled_from(list(NormalBalance)))
        accounts.append(_account(f"{index + 1:04d}", f"A{index}", parent, normal=normal))
    postings = []
    for account in accounts:
        for amount, is_debit in draw(
            st.lists(st.tuples(amounts, st.booleans()), max_size=4)
        ):
            postings.append(
                _posting(account, debit=amount if is_debit else "0", credit="0" if is_debit else amount)
            )
    return accounts, postings


@settings(max_examples=75, deadline=None)
@given(forests_with_postings())
def test_total_is_own_plus_children(data):
    accounts, postings = data
    forest = build_account_forest(accounts)

    balances = compute_balances(forest, postings)

    for node in forest:
        expected = balances[node.id].own_balance + sum(
            (balances[c].total_balance for c in node.children), ZERO
        )
        assert balances[node.id].total_balance == expected


@settings(max_examples=50, deadline=None)
@given(forests_with_postings())
def test_recomputation_is_idempotent(data):
    accounts, postings = data
    forest = build_account_forest(accounts)

    assert compute_balances(forest, postings) == compute_balances(forest, postings)
