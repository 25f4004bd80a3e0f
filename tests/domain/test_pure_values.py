"""Tests for money helpers, document number formats and actor capabilities."""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.actor import DEFAULT_ROLE_POLICY, Actor, Capability, Role, RolePolicy
from ledger_kernel.domain.money import CENT, amounts_equal, round_money, sum_money, to_money
from ledger_kernel.domain.numbering import JOURNAL_ENTRY_FORMAT, NumberFormat
from ledger_kernel.exceptions import UnauthorizedActorError


class TestMoney:
    def test_round_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("-2.345")) == Decimal("-2.35")

    def test_to_money_accepts_common_inputs(self):
        assert to_money(None) == Decimal("0.00")
        assert to_money(3) == Decimal("3.00")
        assert to_money("1.1") == Decimal("1.10")
        assert to_money(0.1 + 0.2) == Decimal("0.30")

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity"])
    def test_to_money_rejects_non_amounts(self, value):
        with pytest.raises(ValueError):
            to_money(value)

    def test_amounts_equal_is_cent_precise(self):
        assert amounts_equal(Decimal("10.004"), Decimal("10.00"))
        assert not amounts_equal(Decimal("10.00"), Decimal("10.00") + CENT)

    def test_sum_money(self):
        assert sum_money([Decimal("0.10"), Decimal("0.20")]) == Decimal("0.30")
        assert sum_money([]) == Decimal("0.00")


class TestNumberFormat:
    def test_journal_entry_format(self):
        assert JOURNAL_ENTRY_FORMAT.format(1) == "JE-0001"
        assert JOURNAL_ENTRY_FORMAT.format(12345) == "JE-12345"

    def test_rejects_non_positive_values(self):
        with pytest.raises(ValueError):
            NumberFormat(prefix="X-").format(0)


class TestActor:
    @pytest.mark.parametrize(
        "role, expected",
        [
            (Role.ADMIN, {"edit_ledger", "create_purchase_order", "first_approver"}),
            (Role.ACCOUNTANT, {"edit_ledger", "create_purchase_order", "second_approver"}),
            (Role.USER, {"create_purchase_order"}),
        ],
    )
    def test_default_policy(self, role, expected):
        actor = Actor.for_role(uuid4(), role)

        assert {c.value for c in actor.capabilities} == expected

    def test_require_missing_capability(self):
        actor = Actor.for_role(uuid4(), Role.USER)

        with pytest.raises(UnauthorizedActorError) as exc_info:
            actor.require(Capability.EDIT_LEDGER, "create_entry")

        assert exc_info.value.capability == "edit_ledger"
        assert exc_info.value.operation == "create_entry"

    def test_custom_policy(self):
        policy = RolePolicy(grants={Role.USER: frozenset({Capability.EDIT_LEDGER})})

        actor = Actor.for_role(uuid4(), "user", policy)

        assert actor.has(Capability.EDIT_LEDGER)
        assert policy.capabilities_for(Role.ADMIN) == frozenset()

    def test_default_policy_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_ROLE_POLICY.grants[Role.USER] = frozenset()
