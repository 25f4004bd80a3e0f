"""Tests for deterministic account code generation."""

import pytest

from ledger_kernel.domain.code_generator import (
    CodeGenerationPolicy,
    generate_account_code,
)
from ledger_kernel.domain.dtos import AccountClassification
from ledger_kernel.exceptions import CodeGenerationError


def _root(existing, classification=AccountClassification.ASSET, **kwargs):
    return generate_account_code(
        existing, classification=classification, is_system_type=True, **kwargs,
    )


class TestRootCodes:
    @pytest.mark.parametrize(
        "classification, expected",
        [
            (AccountClassification.ASSET, "1000"),
            (AccountClassification.LIABILITY, "2000"),
            (AccountClassification.EQUITY, "3000"),
            (AccountClassification.REVENUE, "4000"),
            (AccountClassification.EXPENSE, "5000"),
        ],
    )
    def test_first_code_uses_band(self, classification, expected):
        assert _root(set(), classification) == expected

    def test_next_after_highest_used(self):
        assert _root({"1000", "1100"}) == "1200"

    def test_gap_filled_only_when_tail_is_full(self):
        existing = {"1000", "1900"}

        assert _root(existing) == "1100"

    def test_other_bands_do_not_interfere(self):
        assert _root({"2000", "2100", "5000"}) == "1000"

    def test_custom_type_uses_reserved_band(self):
        code = generate_account_code(
            {"9000"},
            classification=AccountClassification.ASSET,
            is_system_type=False,
        )

        assert code == "9100"

    def test_exhausted_band_raises(self):
        existing = {f"1{n:03d}" for n in range(0, 1000, 100)}

        with pytest.raises(CodeGenerationError):
            _root(existing)

    def test_excluded_candidate_skipped(self):
        assert _root({"1000"}, excluded={"1100"}) == "1200"


class TestChildCodes:
    def test_first_child_gets_two_digit_suffix(self):
        assert _root({"1000"}, parent_code="1000") == "100001"

    def test_next_child_follows_highest_sibling(self):
        assert _root({"1000", "100001", "100002"}, parent_code="1000") == "100003"

    def test_three_digit_series_after_two_digit_exhausted(self):
        existing = {"1000"} | {f"1000{n:02d}" for n in range(1, 100)}

        assert _root(existing, parent_code="1000") == "1000001"

    def test_all_suffixes_exhausted_raises(self):
        policy = CodeGenerationPolicy(child_suffix_widths=(1,))
        existing = {f"1000{n}" for n in range(1, 10)}

        with pytest.raises(CodeGenerationError) as exc_info:
            _root(existing, parent_code="1000", policy=policy)

        assert exc_info.value.base_code == "1000"

    def test_result_never_collides(self):
        existing = {"1000", "100001", "100003"}

        code = _root(existing, parent_code="1000")

        assert code not in existing


class TestPolicy:
    def test_invalid_step_rejected(self):
        with pytest.raises(ValueError):
            CodeGenerationPolicy(root_width=2, root_step=10)

    def test_custom_bands(self):
        policy = CodeGenerationPolicy(
            bands={AccountClassification.EXPENSE: "6"}, root_width=3, root_step=10,
        )

        code = generate_account_code(
            set(),
            classification=AccountClassification.EXPENSE,
            is_system_type=True,
            policy=policy,
        )

        assert code == "600"
