"""
Account code generator -- deterministic, collision-free account codes.

Responsibility:
    Derives the code of a new account from its type and optional parent:

    * With a parent: the parent's code followed by a numeric suffix, first
      two digits wide (``01``..``99``), then three (``001``..``999``) once
      the two-digit series is exhausted.
    * Without a parent: the classification's band digit followed by a
      stepped series, e.g. asset band ``1`` gives ``1000``, ``1100`` ...
      ``1900``.  Custom (non-system) types use the reserved band.

    Within a series the next code is the one after the highest code already
    used; when the tail is full the first gap is taken.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    AccountService supplies the persisted codes and retries on a UNIQUE
    violation with the losing candidate excluded.

Invariants enforced:
    - The result is never in ``existing_codes`` or ``excluded``.
    - No fallback: when every candidate is taken, CodeGenerationError is
      raised instead of emitting a timestamp or random code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Collection, Mapping, Sequence

from ledger_kernel.domain.dtos import AccountClassification
from ledger_kernel.exceptions import CodeGenerationError

DEFAULT_BANDS: Mapping[AccountClassification, str] = MappingProxyType({
    AccountClassification.ASSET: "1",
    AccountClassification.LIABILITY: "2",
    AccountClassification.EQUITY: "3",
    AccountClassification.REVENUE: "4",
    AccountClassification.EXPENSE: "5",
})


@dataclass(frozen=True)
class CodeGenerationPolicy:
    """
    Numbering conventions for account codes.

    ``root_width`` counts the band digit, so width 4 with step 100 yields
    ten root codes per band.
    """

    bands: Mapping[AccountClassification, str] = field(
        default_factory=lambda: DEFAULT_BANDS
    )
    custom_band: str = "9"
    root_width: int = 4
    root_step: int = 100
    child_suffix_widths: tuple[int, ...] = (2, 3)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "bands",
            MappingProxyType(
                {AccountClassification(k): v for k, v in self.bands.items()}
            ),
        )
        if self.root_width < 2:
            raise ValueError("root_width must leave room after the band digit")
        if self.root_step < 1 or self.root_step >= 10 ** (self.root_width - 1):
            raise ValueError(f"root_step {self.root_step} does not fit root_width")
        if not self.child_suffix_widths:
            raise ValueError("child_suffix_widths must not be empty")

    def band_for(
        self, classification: AccountClassification, is_system_type: bool,
    ) -> str:
        if not is_system_type:
            return self.custom_band
        return self.bands.get(AccountClassification(classification), self.custom_band)

    def root_candidates(self, band: str) -> list[str]:
        tail_width = self.root_width - 1
        return [
            f"{band}{n:0{tail_width}d}"
            for n in range(0, 10 ** tail_width, self.root_step)
        ]

    @staticmethod
    def child_candidates(parent_code: str, width: int) -> list[str]:
        return [f"{parent_code}{n:0{width}d}" for n in range(1, 10 ** width)]


DEFAULT_CODE_POLICY = CodeGenerationPolicy()


def _next_in_series(candidates: Sequence[str], taken: Collection[str]) -> str | None:
    last_used = -1
    for index, candidate in enumerate(candidates):
        if candidate in taken:
            last_used = index
    for candidate in candidates[last_used + 1:]:
        if candidate not in taken:
            return candidate
    for candidate in candidates[:last_used + 1]:
        if candidate not in taken:
            return candidate
    return None


def generate_account_code(
    existing_codes: Collection[str],
    *,
    classification: AccountClassification,
    is_system_type: bool,
    parent_code: str | None = None,
    excluded: Collection[str] = (),
    policy: CodeGenerationPolicy = DEFAULT_CODE_POLICY,
) -> str:
    """
    Derive the next free code.

    Args:
        existing_codes: Every persisted account code (active or not).
        classification: The account type's classification.
        is_system_type: System types use the classification band; custom
            types use ``policy.custom_band``.
        parent_code: Code of the parent account, if any.
        excluded: Extra codes to avoid (e.g. a candidate that just lost a
            UNIQUE race).

    Raises:
        CodeGenerationError: Every candidate in every series is taken.
    """
    taken = set(existing_codes) | set(excluded)

    if parent_code is not None:
        for width in policy.child_suffix_widths:
            code = _next_in_series(policy.child_candidates(parent_code, width), taken)
            if code is not None:
                return code
        raise CodeGenerationError(
            base_code=parent_code,
            reason="all child suffixes are in use",
        )

    band = policy.band_for(classification, is_system_type)
    code = _next_in_series(policy.root_candidates(band), taken)
    if code is None:
        raise CodeGenerationError(
            base_code=band,
            reason=f"all root codes in band {band} are in use",
        )
    return code
