"""
Configuration Schema (``ledger_config.schema``).

Responsibility
--------------
Frozen dataclasses describing the ledger configuration after it has been
parsed from YAML.  The objects carry plain values (strings, ints,
tuples); conversion into kernel types happens in ``ledger_config.bridges``.

Architecture position
---------------------
**Config layer** -- pure data.  No I/O, no kernel imports.

Invariants enforced
-------------------
* Every schema object is a frozen dataclass.
* Mappings are stored as sorted tuples of pairs so two configs with the
  same content compare equal and hash identically.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CodeBandsDef:
    """Leading digit per account classification plus the custom-type band."""

    asset: str = "1"
    liability: str = "2"
    equity: str = "3"
    revenue: str = "4"
    expense: str = "5"
    custom: str = "9"

    def as_dict(self) -> dict[str, str]:
        return {
            "asset": self.asset,
            "liability": self.liability,
            "equity": self.equity,
            "revenue": self.revenue,
            "expense": self.expense,
        }


@dataclass(frozen=True)
class AccountCodesDef:
    bands: CodeBandsDef
    root_width: int = 4
    root_step: int = 100
    child_suffix_widths: tuple[int, ...] = (2, 3)


@dataclass(frozen=True)
class NumberFormatDef:
    prefix: str
    width: int = 4


@dataclass(frozen=True)
class RoleGrantDef:
    role: str
    capabilities: tuple[str, ...]


@dataclass(frozen=True)
class LedgerConfig:
    """
    The validated ledger configuration.

    Contract:
        Obtained only through ``ledger_config.get_active_config()``.
        ``checksum`` is the SHA-256 of the canonical JSON of the source
        document, so identical YAML always yields the same checksum.
    """

    config_id: str
    version: int
    currency_decimal_places: int
    account_codes: AccountCodesDef
    journal_entry_number: NumberFormatDef
    purchase_order_number: NumberFormatDef
    roles: tuple[RoleGrantDef, ...]
    checksum: str = ""
