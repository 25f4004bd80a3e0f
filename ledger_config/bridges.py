"""
Config -> Kernel Bridges.

Functions that convert a LedgerConfig into kernel inputs.  They live in
ledger_config (the producer) because the kernel never imports
ledger_config.

Usage:
    from ledger_config.bridges import to_code_generation_policy, to_role_policy

    config = get_active_config()
    accounts = AccountService(session, code_policy=to_code_generation_policy(config))
    users = UserService(session, role_policy=to_role_policy(config))
"""

from __future__ import annotations

from ledger_config.schema import LedgerConfig, NumberFormatDef
from ledger_kernel.domain.actor import Capability, Role, RolePolicy
from ledger_kernel.domain.code_generator import CodeGenerationPolicy
from ledger_kernel.domain.dtos import AccountClassification
from ledger_kernel.domain.money import MONEY_DECIMAL_PLACES
from ledger_kernel.domain.numbering import NumberFormat


def check_currency_precision(config: LedgerConfig) -> None:
    """
    The kernel stores money as Numeric(18, 2); a config asking for another
    precision cannot be honoured.
    """
    if config.currency_decimal_places != MONEY_DECIMAL_PLACES:
        raise ValueError(
            f"currency_decimal_places {config.currency_decimal_places} is not "
            f"supported; the ledger stores {MONEY_DECIMAL_PLACES} decimal places"
        )


def to_code_generation_policy(config: LedgerConfig) -> CodeGenerationPolicy:
    codes = config.account_codes
    return CodeGenerationPolicy(
        bands={
            AccountClassification(name): band
            for name, band in codes.bands.as_dict().items()
        },
        custom_band=codes.bands.custom,
        root_width=codes.root_width,
        root_step=codes.root_step,
        child_suffix_widths=codes.child_suffix_widths,
    )


def to_role_policy(config: LedgerConfig) -> RolePolicy:
    return RolePolicy(
        grants={
            Role(grant.role): frozenset(Capability(c) for c in grant.capabilities)
            for grant in config.roles
        }
    )


def _to_number_format(definition: NumberFormatDef) -> NumberFormat:
    return NumberFormat(prefix=definition.prefix, width=definition.width)


def to_journal_entry_format(config: LedgerConfig) -> NumberFormat:
    return _to_number_format(config.journal_entry_number)


def to_purchase_order_format(config: LedgerConfig) -> NumberFormat:
    return _to_number_format(config.purchase_order_number)
