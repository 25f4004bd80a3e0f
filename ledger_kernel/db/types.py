"""
Module: ledger_kernel.db.types
Responsibility: Custom column types: fixed-point money and portable UUIDs.
    Centralizes the currency precision so that every model stores amounts
    identically.
Architecture position: Kernel > DB.  May be imported by models/.  Imports
    only the pure money helpers from domain/money.py.

Invariants enforced:
    CRITICAL: No floats in the ledger.  Amounts are Numeric(18, 2) and are
    quantized to two decimal places on the way in AND on the way out, so a
    backend without native decimals (SQLite) still hands back exact
    two-digit Decimals.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator

from ledger_kernel.domain.money import MONEY_DECIMAL_PLACES, round_money

MONEY_PRECISION = 18
MONEY_SCALE = MONEY_DECIMAL_PLACES


class Money(TypeDecorator):
    """
    Fixed-point monetary column.

    Guarantees:
        - process_bind_param: value -> Decimal rounded to MONEY_SCALE.
        - process_result_value: stored value -> Decimal rounded to MONEY_SCALE.
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int = MONEY_PRECISION, scale: int = MONEY_SCALE):
        super().__init__(precision=precision, scale=scale, asdecimal=True)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return round_money(Decimal(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return round_money(Decimal(str(value)))


class UUIDString(TypeDecorator):
    """A ``uuid.UUID`` kept as its canonical 36-character text form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)
