"""
Money -- fixed-point currency arithmetic helpers.

Responsibility:
    The only sanctioned way to turn caller input into ledger amounts and to
    compare amounts for equality.  Every persisted and reported amount has
    exactly MONEY_DECIMAL_PLACES fractional digits.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - No binary floating point: floats are converted through ``str`` so
      ``0.1`` becomes ``Decimal("0.10")`` and never ``0.1000000000000000055``.
    - Equality of amounts is decided after rounding both sides to the
      currency precision, with a tolerance of one minor unit below CENT.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

# Smallest representable currency unit.
CENT = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)
ZERO = Decimal("0.00")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the currency precision.

    This is the ONLY rounding function for ledger amounts.  All other code
    delegates to it so every amount is quantized identically.
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return value.quantize(quantum, rounding=rounding)


def to_money(value: Decimal | int | float | str | None) -> Decimal:
    """
    Coerce caller input into a rounded Decimal amount.

    ``None`` is treated as zero (an empty debit or credit cell).

    Raises:
        ValueError: If the value is not numeric or not finite.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a finite monetary amount: {value!r}")
    return round_money(amount)


def amounts_equal(left: Decimal, right: Decimal) -> bool:
    """
    Compare two amounts at currency precision.

    Both sides are rounded first; the remaining difference must be smaller
    than one CENT.  Raw values are never compared directly.
    """
    return abs(round_money(left) - round_money(right)) < CENT


def sum_money(values) -> Decimal:
    """Sum an iterable of amounts, returning a rounded Decimal."""
    total = ZERO
    for value in values:
        total += value
    return round_money(total)
