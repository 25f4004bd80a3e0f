"""
Document number formats for journal entries and purchase orders.

Kernel > Domain -- pure.  Values come from SequenceService; the format
only renders them.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class NumberFormat:
    """Prefix plus zero-padded counter, e.g. ``JE-0001``."""

    prefix: str
    width: int = 4

    def __post_init__(self) -> None:
        if self.width < 1:
            raise ValueError(f"width must be >= 1, got {self.width}")

    def format(self, value: int) -> str:
        if value < 1:
            raise ValueError(f"sequence value must be positive, got {value}")
        return f"{self.prefix}{value:0{self.width}d}"


JOURNAL_ENTRY_FORMAT = NumberFormat(prefix="JE-", width=4)
PURCHASE_ORDER_FORMAT = NumberFormat(prefix="PO-", width=4)
