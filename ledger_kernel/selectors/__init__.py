"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.selectors.period_selector import PeriodSelector
from ledger_kernel.selectors.project_selector import ProjectSelector
from ledger_kernel.selectors.purchase_order_selector import PurchaseOrderSelector

__all__ = [
    "AccountSelector",
    "JournalSelector",
    "LedgerSelector",
    "PeriodSelector",
    "ProjectSelector",
    "PurchaseOrderSelector",
]
