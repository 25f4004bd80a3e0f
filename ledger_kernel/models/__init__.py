"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.models.accounting_period import AccountingPeriod
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.models.project import Project
from ledger_kernel.models.purchase_order import PurchaseOrder
from ledger_kernel.models.user import User

__all__ = [
    "AccountType",
    "Account",
    "AccountingPeriod",
    "JournalEntry",
    "JournalEntryLine",
    "Project",
    "PurchaseOrder",
    "User",
]
