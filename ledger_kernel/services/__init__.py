"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.project_service import ProjectService
from ledger_kernel.services.purchase_order_service import PurchaseOrderService
from ledger_kernel.services.sequence_service import SequenceCounter, SequenceService
from ledger_kernel.services.user_service import UserService

__all__ = [
    "AccountService",
    "JournalService",
    "PeriodService",
    "ProjectService",
    "PurchaseOrderService",
    "SequenceCounter",
    "SequenceService",
    "UserService",
]
