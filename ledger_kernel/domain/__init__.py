"""
Pure domain layer.

This package contains the immutable data transfer objects and the ledger
logic with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (except the injectable Clock)
- I/O

Hierarchy builder, code generator, balance aggregator, journal validator,
report calculator, statements (including cash flow) and the purchase order state machine all
live here and are deterministic.
"""

from ledger_kernel.domain.actor import (
    DEFAULT_ROLE_POLICY,
    Actor,
    Capability,
    Role,
    RolePolicy,
)
from ledger_kernel.domain.aggregator import AccountBalance, compute_balances, signed_delta
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.code_generator import (
    DEFAULT_CODE_POLICY,
    CodeGenerationPolicy,
    generate_account_code,
)
from ledger_kernel.domain.dtos import (
    AccountClassification,
    AccountInfo,
    AccountingPeriodInfo,
    AccountTypeInfo,
    CashFlowCategory,
    DateRange,
    EntryHeader,
    JournalEntryRecord,
    LineSpec,
    NormalBalance,
    PostingLine,
    ProjectInfo,
    ValidatedEntry,
)
from ledger_kernel.domain.hierarchy import AccountForest, AccountNode, build_account_forest
from ledger_kernel.domain.numbering import NumberFormat
from ledger_kernel.domain.purchase_order import (
    PO_TRANSITIONS,
    PurchaseOrderAction,
    PurchaseOrderRecord,
    PurchaseOrderStatus,
    plan_transition,
)
from ledger_kernel.domain.reports import (
    AccountDetailReport,
    GeneralLedger,
    TrialBalance,
    account_detail_report,
    general_ledger,
    trial_balance,
)
from ledger_kernel.domain.statements import (
    BalanceSheet,
    CashFlowStatement,
    IncomeStatement,
    cash_flow_statement,
)
from ledger_kernel.domain.validator import JournalEntryValidator

__all__ = [
    "AccountBalance",
    "AccountClassification",
    "AccountDetailReport",
    "AccountForest",
    "AccountInfo",
    "AccountNode",
    "AccountTypeInfo",
    "AccountingPeriodInfo",
    "Actor",
    "BalanceSheet",
    "Capability",
    "CashFlowStatement",
    "CashFlowCategory",
    "Clock",
    "CodeGenerationPolicy",
    "DEFAULT_CODE_POLICY",
    "DEFAULT_ROLE_POLICY",
    "DateRange",
    "DeterministicClock",
    "EntryHeader",
    "GeneralLedger",
    "IncomeStatement",
    "JournalEntryRecord",
    "JournalEntryValidator",
    "LineSpec",
    "NormalBalance",
    "NumberFormat",
    "PO_TRANSITIONS",
    "PostingLine",
    "ProjectInfo",
    "PurchaseOrderAction",
    "PurchaseOrderRecord",
    "PurchaseOrderStatus",
    "Role",
    "RolePolicy",
    "SystemClock",
    "TrialBalance",
    "ValidatedEntry",
    "account_detail_report",
    "build_account_forest",
    "cash_flow_statement",
    "compute_balances",
    "general_ledger",
    "generate_account_code",
    "plan_transition",
    "signed_delta",
    "trial_balance",
]
