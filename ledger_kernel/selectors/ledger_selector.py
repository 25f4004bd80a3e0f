"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries -- account balances, trial
    balance, general ledger, account detail report and financial
    statements (balance sheet, income statement, cash flow).  The ledger is a derived view over committed journal
    lines; there are no stored balances anywhere in the system.
Architecture position: Kernel > Selectors.  Loads the forest and the
    posting stream, then delegates every computation to the pure functions
    in domain/aggregator.py, domain/reports.py and domain/statements.py.

Invariants enforced:
    - All balances derive from journal_entry_lines at query time.
    - The account forest and the postings are read in the caller's
      transaction, so a report never mixes two snapshots.

Failure modes:
    - AccountNotFoundError for an unknown account id.
    - AccountCycleError if the stored hierarchy loops.
    - LedgerIntegrityError if the trial balance does not balance.
"""

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.aggregator import AccountBalance, compute_balances
from ledger_kernel.domain.dtos import DateRange
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
    balance_sheet,
    cash_flow_statement,
    income_statement,
)
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.journal import JournalEntryLine
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.journal_selector import JournalSelector

logger = get_logger("selectors.ledger")


class LedgerSelector(BaseSelector[JournalEntryLine]):
    """
    Selector for ledger reports.

    Contract:
        Every method loads the complete chart (reports roll up through
        inactive ancestors too) and the postings up to the range end.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._accounts = AccountSelector(session)
        self._journal = JournalSelector(session)

    def balances(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict[UUID, AccountBalance]:
        """Own and total balance of every account over the range."""
        forest = self._accounts.forest()
        postings = self._journal.postings(end_date=end_date)
        return compute_balances(forest, postings, DateRange(start_date, end_date))

    def account_balance(
        self,
        account_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> AccountBalance:
        balances = self.balances(start_date, end_date)
        try:
            return balances[account_id]
        except KeyError:
            raise AccountNotFoundError(str(account_id)) from None

    def trial_balance(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> TrialBalance:
        forest = self._accounts.forest()
        postings = self._journal.postings(end_date=end_date)
        report = trial_balance(forest, postings, DateRange(start_date, end_date))
        logger.info(
            "trial_balance_computed",
            extra={
                "start_date": start_date,
                "end_date": end_date,
                "rows": len(report.rows),
                "total_debits": report.total_debits,
                "total_credits": report.total_credits,
            },
        )
        return report

    def general_ledger(
        self,
        account_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        include_descendants: bool = True,
    ) -> GeneralLedger:
        forest = self._accounts.forest()
        postings = self._journal.postings(end_date=end_date)
        return general_ledger(
            forest,
            account_id,
            postings,
            DateRange(start_date, end_date),
            include_descendants=include_descendants,
        )

    def account_detail_report(
        self,
        account_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> AccountDetailReport:
        forest = self._accounts.forest()
        # current_balance needs every posting, not just those up to end_date
        postings = self._journal.postings()
        return account_detail_report(
            forest, account_id, postings, DateRange(start_date, end_date),
        )

    def balance_sheet(
        self,
        as_of: date,
        fiscal_year_start: date | None = None,
    ) -> BalanceSheet:
        forest = self._accounts.forest()
        postings = self._journal.postings(end_date=as_of)
        sheet = balance_sheet(forest, postings, as_of, fiscal_year_start)
        if not sheet.is_balanced:
            logger.error(
                "balance_sheet_out_of_balance",
                extra={
                    "as_of": as_of,
                    "assets": sheet.assets.total,
                    "liabilities_and_equity": sheet.total_liabilities_and_equity,
                },
            )
        return sheet

    def income_statement(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> IncomeStatement:
        forest = self._accounts.forest()
        postings = self._journal.postings(end_date=end_date)
        return income_statement(forest, postings, DateRange(start_date, end_date))

    def cash_flow_statement(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        cash_account_ids: set[UUID] | None = None,
    ) -> CashFlowStatement:
        """
        Cash flow by activity over the range.

        Cash accounts default to postable asset accounts named like cash
        or bank; pass ``cash_account_ids`` to name them explicitly.
        """
        forest = self._accounts.forest()
        postings = self._journal.postings(end_date=end_date)
        statement = cash_flow_statement(
            forest, postings, DateRange(start_date, end_date), cash_account_ids,
        )
        logger.info(
            "cash_flow_statement_computed",
            extra={
                "start_date": start_date,
                "end_date": end_date,
                "net_cash_flow": statement.net_cash_flow,
                "cash_at_end": statement.cash_at_end,
            },
        )
        return statement
