"""
Module: ledger_kernel.selectors.period_selector
Responsibility: Read-only queries over accounting periods, including the
    lock lookup the journal validator consumes.
Architecture position: Kernel > Selectors.  PeriodSelector satisfies the
    domain PeriodLockProvider protocol.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.db.engine import translate_store_errors
from ledger_kernel.domain.dtos import AccountingPeriodInfo
from ledger_kernel.exceptions import PeriodNotFoundError
from ledger_kernel.models.accounting_period import AccountingPeriod
from ledger_kernel.selectors.base import BaseSelector


class PeriodSelector(BaseSelector[AccountingPeriod]):
    """Selector for accounting periods."""

    @translate_store_errors
    def get_period(self, period_id: UUID) -> AccountingPeriodInfo:
        period = self.session.get(AccountingPeriod, period_id)
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return AccountingPeriodInfo.from_model(period)

    @translate_store_errors
    def list_periods(self) -> list[AccountingPeriodInfo]:
        query = select(AccountingPeriod).order_by(AccountingPeriod.start_date)
        return [AccountingPeriodInfo.from_model(p) for p in self.session.scalars(query)]

    @translate_store_errors
    def period_for_date(self, entry_date: date) -> AccountingPeriodInfo | None:
        period = self.session.scalars(
            select(AccountingPeriod)
            .where(AccountingPeriod.start_date <= entry_date)
            .where(AccountingPeriod.end_date >= entry_date)
            .order_by(AccountingPeriod.start_date)
        ).first()
        return AccountingPeriodInfo.from_model(period) if period is not None else None

    @translate_store_errors
    def locked_period_for(self, entry_date: date) -> AccountingPeriodInfo | None:
        """The locked period containing ``entry_date``, or None."""
        period = self.session.scalars(
            select(AccountingPeriod)
            .where(AccountingPeriod.start_date <= entry_date)
            .where(AccountingPeriod.end_date >= entry_date)
            .where(AccountingPeriod.is_locked.is_(True))
        ).first()
        return AccountingPeriodInfo.from_model(period) if period is not None else None

    def is_date_locked(self, entry_date: date) -> bool:
        return self.locked_period_for(entry_date) is not None
