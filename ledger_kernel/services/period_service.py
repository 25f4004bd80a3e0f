"""
PeriodService -- accounting period lifecycle.

Responsibility:
    Creates accounting periods and toggles their lock flag.  A locked
    period blocks creating, editing, deleting or reversing into any journal
    entry dated inside it (checked by the journal validator through
    PeriodSelector).

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/, selectors/.

Invariants enforced:
    - start_date <= end_date.
    - Periods never overlap, so a date belongs to at most one period.

Failure modes:
    - InvalidPeriodError for start after end or a blank name.
    - PeriodOverlapError when the new range intersects an existing period.
    - PeriodNotFoundError on lock/unlock of an unknown period.
    - UnauthorizedActorError without the edit_ledger capability.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.db.engine import translate_store_errors
from ledger_kernel.domain.actor import Actor, Capability
from ledger_kernel.domain.dtos import AccountingPeriodInfo
from ledger_kernel.exceptions import (
    InvalidPeriodError,
    PeriodNotFoundError,
    PeriodOverlapError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.accounting_period import AccountingPeriod
from ledger_kernel.selectors.period_selector import PeriodSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodService(BaseService[AccountingPeriod]):
    """Accounting period creation and locking."""

    @translate_store_errors
    def create_period(
        self,
        name: str,
        start_date: date,
        end_date: date,
        actor: Actor,
    ) -> AccountingPeriodInfo:
        actor.require(Capability.EDIT_LEDGER, "create_period")
        name = (name or "").strip()
        if not name:
            raise InvalidPeriodError("period name is required")
        if start_date > end_date:
            raise InvalidPeriodError(
                f"start date {start_date} is after end date {end_date}"
            )

        overlapping = self.session.scalars(
            select(AccountingPeriod)
            .where(AccountingPeriod.start_date <= end_date)
            .where(AccountingPeriod.end_date >= start_date)
        ).first()
        if overlapping is not None:
            raise PeriodOverlapError(name, overlapping.name)

        period = AccountingPeriod(
            name=name,
            start_date=start_date,
            end_date=end_date,
            is_locked=False,
            created_by_id=actor.user_id,
        )
        self.session.add(period)
        self.session.flush()
        logger.info(
            "period_created",
            extra={
                "period_id": str(period.id),
                "period_name": name,
                "start_date": start_date,
                "end_date": end_date,
            },
        )
        return AccountingPeriodInfo.from_model(period)

    def lock_period(self, period_id: UUID, actor: Actor) -> AccountingPeriodInfo:
        return self._set_locked(period_id, True, actor)

    def unlock_period(self, period_id: UUID, actor: Actor) -> AccountingPeriodInfo:
        return self._set_locked(period_id, False, actor)

    @translate_store_errors
    def _set_locked(
        self, period_id: UUID, locked: bool, actor: Actor,
    ) -> AccountingPeriodInfo:
        operation = "lock_period" if locked else "unlock_period"
        actor.require(Capability.EDIT_LEDGER, operation)
        period = self.session.get(AccountingPeriod, period_id)
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        period.is_locked = locked
        period.updated_by_id = actor.user_id
        self.session.flush()
        logger.info(
            "period_locked" if locked else "period_unlocked",
            extra={"period_id": str(period_id), "period_name": period.name},
        )
        return AccountingPeriodInfo.from_model(period)

    def locked_period_for(self, entry_date: date) -> AccountingPeriodInfo | None:
        return PeriodSelector(self.session).locked_period_for(entry_date)

    def is_date_locked(self, entry_date: date) -> bool:
        return self.locked_period_for(entry_date) is not None
