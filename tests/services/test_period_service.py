"""Accounting period creation, overlap rejection and locking."""

from datetime import date
from uuid import uuid4

import pytest

from ledger_kernel.exceptions import (
    InvalidPeriodError,
    PeriodNotFoundError,
    PeriodOverlapError,
    UnauthorizedActorError,
)


class TestCreatePeriod:
    def test_create(self, period_service, admin):
        period = period_service.create_period(" 2024-01 ", date(2024, 1, 1), date(2024, 1, 31), admin)

        assert period.name == "2024-01"
        assert not period.is_locked

    def test_single_day_period(self, period_service, admin):
        period = period_service.create_period("Close", date(2024, 12, 31), date(2024, 12, 31), admin)

        assert period.contains(date(2024, 12, 31))

    def test_start_after_end(self, period_service, admin):
        with pytest.raises(InvalidPeriodError):
            period_service.create_period("Bad", date(2024, 2, 1), date(2024, 1, 1), admin)

    def test_blank_name(self, period_service, admin):
        with pytest.raises(InvalidPeriodError):
            period_service.create_period("  ", date(2024, 1, 1), date(2024, 1, 31), admin)

    @pytest.mark.parametrize(
        "start, end",
        [
            (date(2024, 1, 31), date(2024, 2, 28)),
            (date(2023, 12, 1), date(2024, 1, 1)),
            (date(2024, 1, 10), date(2024, 1, 20)),
        ],
    )
    def test_overlap(self, period_service, admin, start, end):
        period_service.create_period("2024-01", date(2024, 1, 1), date(2024, 1, 31), admin)

        with pytest.raises(PeriodOverlapError):
            period_service.create_period("Other", start, end, admin)

    def test_adjacent_periods(self, period_service, admin):
        period_service.create_period("2024-01", date(2024, 1, 1), date(2024, 1, 31), admin)
        period_service.create_period("2024-02", date(2024, 2, 1), date(2024, 2, 29), admin)

    def test_requires_edit_ledger(self, period_service, plain_user):
        with pytest.raises(UnauthorizedActorError):
            period_service.create_period("2024-01", date(2024, 1, 1), date(2024, 1, 31), plain_user)


class TestLocking:
    def test_lock_and_unlock(self, period_service, period_selector, admin):
        period = period_service.create_period("2024-01", date(2024, 1, 1), date(2024, 1, 31), admin)

        locked = period_service.lock_period(period.id, admin)

        assert locked.is_locked
        assert period_service.is_date_locked(date(2024, 1, 31))
        assert not period_service.is_date_locked(date(2024, 2, 1))
        assert period_selector.locked_period_for(date(2024, 1, 15)).name == "2024-01"

        period_service.unlock_period(period.id, admin)

        assert not period_service.is_date_locked(date(2024, 1, 15))

    def test_unknown_period(self, period_service, admin):
        with pytest.raises(PeriodNotFoundError):
            period_service.lock_period(uuid4(), admin)

    def test_period_lookup_by_date(self, period_service, period_selector, admin):
        period_service.create_period("2024-02", date(2024, 2, 1), date(2024, 2, 29), admin)
        period_service.create_period("2024-01", date(2024, 1, 1), date(2024, 1, 31), admin)

        assert period_selector.period_for_date(date(2024, 2, 29)).name == "2024-02"
        assert period_selector.period_for_date(date(2024, 3, 1)) is None
        assert [p.name for p in period_selector.list_periods()] == ["2024-01", "2024-02"]
