"""
JournalService tests: atomic posting, numbering, period locks, edits,
deletion, verification and reversal.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import update

from ledger_kernel.domain.dtos import EntryHeader, LineSpec
from ledger_kernel.exceptions import (
    ClosedPeriodError,
    EntryAlreadyReversedError,
    HeaderAccountPostingError,
    InvalidLineError,
    JournalEntryNotFoundError,
    ProjectNotFoundError,
    ReversalEntryImmutableError,
    UnauthorizedActorError,
    UnbalancedEntryError,
)
from ledger_kernel.models.journal import JournalEntry


def _lines(*triples):
    return [
        LineSpec(account_id=account.id, debit_amount=debit, credit_amount=credit)
        for account, debit, credit in triples
    ]


@pytest.fixture
def january(period_service, admin):
    return period_service.create_period("2024-01", date(2024, 1, 1), date(2024, 1, 31), admin)


class TestCreateEntry:
    def test_posts_with_sequential_numbers(self, chart, post_entry):
        first = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])
        second = post_entry(date(2024, 1, 6), [(chart["rent"], "40", None), (chart["cash"], None, "40")])

        assert first.entry_number == "JE-0001"
        assert second.entry_number == "JE-0002"

    def test_stored_totals_and_lines(self, chart, post_entry, admin):
        entry = post_entry(
            date(2024, 1, 5),
            [
                (chart["cash"], "60.004", None),
                (chart["bank"], "40", None),
                (chart["sales"], None, "100.00"),
            ],
        )

        assert entry.total_debit == entry.total_credit == Decimal("100.00")
        assert [line.line_number for line in entry.lines] == [1, 2, 3]
        assert entry.lines[0].debit_amount == Decimal("60.00")
        assert entry.lines[2].credit_amount == Decimal("100.00")
        assert entry.created_by == admin.user_id
        assert entry.is_balanced

    def test_rejected_entry_writes_nothing(self, chart, journal_service, post_entry, captured_logs):
        with pytest.raises(UnbalancedEntryError):
            post_entry(date(2024, 1, 5), [(chart["cash"], "150.00", None), (chart["sales"], None, "149.99")])

        assert journal_service.list_entries() == []
        rejected = [r for r in captured_logs() if r["message"] == "journal_entry_rejected"]
        assert rejected[0]["error_code"] == "UNBALANCED_ENTRY"

        # The rejected attempt did not consume a number
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "1", None), (chart["sales"], None, "1")])
        assert entry.entry_number == "JE-0001"

    def test_header_account_rejected(self, chart, post_entry):
        with pytest.raises(HeaderAccountPostingError):
            post_entry(date(2024, 1, 5), [(chart["assets"], "5", None), (chart["sales"], None, "5")])

    def test_inactive_account_rejected(self, chart, post_entry, account_service, admin):
        account_service.deactivate_account(chart["bank"].id, admin)

        with pytest.raises(InvalidLineError):
            post_entry(date(2024, 1, 5), [(chart["bank"], "5", None), (chart["sales"], None, "5")])

    def test_locked_period_rejected(self, chart, post_entry, period_service, january, admin):
        period_service.lock_period(january.id, admin)

        with pytest.raises(ClosedPeriodError):
            post_entry(date(2024, 1, 15), [(chart["cash"], "5", None), (chart["sales"], None, "5")])

        # Outside the locked period is fine
        post_entry(date(2024, 2, 1), [(chart["cash"], "5", None), (chart["sales"], None, "5")])

    def test_user_without_edit_ledger(self, chart, post_entry, plain_user):
        with pytest.raises(UnauthorizedActorError):
            post_entry(
                date(2024, 1, 5),
                [(chart["cash"], "5", None), (chart["sales"], None, "5")],
                actor=plain_user,
            )

    def test_commit_logged_with_entry_context(self, chart, post_entry, admin, captured_logs):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "5", None), (chart["sales"], None, "5")])

        committed = [r for r in captured_logs() if r["message"] == "journal_entry_committed"]
        assert committed[0]["entry_id"] == str(entry.id)
        assert committed[0]["actor_id"] == str(admin.user_id)
        assert committed[0]["total_debit"] == "5.00"


class TestLineProjects:
    def _tagged(self, chart, project_id):
        return [
            LineSpec(account_id=chart["rent"].id, debit_amount="25", project_id=project_id),
            LineSpec(account_id=chart["cash"].id, credit_amount="25"),
        ]

    def test_unknown_project_rejected(self, chart, journal_service, admin, captured_logs):
        from uuid import uuid4

        with pytest.raises(ProjectNotFoundError):
            journal_service.create_entry(
                EntryHeader(entry_date=date(2024, 1, 5), description="Tagged"),
                self._tagged(chart, uuid4()),
                admin,
            )

        assert journal_service.list_entries() == []
        rejected = [r for r in captured_logs() if r["message"] == "journal_entry_rejected"]
        assert rejected[0]["error_code"] == "PROJECT_NOT_FOUND"

    def test_inactive_project_rejected(self, chart, journal_service, project_service, admin):
        project = project_service.create_project("Fit-out", admin)
        project_service.deactivate_project(project.id, admin)

        with pytest.raises(InvalidLineError) as exc_info:
            journal_service.create_entry(
                EntryHeader(entry_date=date(2024, 1, 5), description="Tagged"),
                self._tagged(chart, project.id),
                admin,
            )

        assert exc_info.value.line_number == 1
        assert "inactive" in exc_info.value.reason

    def test_reversal_keeps_project(self, chart, journal_service, project_service, admin):
        project = project_service.create_project("Fit-out", admin)
        entry = journal_service.create_entry(
            EntryHeader(entry_date=date(2024, 1, 5), description="Tagged"),
            self._tagged(chart, project.id),
            admin,
        )

        reversal = journal_service.reverse_entry(entry.id, date(2024, 1, 6), admin)

        assert reversal.lines[0].project_id == project.id
        assert reversal.lines[0].credit_amount == Decimal("25.00")


class TestUpdateAndDelete:
    def test_update_replaces_lines(self, chart, post_entry, journal_service, admin):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])

        updated = journal_service.update_entry(
            entry.id,
            EntryHeader(entry_date=date(2024, 1, 7), description="Corrected", reference="INV-9"),
            _lines(
                (chart["bank"], "70", None),
                (chart["cash"], "50", None),
                (chart["sales"], None, "120"),
            ),
            admin,
        )

        assert updated.entry_number == entry.entry_number
        assert updated.entry_date == date(2024, 1, 7)
        assert updated.reference == "INV-9"
        assert updated.total_debit == Decimal("120.00")
        assert [line.account_id for line in updated.lines] == [
            chart["bank"].id, chart["cash"].id, chart["sales"].id,
        ]

    def test_invalid_update_keeps_original(self, chart, post_entry, journal_service, admin):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])

        with pytest.raises(UnbalancedEntryError):
            journal_service.update_entry(
                entry.id,
                EntryHeader(entry_date=date(2024, 1, 5), description="Bad"),
                _lines((chart["cash"], "100", None), (chart["sales"], None, "99")),
                admin,
            )

        assert journal_service.get_entry(entry.id).total_debit == Decimal("100.00")

    def test_update_out_of_locked_period(self, chart, post_entry, journal_service, period_service, january, admin):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])
        period_service.lock_period(january.id, admin)

        with pytest.raises(ClosedPeriodError):
            journal_service.update_entry(
                entry.id,
                EntryHeader(entry_date=date(2024, 2, 5), description="Moved"),
                _lines((chart["cash"], "100", None), (chart["sales"], None, "100")),
                admin,
            )

    def test_update_into_locked_period(self, chart, post_entry, journal_service, period_service, january, admin):
        entry = post_entry(date(2024, 2, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])
        period_service.lock_period(january.id, admin)

        with pytest.raises(ClosedPeriodError):
            journal_service.update_entry(
                entry.id,
                EntryHeader(entry_date=date(2024, 1, 5), description="Backdated"),
                _lines((chart["cash"], "100", None), (chart["sales"], None, "100")),
                admin,
            )

    def test_delete(self, chart, post_entry, journal_service, admin):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])

        journal_service.delete_entry(entry.id, admin)

        with pytest.raises(JournalEntryNotFoundError):
            journal_service.get_entry(entry.id)

    def test_delete_in_locked_period(self, chart, post_entry, journal_service, period_service, january, admin):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])
        period_service.lock_period(january.id, admin)

        with pytest.raises(ClosedPeriodError):
            journal_service.delete_entry(entry.id, admin)

        period_service.unlock_period(january.id, admin)
        journal_service.delete_entry(entry.id, admin)

    def test_list_entries_by_date(self, chart, post_entry, journal_service):
        post_entry(date(2024, 1, 5), [(chart["cash"], "1", None), (chart["sales"], None, "1")])
        post_entry(date(2024, 2, 5), [(chart["cash"], "2", None), (chart["sales"], None, "2")])
        post_entry(date(2024, 3, 5), [(chart["cash"], "3", None), (chart["sales"], None, "3")])

        entries = journal_service.list_entries(date(2024, 2, 1), date(2024, 3, 31))

        assert [e.entry_number for e in entries] == ["JE-0003", "JE-0002"]


class TestVerifyEntry:
    def test_verified(self, chart, post_entry, journal_service, clock):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])

        verification = journal_service.verify_entry(entry.id)

        assert verification.is_balanced
        assert verification.totals_match_lines
        assert verification.verified_at == clock.now()

    def test_tampered_totals_detected(self, session, chart, post_entry, journal_service, captured_logs):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])
        session.execute(
            update(JournalEntry)
            .where(JournalEntry.id == entry.id)
            .values(total_debit=Decimal("999.00"))
        )

        verification = journal_service.verify_entry(entry.id)

        assert verification.is_balanced
        assert not verification.totals_match_lines
        failed = [r for r in captured_logs() if r["message"] == "journal_entry_verification_failed"]
        assert failed[0]["level"] == "ERROR"


class TestReverseEntry:
    def test_reversal_swaps_sides(self, chart, post_entry, journal_service, ledger_selector, admin):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])

        reversal = journal_service.reverse_entry(entry.id, date(2024, 1, 31), admin)

        assert reversal.entry_number == "JE-0002"
        assert reversal.reversal_of_id == entry.id
        assert reversal.reference == entry.entry_number
        assert reversal.description == "Reversal of JE-0001"
        assert reversal.lines[0].credit_amount == Decimal("100.00")
        assert reversal.lines[1].debit_amount == Decimal("100.00")
        assert ledger_selector.account_balance(chart["cash"].id).total_balance == Decimal("0.00")

    def test_second_reversal_rejected(self, chart, post_entry, journal_service, admin):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])
        journal_service.reverse_entry(entry.id, date(2024, 1, 31), admin)

        with pytest.raises(EntryAlreadyReversedError):
            journal_service.reverse_entry(entry.id, date(2024, 2, 1), admin)

    def test_reversed_entry_is_frozen(self, chart, post_entry, journal_service, admin):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])
        journal_service.reverse_entry(entry.id, date(2024, 1, 31), admin)

        with pytest.raises(EntryAlreadyReversedError):
            journal_service.delete_entry(entry.id, admin)
        with pytest.raises(EntryAlreadyReversedError):
            journal_service.update_entry(
                entry.id,
                EntryHeader(entry_date=date(2024, 1, 5), description="Edit"),
                _lines((chart["cash"], "1", None), (chart["sales"], None, "1")),
                admin,
            )

    def test_reversal_entry_is_frozen(self, chart, post_entry, journal_service, admin):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])
        reversal = journal_service.reverse_entry(entry.id, date(2024, 1, 31), admin)

        with pytest.raises(ReversalEntryImmutableError) as exc_info:
            journal_service.delete_entry(reversal.id, admin)
        assert exc_info.value.reversal_of_id == str(entry.id)

        with pytest.raises(ReversalEntryImmutableError):
            journal_service.update_entry(
                reversal.id,
                EntryHeader(entry_date=date(2024, 1, 31), description="Edit"),
                _lines((chart["cash"], None, "1"), (chart["sales"], "1", None)),
                admin,
            )
        with pytest.raises(ReversalEntryImmutableError):
            journal_service.reverse_entry(reversal.id, date(2024, 2, 1), admin)

    def test_original_stays_reversed_once(self, chart, post_entry, journal_service, admin):
        entry = post_entry(date(2024, 1, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])
        reversal = journal_service.reverse_entry(entry.id, date(2024, 1, 31), admin)

        with pytest.raises(ReversalEntryImmutableError):
            journal_service.delete_entry(reversal.id, admin)
        with pytest.raises(EntryAlreadyReversedError):
            journal_service.reverse_entry(entry.id, date(2024, 2, 1), admin)

        assert [e.entry_number for e in journal_service.list_entries()] == ["JE-0002", "JE-0001"]

    def test_reversal_into_locked_period(self, chart, post_entry, journal_service, period_service, january, admin):
        entry = post_entry(date(2024, 2, 5), [(chart["cash"], "100", None), (chart["sales"], None, "100")])
        period_service.lock_period(january.id, admin)

        with pytest.raises(ClosedPeriodError):
            journal_service.reverse_entry(entry.id, date(2024, 1, 31), admin)
