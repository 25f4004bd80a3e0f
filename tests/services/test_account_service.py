"""
AccountService tests: account types, code generation, reparenting and
guarded deletion.
"""

from datetime import date

import pytest

from ledger_kernel.domain.dtos import AccountClassification, CashFlowCategory, NormalBalance
from ledger_kernel.exceptions import (
    AccountCycleError,
    AccountHasChildrenError,
    AccountInUseError,
    AccountNotFoundError,
    AccountTypeInUseError,
    AccountTypeNotFoundError,
    CodeGenerationError,
    ConstraintViolationError,
    DuplicateAccountCodeError,
    DuplicateAccountTypeError,
    SystemAccountTypeError,
    UnauthorizedActorError,
)
from ledger_kernel.services.account_service import MAX_CODE_ATTEMPTS, AccountService


class TestAccountTypes:
    def test_seed_installs_five_protected_types(self, account_types):
        assert set(account_types) == {"Assets", "Liabilities", "Equity", "Revenue", "Expenses"}
        assert all(t.is_system for t in account_types.values())
        assert account_types["Assets"].normal_balance == NormalBalance.DEBIT
        assert account_types["Revenue"].normal_balance == NormalBalance.CREDIT

    def test_seed_is_idempotent(self, account_service, account_types):
        again = {t.name: t.id for t in account_service.seed_system_account_types()}

        assert again == {name: t.id for name, t in account_types.items()}

    def test_create_custom_type_defaults_sign_from_classification(self, account_service, admin):
        custom = account_service.create_account_type(
            "Contra Revenue", AccountClassification.REVENUE, admin,
            normal_balance=NormalBalance.DEBIT,
        )
        other = account_service.create_account_type(
            "Deferred Revenue", "liability", admin,
        )

        assert not custom.is_system
        assert custom.normal_balance == NormalBalance.DEBIT
        assert other.normal_balance == NormalBalance.CREDIT

    def test_duplicate_type_name(self, account_service, account_types, admin):
        with pytest.raises(DuplicateAccountTypeError):
            account_service.create_account_type("Assets", "asset", admin)

    def test_system_type_is_immutable(self, account_service, account_types, admin):
        with pytest.raises(SystemAccountTypeError):
            account_service.update_account_type(account_types["Assets"].id, admin, name="Stuff")
        with pytest.raises(SystemAccountTypeError):
            account_service.delete_account_type(account_types["Assets"].id, admin)

    def test_custom_type_delete_guarded_by_use(self, account_service, admin):
        used = account_service.create_account_type("Clearing", "asset", admin)
        unused = account_service.create_account_type("Suspense", "asset", admin)
        account_service.create_account("Clearing 1", used.id, admin)

        with pytest.raises(AccountTypeInUseError):
            account_service.delete_account_type(used.id, admin)
        account_service.delete_account_type(unused.id, admin)

        with pytest.raises(AccountTypeNotFoundError):
            account_service.delete_account_type(unused.id, admin)

    def test_sign_change_refused_while_in_use(self, account_service, admin):
        custom = account_service.create_account_type("Clearing", "asset", admin)
        account_service.create_account("Clearing 1", custom.id, admin)

        with pytest.raises(AccountTypeInUseError):
            account_service.update_account_type(
                custom.id, admin, normal_balance=NormalBalance.CREDIT,
            )
        renamed = account_service.update_account_type(custom.id, admin, name="Clearing Accounts")
        assert renamed.name == "Clearing Accounts"


class TestCreateAccount:
    def test_generated_codes(self, chart):
        assert chart["assets"].code == "1000"
        assert chart["current"].code == "100001"
        assert chart["cash"].code == "10000101"
        assert chart["bank"].code == "10000102"
        assert chart["payable"].code == "200001"
        assert chart["sales"].code == "4000"

    def test_second_root_in_band(self, make_account, chart):
        other = make_account("Other Assets", "Assets")

        assert other.code == "1100"

    def test_custom_type_uses_reserved_band(self, account_service, admin):
        custom = account_service.create_account_type("Memo", "asset", admin)

        account = account_service.create_account("Memo 1", custom.id, admin)

        assert account.code == "9000"

    def test_explicit_duplicate_code(self, make_account, chart):
        with pytest.raises(DuplicateAccountCodeError):
            make_account("Imposter", "Assets", code="1000")

        # The failed insert left the session usable
        assert make_account("Petty Cash", "Assets", parent=chart["current"]).code == "10000103"

    def test_inherits_type_cash_flow_category(self, account_service, admin):
        custom = account_service.create_account_type(
            "Operating Cash", "asset", admin,
            default_cash_flow_category=CashFlowCategory.OPERATING,
        )

        account = account_service.create_account("Till", custom.id, admin)
        explicit = account_service.create_account(
            "Loan Escrow", custom.id, admin, cash_flow_category="financing",
        )

        assert account.cash_flow_category == CashFlowCategory.OPERATING
        assert explicit.cash_flow_category == CashFlowCategory.FINANCING

    def test_unknown_parent(self, account_service, account_types, admin):
        from uuid import uuid4

        with pytest.raises(AccountNotFoundError):
            account_service.create_account(
                "Orphan", account_types["Assets"].id, admin, parent_account_id=uuid4(),
            )

    def test_plain_user_cannot_edit_chart(self, account_service, account_types, plain_user):
        with pytest.raises(UnauthorizedActorError):
            account_service.create_account("Nope", account_types["Assets"].id, plain_user)

    def test_generated_code_collision_retries(
        self, account_service, account_types, admin, captured_logs, monkeypatch,
    ):
        account_service.create_account("Cash", account_types["Assets"].id, admin)
        original = AccountService.generate_code

        def stale_first(self, account_type_id, parent_account_id=None, excluded=frozenset()):
            if not excluded:
                return "1000"
            return original(self, account_type_id, parent_account_id, excluded)

        monkeypatch.setattr(AccountService, "generate_code", stale_first)

        account = account_service.create_account("Bank", account_types["Assets"].id, admin)

        assert account.code == "1100"
        assert any(r["message"] == "account_code_collision_retry" for r in captured_logs())

    def test_generated_code_gives_up(self, account_service, account_types, admin, monkeypatch):
        account_service.create_account("Cash", account_types["Assets"].id, admin)
        monkeypatch.setattr(
            AccountService, "generate_code", lambda self, *args, **kwargs: "1000",
        )

        with pytest.raises(CodeGenerationError) as exc_info:
            account_service.create_account("Bank", account_types["Assets"].id, admin)

        assert str(MAX_CODE_ATTEMPTS) in exc_info.value.reason


class TestUpdateAccount:
    def test_rename_and_recode(self, account_service, chart, admin):
        updated = account_service.update_account(
            chart["cash"].id, admin, name="Petty Cash", code="1011",
        )

        assert updated.name == "Petty Cash"
        assert updated.code == "1011"

    def test_recode_to_taken_code(self, account_service, chart, admin):
        with pytest.raises(DuplicateAccountCodeError):
            account_service.update_account(chart["cash"].id, admin, code="10000102")

    def test_reparent(self, account_service, account_selector, chart, admin):
        account_service.update_account(
            chart["bank"].id, admin, parent_account_id=chart["assets"].id,
        )

        assert account_selector.account_path(chart["bank"].id) == "Assets > Bank"

    def test_move_to_root(self, account_service, chart, admin):
        moved = account_service.update_account(chart["bank"].id, admin, parent_account_id=None)

        assert moved.parent_account_id is None

    def test_reparent_under_descendant_rejected(self, account_service, account_selector, chart, admin):
        with pytest.raises(AccountCycleError) as exc_info:
            account_service.update_account(
                chart["assets"].id, admin, parent_account_id=chart["cash"].id,
            )

        assert exc_info.value.cycle[0] == "1000"
        assert account_selector.get_account(chart["assets"].id).parent_account_id is None

    def test_rejected_reparent_leaves_row_untouched(
        self, session, account_service, account_selector, account_types, chart, admin,
    ):
        with pytest.raises(AccountCycleError):
            account_service.update_account(
                chart["assets"].id, admin,
                name="Everything",
                account_type_id=account_types["Expenses"].id,
                parent_account_id=chart["cash"].id,
            )
        session.flush()
        session.expire_all()

        stored = account_selector.get_account(chart["assets"].id)
        assert stored.account_type_id == account_types["Assets"].id
        assert stored.name == "Assets"
        assert stored.parent_account_id is None

    def test_rejected_recode_keeps_session_usable(
        self, session, account_service, account_selector, chart, admin,
    ):
        with pytest.raises(DuplicateAccountCodeError) as exc_info:
            account_service.update_account(
                chart["cash"].id, admin, name="Till", code="10000102",
            )
        session.flush()
        session.expire_all()

        assert exc_info.value.account_code == "10000102"
        stored = account_selector.get_account(chart["cash"].id)
        assert (stored.code, stored.name) == ("10000101", "Cash")
        renamed = account_service.update_account(chart["cash"].id, admin, name="Till")
        assert renamed.name == "Till"

    def test_rejected_type_rename_keeps_original(self, session, account_service, account_selector, admin):
        first = account_service.create_account_type(
            "Deposits", AccountClassification.ASSET, admin,
        )
        account_service.create_account_type("Prepaids", AccountClassification.ASSET, admin)

        with pytest.raises(DuplicateAccountTypeError):
            account_service.update_account_type(first.id, admin, name="Prepaids")
        session.flush()
        session.expire_all()

        names = {t.name for t in account_selector.list_account_types()}
        assert {"Deposits", "Prepaids"} <= names

    def test_posted_account_cannot_become_header(self, account_service, chart, post_entry, admin):
        post_entry(date(2024, 1, 5), [(chart["cash"], "10", None), (chart["sales"], None, "10")])

        with pytest.raises(AccountInUseError):
            account_service.update_account(chart["cash"].id, admin, is_header=True)

    def test_posted_account_cannot_change_type(
        self, account_service, account_types, chart, post_entry, admin,
    ):
        post_entry(date(2024, 1, 5), [(chart["cash"], "10", None), (chart["sales"], None, "10")])

        with pytest.raises(AccountInUseError):
            account_service.update_account(
                chart["cash"].id, admin, account_type_id=account_types["Expenses"].id,
            )

    def test_deactivate(self, account_service, chart, admin):
        info = account_service.deactivate_account(chart["bank"].id, admin)

        assert not info.is_active


class TestDeleteAccount:
    def test_delete_blocked_by_posting_then_allowed(
        self, account_service, journal_service, chart, post_entry, admin,
    ):
        entry = post_entry(
            date(2024, 1, 5), [(chart["bank"], "10", None), (chart["sales"], None, "10")],
        )

        with pytest.raises(ConstraintViolationError):
            account_service.delete_account(chart["bank"].id, admin)

        journal_service.delete_entry(entry.id, admin)
        account_service.delete_account(chart["bank"].id, admin)

        with pytest.raises(AccountNotFoundError):
            account_service.delete_account(chart["bank"].id, admin)

    def test_delete_blocked_by_children(self, account_service, chart, admin):
        with pytest.raises(AccountHasChildrenError):
            account_service.delete_account(chart["current"].id, admin)

    def test_delete_leaf(self, account_service, account_selector, chart, admin):
        account_service.delete_account(chart["rent"].id, admin)

        assert chart["rent"].id not in account_selector.accounts_by_id([chart["rent"].id])

    def test_account_path(self, account_service, chart):
        assert account_service.account_path(chart["cash"].id) == "Assets > Current Assets > Cash"
