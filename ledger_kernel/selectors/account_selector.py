"""
Module: ledger_kernel.selectors.account_selector
Responsibility: Read-only queries over account types and the chart of
    accounts.  Loads AccountInfo snapshots (denormalized with their type's
    normal balance and classification) and builds the account forest.
Architecture position: Kernel > Selectors.

Failure modes:
    - AccountNotFoundError / AccountTypeNotFoundError on unknown ids.
    - AccountCycleError from forest() if the stored parent graph loops.
    - StoreUnavailableError / StoreTimeoutError from the store.
"""

from typing import Iterable
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.orm import joinedload

from ledger_kernel.db.engine import translate_store_errors
from ledger_kernel.domain.dtos import AccountInfo, AccountTypeInfo
from ledger_kernel.domain.hierarchy import AccountForest, build_account_forest
from ledger_kernel.exceptions import AccountNotFoundError, AccountTypeNotFoundError
from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.models.journal import JournalEntryLine
from ledger_kernel.selectors.base import BaseSelector


class AccountSelector(BaseSelector[Account]):
    """Selector for the chart of accounts."""

    # =========================================================================
    # Account types
    # =========================================================================

    @translate_store_errors
    def list_account_types(self, include_inactive: bool = True) -> list[AccountTypeInfo]:
        query = select(AccountType).order_by(AccountType.name)
        if not include_inactive:
            query = query.where(AccountType.is_active.is_(True))
        return [AccountTypeInfo.from_model(t) for t in self.session.scalars(query)]

    @translate_store_errors
    def get_account_type(self, account_type_id: UUID) -> AccountTypeInfo:
        account_type = self.session.get(AccountType, account_type_id)
        if account_type is None:
            raise AccountTypeNotFoundError(str(account_type_id))
        return AccountTypeInfo.from_model(account_type)

    # =========================================================================
    # Accounts
    # =========================================================================

    @translate_store_errors
    def list_accounts(self, include_inactive: bool = True) -> list[AccountInfo]:
        """All accounts ordered by code."""
        query = (
            select(Account)
            .options(joinedload(Account.account_type))
            .order_by(Account.code)
        )
        if not include_inactive:
            query = query.where(Account.is_active.is_(True))
        return [AccountInfo.from_model(a) for a in self.session.scalars(query).unique()]

    @translate_store_errors
    def get_account(self, account_id: UUID) -> AccountInfo:
        account = self.session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return AccountInfo.from_model(account)

    @translate_store_errors
    def accounts_by_id(self, account_ids: Iterable[UUID]) -> dict[UUID, AccountInfo]:
        """Existing accounts among ``account_ids``; unknown ids are omitted."""
        ids = set(account_ids)
        if not ids:
            return {}
        query = (
            select(Account)
            .options(joinedload(Account.account_type))
            .where(Account.id.in_(ids))
        )
        return {
            a.id: AccountInfo.from_model(a)
            for a in self.session.scalars(query).unique()
        }

    @translate_store_errors
    def all_codes(self) -> set[str]:
        """Every persisted code, active or not."""
        return set(self.session.scalars(select(Account.code)))

    @translate_store_errors
    def parent_map(self) -> dict[UUID, UUID | None]:
        rows = self.session.execute(select(Account.id, Account.parent_account_id))
        return {account_id: parent_id for account_id, parent_id in rows}

    def forest(self) -> AccountForest:
        """
        The whole chart as an account forest.

        Inactive accounts are included: their historical postings still
        roll up into their ancestors.
        """
        return build_account_forest(self.list_accounts())

    def account_path(self, account_id: UUID, separator: str = " > ") -> str:
        return self.forest().path(account_id, separator)

    @translate_store_errors
    def has_postings(self, account_id: UUID) -> bool:
        return bool(
            self.session.scalar(
                select(exists().where(JournalEntryLine.account_id == account_id))
            )
        )

    @translate_store_errors
    def has_children(self, account_id: UUID) -> bool:
        return bool(
            self.session.scalar(
                select(exists().where(Account.parent_account_id == account_id))
            )
        )
