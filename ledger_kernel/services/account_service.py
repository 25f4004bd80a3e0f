"""
AccountService -- chart of accounts and account type maintenance.

Responsibility:
    Creates, updates, deactivates and deletes accounts and custom account
    types.  Generates collision-free account codes and keeps the parent
    graph acyclic.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/, selectors/.

Invariants enforced:
    - Account codes are unique (UNIQUE constraint).  Generated codes are
      inserted inside a savepoint; a UNIQUE violation (a concurrent sibling
      took the code) retries with the losing candidate excluded, a bounded
      number of times, then raises CodeGenerationError.
    - Reparenting never creates a cycle.
    - An account with postings never becomes a header and never changes
      type (that would re-sign its history).
    - Deletion is one guarded DELETE ... WHERE NOT EXISTS(lines) AND NOT
      EXISTS(children), so the check and the delete cannot be split by a
      concurrent posting.
    - System account types are immutable.

Failure modes:
    - AccountNotFoundError / AccountTypeNotFoundError on unknown ids.
    - DuplicateAccountCodeError / DuplicateAccountTypeError.
    - CodeGenerationError when no free code can be derived.
    - AccountCycleError on a cycle-forming reparent.
    - AccountInUseError / AccountHasChildrenError on blocked delete.
    - SystemAccountTypeError / AccountTypeInUseError for account types.
    - UnauthorizedActorError without the edit_ledger capability.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from ledger_kernel.db.base import SYSTEM_ACTOR_ID
from ledger_kernel.db.engine import translate_store_errors
from ledger_kernel.domain.actor import Actor, Capability
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.code_generator import (
    DEFAULT_CODE_POLICY,
    CodeGenerationPolicy,
    generate_account_code,
)
from ledger_kernel.domain.dtos import (
    DEFAULT_NORMAL_BALANCE,
    AccountClassification,
    AccountInfo,
    AccountTypeInfo,
    CashFlowCategory,
    NormalBalance,
)
from ledger_kernel.domain.hierarchy import find_reparent_cycle
from ledger_kernel.exceptions import (
    AccountCycleError,
    AccountHasChildrenError,
    AccountInUseError,
    AccountNotFoundError,
    AccountTypeInUseError,
    AccountTypeNotFoundError,
    CodeGenerationError,
    ConcurrentModificationError,
    DuplicateAccountCodeError,
    DuplicateAccountTypeError,
    SystemAccountTypeError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.models.journal import JournalEntryLine
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account")

# Attempts at inserting a generated code before giving up.
MAX_CODE_ATTEMPTS = 5

# Sentinel for "argument not supplied" where None is a meaningful value.
_UNSET: Any = object()

SYSTEM_ACCOUNT_TYPES: tuple[tuple[str, AccountClassification, str], ...] = (
    ("Assets", AccountClassification.ASSET, "Resources owned by the business"),
    ("Liabilities", AccountClassification.LIABILITY, "Obligations owed to others"),
    ("Equity", AccountClassification.EQUITY, "Owner's residual interest"),
    ("Revenue", AccountClassification.REVENUE, "Income from operations"),
    ("Expenses", AccountClassification.EXPENSE, "Costs of operations"),
)


class AccountService(BaseService[Account]):
    """
    Write side of the chart of accounts.

    Contract:
        Every mutation takes an explicit Actor holding edit_ledger, except
        seed_system_account_types() which runs as the system actor.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        code_policy: CodeGenerationPolicy = DEFAULT_CODE_POLICY,
    ):
        super().__init__(session, clock)
        self._code_policy = code_policy
        self._selector = AccountSelector(session)

    # =========================================================================
    # Account types
    # =========================================================================

    @translate_store_errors
    def seed_system_account_types(self) -> list[AccountTypeInfo]:
        """Install the five protected account types (idempotent)."""
        existing = {
            t.name: t for t in self.session.scalars(select(AccountType))
        }
        seeded = []
        for name, classification, description in SYSTEM_ACCOUNT_TYPES:
            account_type = existing.get(name)
            if account_type is None:
                account_type = AccountType(
                    name=name,
                    description=description,
                    normal_balance=DEFAULT_NORMAL_BALANCE[classification].value,
                    classification=classification.value,
                    is_system=True,
                    created_by_id=SYSTEM_ACTOR_ID,
                )
                self.session.add(account_type)
            seeded.append(account_type)
        self.session.flush()
        logger.info("system_account_types_seeded", extra={"count": len(seeded)})
        return [AccountTypeInfo.from_model(t) for t in seeded]

    @translate_store_errors
    def create_account_type(
        self,
        name: str,
        classification: AccountClassification | str,
        actor: Actor,
        normal_balance: NormalBalance | str | None = None,
        description: str | None = None,
        default_cash_flow_category: CashFlowCategory | str | None = None,
    ) -> AccountTypeInfo:
        """Create a custom (non-system) account type."""
        actor.require(Capability.EDIT_LEDGER, "create_account_type")
        classification = AccountClassification(classification)
        normal_balance = (
            NormalBalance(normal_balance)
            if normal_balance is not None
            else DEFAULT_NORMAL_BALANCE[classification]
        )
        account_type = AccountType(
            name=name.strip(),
            description=description,
            normal_balance=normal_balance.value,
            classification=classification.value,
            default_cash_flow_category=(
                CashFlowCategory(default_cash_flow_category).value
                if default_cash_flow_category is not None
                else None
            ),
            is_system=False,
            created_by_id=actor.user_id,
        )
        savepoint = self.session.begin_nested()
        try:
            self.session.add(account_type)
            self.session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            raise DuplicateAccountTypeError(name) from exc

        logger.info(
            "account_type_created",
            extra={
                "account_type_id": str(account_type.id),
                "account_type_name": account_type.name,
                "normal_balance": normal_balance.value,
            },
        )
        return AccountTypeInfo.from_model(account_type)

    @translate_store_errors
    def update_account_type(
        self,
        account_type_id: UUID,
        actor: Actor,
        name: str | None = None,
        description: str | None = None,
        normal_balance: NormalBalance | str | None = None,
        classification: AccountClassification | str | None = None,
        default_cash_flow_category: Any = _UNSET,
        is_active: bool | None = None,
    ) -> AccountTypeInfo:
        """Update a custom account type; the sign convention is frozen once used."""
        actor.require(Capability.EDIT_LEDGER, "update_account_type")
        account_type = self._get_account_type_model(account_type_id)
        if account_type.is_system:
            raise SystemAccountTypeError(str(account_type_id), "update")

        sign_change = (
            normal_balance is not None
            and NormalBalance(normal_balance).value != account_type.normal_balance
        ) or (
            classification is not None
            and AccountClassification(classification).value != account_type.classification
        )
        if sign_change and self._type_in_use(account_type_id):
            raise AccountTypeInUseError(str(account_type_id))

        if default_cash_flow_category is not _UNSET and default_cash_flow_category is not None:
            default_cash_flow_category = CashFlowCategory(default_cash_flow_category).value
        new_name = name.strip() if name is not None else None

        try:
            with self.session.begin_nested():
                if new_name is not None:
                    account_type.name = new_name
                if description is not None:
                    account_type.description = description
                if normal_balance is not None:
                    account_type.normal_balance = NormalBalance(normal_balance).value
                if classification is not None:
                    account_type.classification = AccountClassification(classification).value
                if default_cash_flow_category is not _UNSET:
                    account_type.default_cash_flow_category = default_cash_flow_category
                if is_active is not None:
                    account_type.is_active = is_active
                account_type.updated_by_id = actor.user_id
                self.session.flush()
        except IntegrityError as exc:
            raise DuplicateAccountTypeError(new_name or account_type.name) from exc

        logger.info(
            "account_type_updated",
            extra={"account_type_id": str(account_type_id)},
        )
        return AccountTypeInfo.from_model(account_type)

    @translate_store_errors
    def delete_account_type(self, account_type_id: UUID, actor: Actor) -> None:
        """Delete a custom account type that no account uses (guarded DELETE)."""
        actor.require(Capability.EDIT_LEDGER, "delete_account_type")
        result = self.session.execute(
            delete(AccountType)
            .where(AccountType.id == account_type_id)
            .where(AccountType.is_system.is_(False))
            .where(~exists().where(Account.account_type_id == account_type_id))
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 1:
            logger.info(
                "account_type_deleted",
                extra={"account_type_id": str(account_type_id)},
            )
            return

        account_type = self._get_account_type_model(account_type_id)
        if account_type.is_system:
            raise SystemAccountTypeError(str(account_type_id), "delete")
        raise AccountTypeInUseError(str(account_type_id))

    def _get_account_type_model(self, account_type_id: UUID) -> AccountType:
        account_type = self.session.get(AccountType, account_type_id)
        if account_type is None:
            raise AccountTypeNotFoundError(str(account_type_id))
        return account_type

    def _type_in_use(self, account_type_id: UUID) -> bool:
        return bool(
            self.session.scalar(
                select(exists().where(Account.account_type_id == account_type_id))
            )
        )

    # =========================================================================
    # Code generation
    # =========================================================================

    @translate_store_errors
    def generate_code(
        self,
        account_type_id: UUID,
        parent_account_id: UUID | None = None,
        excluded: frozenset[str] = frozenset(),
    ) -> str:
        """
        Next free code for an account of this type under this parent.

        The result is only a proposal until an insert wins the UNIQUE
        constraint; create_account() handles that race.
        """
        account_type = self._get_account_type_model(account_type_id)
        parent_code = None
        if parent_account_id is not None:
            parent_code = self._get_account_model(parent_account_id).code
        return generate_account_code(
            self._selector.all_codes(),
            classification=AccountClassification(account_type.classification),
            is_system_type=account_type.is_system,
            parent_code=parent_code,
            excluded=excluded,
            policy=self._code_policy,
        )

    # =========================================================================
    # Accounts
    # =========================================================================

    @translate_store_errors
    def create_account(
        self,
        name: str,
        account_type_id: UUID,
        actor: Actor,
        code: str | None = None,
        parent_account_id: UUID | None = None,
        is_header: bool = False,
        description: str | None = None,
        cash_flow_category: CashFlowCategory | str | None = None,
    ) -> AccountInfo:
        """
        Create an account.

        When ``code`` is omitted one is generated from the type band or the
        parent code.  When ``cash_flow_category`` is omitted the type's
        default category is used.
        """
        actor.require(Capability.EDIT_LEDGER, "create_account")
        account_type = self._get_account_type_model(account_type_id)
        if parent_account_id is not None:
            self._get_account_model(parent_account_id)

        if cash_flow_category is None:
            cash_flow_category = account_type.default_cash_flow_category

        def build(candidate: str) -> Account:
            return Account(
                code=candidate,
                name=name.strip(),
                description=description,
                account_type_id=account_type_id,
                parent_account_id=parent_account_id,
                is_header=is_header,
                is_active=True,
                cash_flow_category=(
                    CashFlowCategory(cash_flow_category).value
                    if cash_flow_category is not None
                    else None
                ),
                created_by_id=actor.user_id,
            )

        if code is not None:
            account = build(code.strip())
            if not self._insert(account):
                raise DuplicateAccountCodeError(account.code)
        else:
            account = self._insert_with_generated_code(
                build, account_type_id, parent_account_id,
            )

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_code": account.code,
                "parent_account_id": (
                    str(parent_account_id) if parent_account_id else None
                ),
                "is_header": is_header,
            },
        )
        return AccountInfo.from_model(account)

    def _insert(self, account: Account) -> bool:
        """Insert inside a savepoint; False if the code is already taken."""
        savepoint = self.session.begin_nested()
        try:
            self.session.add(account)
            self.session.flush()
            savepoint.commit()
            return True
        except IntegrityError:
            savepoint.rollback()
            return False

    def _insert_with_generated_code(
        self, build, account_type_id: UUID, parent_account_id: UUID | None,
    ) -> Account:
        excluded: set[str] = set()
        candidate = ""
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            candidate = self.generate_code(
                account_type_id, parent_account_id, frozenset(excluded),
            )
            account = build(candidate)
            if self._insert(account):
                return account
            logger.warning(
                "account_code_collision_retry",
                extra={"account_code": candidate, "attempt": attempt},
            )
            excluded.add(candidate)
        raise CodeGenerationError(
            base_code=candidate,
            reason=f"code collided {MAX_CODE_ATTEMPTS} times",
        )

    @translate_store_errors
    def update_account(
        self,
        account_id: UUID,
        actor: Actor,
        name: str | None = None,
        code: str | None = None,
        description: str | None = None,
        account_type_id: UUID | None = None,
        parent_account_id: Any = _UNSET,
        is_header: bool | None = None,
        is_active: bool | None = None,
        cash_flow_category: Any = _UNSET,
    ) -> AccountInfo:
        """
        Update an account.

        ``parent_account_id=None`` moves the account to the root; omit the
        argument to keep the current parent.

        Raises:
            AccountCycleError: The new parent is the account or a descendant.
            AccountInUseError: Header or type change on an account with postings.
            DuplicateAccountCodeError: The new code is taken.
        """
        actor.require(Capability.EDIT_LEDGER, "update_account")
        account = self._get_account_model(account_id)

        # Every guard runs before the row is touched
        type_change = account_type_id is not None and account_type_id != account.account_type_id
        if type_change:
            self._get_account_type_model(account_type_id)
            if self._selector.has_postings(account_id):
                raise AccountInUseError(
                    str(account_id), "has posted journal lines; its type cannot change",
                )

        if is_header and not account.is_header and self._selector.has_postings(account_id):
            raise AccountInUseError(
                str(account_id), "has posted journal lines and cannot become a header",
            )

        reparent = (
            parent_account_id is not _UNSET
            and parent_account_id != account.parent_account_id
        )
        if reparent:
            if parent_account_id is not None:
                self._get_account_model(parent_account_id)
            self._ensure_no_cycle(account_id, parent_account_id)

        if cash_flow_category is not _UNSET and cash_flow_category is not None:
            cash_flow_category = CashFlowCategory(cash_flow_category).value
        new_code = code.strip() if code is not None else None

        try:
            with self.session.begin_nested():
                if type_change:
                    account.account_type_id = account_type_id
                if reparent:
                    account.parent_account_id = parent_account_id
                if name is not None:
                    account.name = name.strip()
                if description is not None:
                    account.description = description
                if is_header is not None:
                    account.is_header = is_header
                if is_active is not None:
                    account.is_active = is_active
                if cash_flow_category is not _UNSET:
                    account.cash_flow_category = cash_flow_category
                if new_code is not None:
                    account.code = new_code
                account.updated_by_id = actor.user_id
                self.session.flush()
        except IntegrityError as exc:
            raise DuplicateAccountCodeError(new_code or account.code) from exc

        self.session.refresh(account)
        logger.info(
            "account_updated",
            extra={"account_id": str(account_id), "account_code": account.code},
        )
        return AccountInfo.from_model(account)

    def _ensure_no_cycle(self, account_id: UUID, parent_account_id: UUID | None) -> None:
        cycle = find_reparent_cycle(
            self._selector.parent_map(), account_id, parent_account_id,
        )
        if cycle is None:
            return
        codes = {a.id: a.code for a in self._selector.accounts_by_id(cycle).values()}
        logger.warning(
            "account_reparent_cycle_rejected",
            extra={
                "account_id": str(account_id),
                "new_parent_id": str(parent_account_id),
            },
        )
        raise AccountCycleError(str(account_id), [codes.get(a, str(a)) for a in cycle])

    def deactivate_account(self, account_id: UUID, actor: Actor) -> AccountInfo:
        """Hide the account from new postings; history is kept."""
        return self.update_account(account_id, actor, is_active=False)

    @translate_store_errors
    def delete_account(self, account_id: UUID, actor: Actor) -> None:
        """
        Delete an account with no postings and no children.

        The guard and the delete are one statement; a zero row count is
        diagnosed afterwards inside the same transaction.
        """
        actor.require(Capability.EDIT_LEDGER, "delete_account")
        child = aliased(Account)
        result = self.session.execute(
            delete(Account)
            .where(Account.id == account_id)
            .where(~exists().where(JournalEntryLine.account_id == account_id))
            .where(~exists().where(child.parent_account_id == account_id))
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 1:
            logger.info("account_deleted", extra={"account_id": str(account_id)})
            return

        if self.session.get(Account, account_id) is None:
            raise AccountNotFoundError(str(account_id))
        if self._selector.has_children(account_id):
            logger.warning("account_delete_blocked", extra={"account_id": str(account_id), "reason": "children"})
            raise AccountHasChildrenError(str(account_id))
        if self._selector.has_postings(account_id):
            logger.warning("account_delete_blocked", extra={"account_id": str(account_id), "reason": "postings"})
            raise AccountInUseError(str(account_id))
        raise ConcurrentModificationError("account", str(account_id), "deletable")

    def account_path(self, account_id: UUID, separator: str = " > ") -> str:
        return self._selector.account_path(account_id, separator)

    def _get_account_model(self, account_id: UUID) -> Account:
        account = self.session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account
