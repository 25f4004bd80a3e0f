"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for account types and the chart of
    accounts -- the target of every journal line.
Architecture position: Kernel > Models.  May import from db/base.py and the
    value enums in domain/dtos.py only.

Invariants enforced:
    - Account.code is globally unique (uq_account_code).
    - parent_account_id references another account; acyclicity is enforced
      by AccountService and rejected again by the hierarchy builder.
    - An account type's normal_balance drives the sign of every balance
      computed for the accounts of that type.

Failure modes:
    - IntegrityError on duplicate code (translated by AccountService into
      DuplicateAccountCodeError or a code-generation retry).
    - IntegrityError on FK violation when a referenced account type or
      parent does not exist.

Audit relevance:
    Account rows define the structure of the general ledger.  Deleting an
    account that lines reference is refused by a guarded DELETE in
    AccountService, never by an ORM cascade.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import UUIDString
from ledger_kernel.domain.dtos import (
    AccountClassification,
    CashFlowCategory,
    NormalBalance,
)


class AccountType(TrackedBase):
    """
    Classification of accounts carrying the normal-balance convention.

    Contract:
        System types (is_system=True) are seeded once and can be neither
        updated nor deleted.  Custom types are mutable until an account
        uses them.

    Guarantees:
        - name is unique.
        - normal_balance is DEBIT or CREDIT.
        - classification is one of ASSET, LIABILITY, EQUITY, REVENUE, EXPENSE.
    """

    __tablename__ = "account_types"

    __table_args__ = (
        UniqueConstraint("name", name="uq_account_type_name"),
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    normal_balance: Mapped[NormalBalance] = mapped_column(
        String(10),
        nullable=False,
    )

    # Statement placement and code band
    classification: Mapped[AccountClassification] = mapped_column(
        String(20),
        nullable=False,
    )

    default_cash_flow_category: Mapped[CashFlowCategory | None] = mapped_column(
        String(20),
        nullable=True,
    )

    is_system: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    accounts: Mapped[list["Account"]] = relationship(
        back_populates="account_type",
    )

    def __repr__(self) -> str:
        return f"<AccountType {self.name} ({self.normal_balance})>"


class Account(TrackedBase):
    """
    Chart of Accounts entry -- a single node in the account forest.

    Contract:
        A header account (is_header=True) groups children and never receives
        direct postings.  Its own balance is always zero; its total balance
        is the roll-up of its descendants.

    Guarantees:
        - code is unique and non-null.
        - account_type_id references an existing AccountType.

    Non-goals:
        - This model does NOT enforce deletion prevention at the ORM level;
          that is the guarded DELETE in AccountService.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        Index("idx_account_parent", "parent_account_id"),
        Index("idx_account_type_id", "account_type_id"),
        Index("idx_account_active", "is_active"),
    )

    # Hierarchy-structured identifier, e.g. "1000" or "100001"
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    account_type_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("account_types.id"),
        nullable=False,
    )

    parent_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    is_header: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    cash_flow_category: Mapped[CashFlowCategory | None] = mapped_column(
        String(20),
        nullable=True,
    )

    # Relationships
    account_type: Mapped[AccountType] = relationship(
        back_populates="accounts",
        lazy="joined",
    )

    parent: Mapped["Account | None"] = relationship(
        remote_side="Account.id",
        foreign_keys=[parent_account_id],
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def normal_balance(self) -> NormalBalance:
        return NormalBalance(self.account_type.normal_balance)
