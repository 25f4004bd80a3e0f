"""
Module: ledger_kernel.models.purchase_order
Responsibility: ORM persistence for purchase orders and their dual-approval
    audit columns.
Architecture position: Kernel > Models.  May import from db/base.py and the
    status enum in domain/purchase_order.py only.

Invariants enforced:
    - po_number is unique (uq_purchase_order_number).
    - status is one of the PurchaseOrderStatus values (ck_purchase_order_status).
    - amount > 0 (ck_purchase_order_amount_positive).
    - status changes happen only through conditional UPDATEs issued by
      PurchaseOrderService; this model is never mutated through the ORM
      unit of work after insert.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import UUIDString
from ledger_kernel.domain.purchase_order import PurchaseOrderStatus

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in PurchaseOrderStatus)


class PurchaseOrder(TrackedBase):
    """
    Purchase order awaiting or having passed dual approval.

    Guarantees:
        - approved_by_1/approved_at_1 are set iff the order reached
          first_approved.
        - approved_by_2/approved_at_2 are set iff the order reached approved.
        - rejected_by/rejected_at/rejection_reason are set iff rejected.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_purchase_order_number"),
        UniqueConstraint("po_sequence", name="uq_purchase_order_sequence"),
        CheckConstraint(
            f"status IN ({_STATUS_VALUES})",
            name="ck_purchase_order_status",
        ),
        CheckConstraint("amount > 0", name="ck_purchase_order_amount_positive"),
        Index("idx_purchase_order_status", "status"),
    )

    po_sequence: Mapped[int] = mapped_column(nullable=False)

    po_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    document_ref: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PurchaseOrderStatus.PENDING.value,
    )

    # First approval (admin tier)
    approved_by_1: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )
    approved_at_1: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Second approval (accountant tier)
    approved_by_2: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )
    approved_at_2: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    rejected_by: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.po_number} {self.status}>"
