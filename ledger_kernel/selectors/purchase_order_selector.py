"""
Module: ledger_kernel.selectors.purchase_order_selector
Responsibility: Read-only queries over purchase orders.
Architecture position: Kernel > Selectors.

Rows are always re-read from the store (populate_existing) because status
changes are applied by conditional bulk UPDATEs that bypass the identity
map.
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.db.engine import translate_store_errors
from ledger_kernel.domain.purchase_order import PurchaseOrderRecord, PurchaseOrderStatus
from ledger_kernel.exceptions import PurchaseOrderNotFoundError
from ledger_kernel.models.purchase_order import PurchaseOrder
from ledger_kernel.selectors.base import BaseSelector


class PurchaseOrderSelector(BaseSelector[PurchaseOrder]):
    """Selector for purchase orders."""

    @translate_store_errors
    def find(self, purchase_order_id: UUID) -> PurchaseOrderRecord | None:
        order = self.session.scalars(
            select(PurchaseOrder)
            .where(PurchaseOrder.id == purchase_order_id)
            .execution_options(populate_existing=True)
        ).one_or_none()
        return PurchaseOrderRecord.from_model(order) if order is not None else None

    def get(self, purchase_order_id: UUID) -> PurchaseOrderRecord:
        record = self.find(purchase_order_id)
        if record is None:
            raise PurchaseOrderNotFoundError(str(purchase_order_id))
        return record

    @translate_store_errors
    def list_orders(
        self, status: PurchaseOrderStatus | None = None,
    ) -> list[PurchaseOrderRecord]:
        """Orders newest first, optionally filtered by status."""
        query = (
            select(PurchaseOrder)
            .order_by(PurchaseOrder.po_sequence.desc())
            .execution_options(populate_existing=True)
        )
        if status is not None:
            query = query.where(PurchaseOrder.status == PurchaseOrderStatus(status).value)
        return [PurchaseOrderRecord.from_model(o) for o in self.session.scalars(query)]
