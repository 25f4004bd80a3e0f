"""
PurchaseOrderService -- purchase order persistence and approval workflow.

Responsibility:
    Creates, edits and deletes purchase orders and applies the two-step
    approval workflow.  The decision of whether a transition is allowed is
    made by the pure state machine in domain/purchase_order.py; this
    service only applies the resulting TransitionPlan.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/, selectors/.

Invariants enforced:
    - Every status change is a single compare-and-set:
          UPDATE purchase_orders SET status = :to, ...
          WHERE id = :id AND status = :from
      Of two racing approvers exactly one matches the row; the other sees
      rowcount 0 and gets ConcurrentModificationError.
    - Edit and delete are the same kind of guarded statement keyed on
      status = 'pending', so an order approved in between cannot be
      changed or removed.

Failure modes:
    - InvalidPurchaseOrderError for a non-positive amount or blank
      description.
    - PurchaseOrderNotFoundError on an unknown id.
    - InvalidTransitionError / UnauthorizedApproverError /
      MissingRejectionReasonError from plan_transition().
    - NotEditableError on edit or delete after leaving pending.
    - ConcurrentModificationError when the CAS loses.
    - UnauthorizedActorError without create_purchase_order for writes.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from ledger_kernel.db.engine import translate_store_errors
from ledger_kernel.domain.actor import Actor, Capability
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.numbering import PURCHASE_ORDER_FORMAT, NumberFormat
from ledger_kernel.domain.purchase_order import (
    PurchaseOrderAction,
    PurchaseOrderRecord,
    PurchaseOrderStatus,
    ensure_editable,
    plan_transition,
    validate_amount,
)
from ledger_kernel.exceptions import (
    ConcurrentModificationError,
    InvalidPurchaseOrderError,
    PurchaseOrderNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.purchase_order import PurchaseOrder
from ledger_kernel.selectors.purchase_order_selector import PurchaseOrderSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.purchase_order")


class PurchaseOrderService(BaseService[PurchaseOrder]):
    """
    Purchase order writes and approval transitions.

    Contract:
        Transition methods accept an optional ``expected`` snapshot.  When
        given, the transition is planned from that snapshot instead of a
        fresh read, and the CAS fails if the row has moved on since.
        Callers that show a PO to a user and later act on it pass the
        snapshot they showed.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        po_number_format: NumberFormat = PURCHASE_ORDER_FORMAT,
    ):
        super().__init__(session, clock)
        self._sequence = SequenceService(
            session, purchase_order_format=po_number_format,
        )
        self._selector = PurchaseOrderSelector(session)

    # =========================================================================
    # CRUD
    # =========================================================================

    @translate_store_errors
    def create_purchase_order(
        self,
        amount: Decimal | int | str,
        description: str,
        actor: Actor,
        document_ref: str | None = None,
    ) -> PurchaseOrderRecord:
        actor.require(Capability.CREATE_PURCHASE_ORDER, "create_purchase_order")
        value = validate_amount(amount)
        description = _clean_description(description)

        sequence, number = self._sequence.allocate(SequenceService.PURCHASE_ORDER)
        order = PurchaseOrder(
            po_sequence=sequence,
            po_number=number,
            amount=value,
            description=description,
            document_ref=document_ref,
            status=PurchaseOrderStatus.PENDING.value,
            created_by_id=actor.user_id,
        )
        self.session.add(order)
        self.session.flush()

        with LogContext.bind(purchase_order_id=str(order.id), actor_id=str(actor.user_id)):
            logger.info(
                "purchase_order_created",
                extra={"po_number": order.po_number, "amount": value},
            )
        return PurchaseOrderRecord.from_model(order)

    @translate_store_errors
    def update_purchase_order(
        self,
        purchase_order_id: UUID,
        actor: Actor,
        amount: Decimal | int | str | None = None,
        description: str | None = None,
        document_ref: str | None = None,
    ) -> PurchaseOrderRecord:
        """Edit a pending order (guarded on status = pending)."""
        actor.require(Capability.CREATE_PURCHASE_ORDER, "update_purchase_order")
        values: dict = {"updated_by_id": actor.user_id}
        if amount is not None:
            values["amount"] = validate_amount(amount)
        if description is not None:
            values["description"] = _clean_description(description)
        if document_ref is not None:
            values["document_ref"] = document_ref

        result = self.session.execute(
            update(PurchaseOrder)
            .where(PurchaseOrder.id == purchase_order_id)
            .where(PurchaseOrder.status == PurchaseOrderStatus.PENDING.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self._diagnose_not_editable(purchase_order_id, "update")

        logger.info(
            "purchase_order_updated",
            extra={
                "purchase_order_id": str(purchase_order_id),
                "fields": sorted(k for k in values if k != "updated_by_id"),
            },
        )
        return self._selector.get(purchase_order_id)

    @translate_store_errors
    def delete_purchase_order(self, purchase_order_id: UUID, actor: Actor) -> None:
        """Delete a pending order (guarded on status = pending)."""
        actor.require(Capability.CREATE_PURCHASE_ORDER, "delete_purchase_order")
        result = self.session.execute(
            delete(PurchaseOrder)
            .where(PurchaseOrder.id == purchase_order_id)
            .where(PurchaseOrder.status == PurchaseOrderStatus.PENDING.value)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            self._diagnose_not_editable(purchase_order_id, "delete")
        logger.info(
            "purchase_order_deleted",
            extra={"purchase_order_id": str(purchase_order_id)},
        )

    def _diagnose_not_editable(self, purchase_order_id: UUID, attempted: str) -> None:
        current = self._selector.find(purchase_order_id)
        if current is None:
            raise PurchaseOrderNotFoundError(str(purchase_order_id))
        ensure_editable(current, attempted)
        raise ConcurrentModificationError(
            "purchase_order", str(purchase_order_id), PurchaseOrderStatus.PENDING.value,
        )

    def get_purchase_order(self, purchase_order_id: UUID) -> PurchaseOrderRecord:
        return self._selector.get(purchase_order_id)

    def list_purchase_orders(
        self, status: PurchaseOrderStatus | None = None,
    ) -> list[PurchaseOrderRecord]:
        return self._selector.list_orders(status)

    # =========================================================================
    # Approval workflow
    # =========================================================================

    def first_approve(
        self,
        purchase_order_id: UUID,
        actor: Actor,
        expected: PurchaseOrderRecord | None = None,
    ) -> PurchaseOrderRecord:
        return self.transition(
            purchase_order_id, PurchaseOrderAction.FIRST_APPROVE, actor,
            expected=expected,
        )

    def second_approve(
        self,
        purchase_order_id: UUID,
        actor: Actor,
        expected: PurchaseOrderRecord | None = None,
    ) -> PurchaseOrderRecord:
        return self.transition(
            purchase_order_id, PurchaseOrderAction.SECOND_APPROVE, actor,
            expected=expected,
        )

    def reject(
        self,
        purchase_order_id: UUID,
        actor: Actor,
        reason: str,
        expected: PurchaseOrderRecord | None = None,
    ) -> PurchaseOrderRecord:
        return self.transition(
            purchase_order_id, PurchaseOrderAction.REJECT, actor,
            reason=reason, expected=expected,
        )

    @translate_store_errors
    def transition(
        self,
        purchase_order_id: UUID,
        action: PurchaseOrderAction,
        actor: Actor,
        reason: str | None = None,
        expected: PurchaseOrderRecord | None = None,
    ) -> PurchaseOrderRecord:
        """
        Apply an approval action as a compare-and-set on the status.

        Postconditions:
            On success the row carries the new status and the acting
            user's id and timestamp in the action's columns.

        Raises:
            ConcurrentModificationError: The row's status no longer equals
                the status the plan was made from.
            ValueError: ``expected`` is a snapshot of a different order.
        """
        if expected is not None and expected.id != purchase_order_id:
            raise ValueError(
                f"expected snapshot is for purchase order {expected.id}, "
                f"not {purchase_order_id}"
            )
        order = expected if expected is not None else self._selector.get(purchase_order_id)
        plan = plan_transition(order, action, actor, self.clock.now(), reason)

        result = self.session.execute(
            update(PurchaseOrder)
            .where(PurchaseOrder.id == purchase_order_id)
            .where(PurchaseOrder.status == plan.from_status.value)
            .values(**plan.column_values(), updated_by_id=actor.user_id)
            .execution_options(synchronize_session=False)
        )

        with LogContext.bind(
            purchase_order_id=str(purchase_order_id), actor_id=str(actor.user_id),
        ):
            if result.rowcount != 1:
                if self._selector.find(purchase_order_id) is None:
                    raise PurchaseOrderNotFoundError(str(purchase_order_id))
                logger.warning(
                    "purchase_order_transition_conflict",
                    extra={
                        "action": action.value,
                        "expected_status": plan.from_status.value,
                    },
                )
                raise ConcurrentModificationError(
                    "purchase_order", str(purchase_order_id), plan.from_status.value,
                )

            logger.info(
                "purchase_order_transitioned",
                extra={
                    "action": action.value,
                    "from_status": plan.from_status.value,
                    "to_status": plan.to_status.value,
                },
            )
        return self._selector.get(purchase_order_id)


def _clean_description(description: str | None) -> str:
    cleaned = (description or "").strip()
    if not cleaned:
        raise InvalidPurchaseOrderError("description is required")
    return cleaned
