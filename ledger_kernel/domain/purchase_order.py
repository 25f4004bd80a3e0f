"""
Purchase order approval domain (``ledger_kernel.domain.purchase_order``).

Responsibility
--------------
Pure state machine for purchase-order approval: the status lifecycle,
the action table, capability checks with separation of duties, and the
column values a transition writes.  The service turns a
``TransitionPlan`` into one conditional UPDATE keyed on
``plan.from_status``.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``PO_TRANSITIONS`` defines the only valid status edges.  ``approved``
  and ``rejected`` are terminal and have no outgoing edges.
* First approval needs FIRST_APPROVER; second approval needs
  SECOND_APPROVER and an actor other than the recorded first approver.
* Rejection needs either approver capability and a non-blank reason.
* Edit and delete are allowed only in ``pending``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from ledger_kernel.domain.actor import Actor, Capability
from ledger_kernel.domain.money import ZERO, to_money
from ledger_kernel.exceptions import (
    InvalidPurchaseOrderError,
    InvalidTransitionError,
    MissingRejectionReasonError,
    NotEditableError,
    UnauthorizedApproverError,
)

if TYPE_CHECKING:
    from ledger_kernel.models.purchase_order import (
        PurchaseOrder as PurchaseOrderModel,
    )


# =========================================================================
# Status lifecycle
# =========================================================================


class PurchaseOrderStatus(str, Enum):
    """Purchase order lifecycle states."""

    PENDING = "pending"
    FIRST_APPROVED = "first_approved"
    APPROVED = "approved"
    REJECTED = "rejected"


PO_TRANSITIONS: dict[PurchaseOrderStatus, frozenset[PurchaseOrderStatus]] = {
    PurchaseOrderStatus.PENDING: frozenset({
        PurchaseOrderStatus.FIRST_APPROVED,
        PurchaseOrderStatus.REJECTED,
    }),
    PurchaseOrderStatus.FIRST_APPROVED: frozenset({
        PurchaseOrderStatus.APPROVED,
        PurchaseOrderStatus.REJECTED,
    }),
    PurchaseOrderStatus.APPROVED: frozenset(),
    PurchaseOrderStatus.REJECTED: frozenset(),
}

TERMINAL_PO_STATUSES: frozenset[PurchaseOrderStatus] = frozenset({
    PurchaseOrderStatus.APPROVED,
    PurchaseOrderStatus.REJECTED,
})

EDITABLE_PO_STATUSES: frozenset[PurchaseOrderStatus] = frozenset({
    PurchaseOrderStatus.PENDING,
})


def is_valid_transition(
    from_status: PurchaseOrderStatus, to_status: PurchaseOrderStatus,
) -> bool:
    return to_status in PO_TRANSITIONS.get(from_status, frozenset())


class PurchaseOrderAction(str, Enum):
    FIRST_APPROVE = "first_approve"
    SECOND_APPROVE = "second_approve"
    REJECT = "reject"


# action -> target status; the legal source statuses follow from PO_TRANSITIONS
ACTION_TARGETS: dict[PurchaseOrderAction, PurchaseOrderStatus] = {
    PurchaseOrderAction.FIRST_APPROVE: PurchaseOrderStatus.FIRST_APPROVED,
    PurchaseOrderAction.SECOND_APPROVE: PurchaseOrderStatus.APPROVED,
    PurchaseOrderAction.REJECT: PurchaseOrderStatus.REJECTED,
}

ACTION_CAPABILITIES: dict[PurchaseOrderAction, frozenset[Capability]] = {
    PurchaseOrderAction.FIRST_APPROVE: frozenset({Capability.FIRST_APPROVER}),
    PurchaseOrderAction.SECOND_APPROVE: frozenset({Capability.SECOND_APPROVER}),
    PurchaseOrderAction.REJECT: frozenset({
        Capability.FIRST_APPROVER,
        Capability.SECOND_APPROVER,
    }),
}


# =========================================================================
# Records
# =========================================================================


@dataclass(frozen=True)
class PurchaseOrderRecord:
    """Immutable snapshot of a purchase order."""

    id: UUID
    po_number: str
    amount: Decimal
    description: str
    status: PurchaseOrderStatus
    created_by: UUID
    document_ref: str | None = None
    approved_by_1: UUID | None = None
    approved_at_1: datetime | None = None
    approved_by_2: UUID | None = None
    approved_at_2: datetime | None = None
    rejected_by: UUID | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PO_STATUSES

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_PO_STATUSES

    @classmethod
    def from_model(cls, model: PurchaseOrderModel) -> PurchaseOrderRecord:
        return cls(
            id=model.id,
            po_number=model.po_number,
            amount=model.amount,
            description=model.description,
            status=PurchaseOrderStatus(model.status),
            created_by=model.created_by_id,
            document_ref=model.document_ref,
            approved_by_1=model.approved_by_1,
            approved_at_1=model.approved_at_1,
            approved_by_2=model.approved_by_2,
            approved_at_2=model.approved_at_2,
            rejected_by=model.rejected_by,
            rejected_at=model.rejected_at,
            rejection_reason=model.rejection_reason,
        )


@dataclass(frozen=True)
class TransitionPlan:
    """
    A validated transition, ready to be applied as a compare-and-set.

    ``from_status`` is the expected prior status that the conditional
    UPDATE must match.
    """

    purchase_order_id: UUID
    action: PurchaseOrderAction
    from_status: PurchaseOrderStatus
    to_status: PurchaseOrderStatus
    actor_id: UUID
    at: datetime
    reason: str | None = None

    def column_values(self) -> dict[str, Any]:
        values: dict[str, Any] = {"status": self.to_status.value}
        if self.action == PurchaseOrderAction.FIRST_APPROVE:
            values["approved_by_1"] = self.actor_id
            values["approved_at_1"] = self.at
        elif self.action == PurchaseOrderAction.SECOND_APPROVE:
            values["approved_by_2"] = self.actor_id
            values["approved_at_2"] = self.at
        else:
            values["rejected_by"] = self.actor_id
            values["rejected_at"] = self.at
            values["rejection_reason"] = self.reason
        return values


# =========================================================================
# Pure rules
# =========================================================================


def validate_amount(amount: Decimal | int | float | str | None) -> Decimal:
    """Normalize a purchase order amount; it must be strictly positive."""
    try:
        value = to_money(amount)
    except ValueError as exc:
        raise InvalidPurchaseOrderError(str(exc)) from exc
    if value <= ZERO:
        raise InvalidPurchaseOrderError(f"amount must be positive, got {value}")
    return value


def plan_transition(
    order: PurchaseOrderRecord,
    action: PurchaseOrderAction,
    actor: Actor,
    at: datetime,
    reason: str | None = None,
) -> TransitionPlan:
    """
    Decide whether ``actor`` may apply ``action`` to ``order``.

    Checks, in order: the current status admits the action's edge, the
    actor holds a capability the action requires, separation of duties
    for the second approval, and a non-blank reason for rejection.

    Raises:
        InvalidTransitionError: Edge not in PO_TRANSITIONS.
        UnauthorizedApproverError: Capability or separation of duties.
        MissingRejectionReasonError: Reject without a reason.
    """
    po_id = str(order.id)
    target = ACTION_TARGETS[action]

    if not is_valid_transition(order.status, target):
        raise InvalidTransitionError(
            purchase_order_id=po_id,
            attempted=action.value,
            current_status=order.status.value,
        )

    required = ACTION_CAPABILITIES[action]
    if not (required & actor.capabilities):
        raise UnauthorizedApproverError(
            purchase_order_id=po_id,
            attempted=action.value,
            current_status=order.status.value,
            actor_id=str(actor.user_id),
            required_capability=" or ".join(sorted(c.value for c in required)),
        )

    if (
        action == PurchaseOrderAction.SECOND_APPROVE
        and order.approved_by_1 is not None
        and order.approved_by_1 == actor.user_id
    ):
        raise UnauthorizedApproverError(
            purchase_order_id=po_id,
            attempted=action.value,
            current_status=order.status.value,
            actor_id=str(actor.user_id),
            required_capability="approver distinct from first approver",
        )

    clean_reason = None
    if action == PurchaseOrderAction.REJECT:
        clean_reason = (reason or "").strip()
        if not clean_reason:
            raise MissingRejectionReasonError(po_id)

    return TransitionPlan(
        purchase_order_id=order.id,
        action=action,
        from_status=order.status,
        to_status=target,
        actor_id=actor.user_id,
        at=at,
        reason=clean_reason,
    )


def ensure_editable(order: PurchaseOrderRecord, attempted: str) -> None:
    """Raise NotEditableError unless the order is still pending."""
    if order.status not in EDITABLE_PO_STATUSES:
        raise NotEditableError(
            purchase_order_id=str(order.id),
            attempted=attempted,
            current_status=order.status.value,
        )
