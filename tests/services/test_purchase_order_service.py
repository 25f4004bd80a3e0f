"""
PurchaseOrderService tests: creation, pending-only edits, and the two-tier
approval workflow persisted as a compare-and-set on status.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.actor import Actor, Role
from ledger_kernel.domain.purchase_order import PurchaseOrderStatus
from ledger_kernel.exceptions import (
    InvalidPurchaseOrderError,
    InvalidTransitionError,
    MissingRejectionReasonError,
    NotEditableError,
    PurchaseOrderNotFoundError,
    UnauthorizedActorError,
    UnauthorizedApproverError,
)
from ledger_kernel.services.sequence_service import SequenceCounter, SequenceService


def _naive(value):
    return value.replace(tzinfo=None)


@pytest.fixture
def order(po_service, plain_user):
    return po_service.create_purchase_order("250.00", "Laptops", plain_user, document_ref="Q-17")


class TestCreate:
    def test_created_pending_with_number(self, order, plain_user):
        assert order.po_number == "PO-0001"
        assert order.status == PurchaseOrderStatus.PENDING
        assert order.amount == Decimal("250.00")
        assert order.created_by == plain_user.user_id
        assert order.document_ref == "Q-17"

    def test_numbers_are_sequential(self, po_service, order, plain_user):
        second = po_service.create_purchase_order(10, "Cables", plain_user)

        assert second.po_number == "PO-0002"

    @pytest.mark.parametrize("amount, description", [(0, "x"), ("-5", "x"), ("5", "   ")])
    def test_invalid_input(self, po_service, plain_user, amount, description):
        with pytest.raises(InvalidPurchaseOrderError):
            po_service.create_purchase_order(amount, description, plain_user)

    def test_list_by_status(self, po_service, order, plain_user, admin):
        other = po_service.create_purchase_order(10, "Cables", plain_user)
        po_service.first_approve(other.id, admin)

        pending = po_service.list_purchase_orders(PurchaseOrderStatus.PENDING)

        assert [o.id for o in pending] == [order.id]
        assert [o.po_number for o in po_service.list_purchase_orders()] == ["PO-0002", "PO-0001"]

    def test_list_order_survives_number_widening(self, session, po_service, plain_user):
        session.add(SequenceCounter(name=SequenceService.PURCHASE_ORDER, current_value=9999))
        session.flush()
        po_service.create_purchase_order(1, "Pens", plain_user)
        po_service.create_purchase_order(2, "Paper", plain_user)

        numbers = [o.po_number for o in po_service.list_purchase_orders()]

        assert numbers == ["PO-10001", "PO-10000"]


class TestEditPending:
    def test_update_pending(self, po_service, order, plain_user):
        updated = po_service.update_purchase_order(
            order.id, plain_user, amount="300", description="Laptops and docks",
        )

        assert updated.amount == Decimal("300.00")
        assert updated.description == "Laptops and docks"
        assert updated.status == PurchaseOrderStatus.PENDING

    def test_update_after_approval(self, po_service, order, plain_user, admin):
        po_service.first_approve(order.id, admin)

        with pytest.raises(NotEditableError) as exc_info:
            po_service.update_purchase_order(order.id, plain_user, amount="1")

        assert exc_info.value.current_status == "first_approved"

    def test_delete_pending(self, po_service, order, plain_user):
        po_service.delete_purchase_order(order.id, plain_user)

        with pytest.raises(PurchaseOrderNotFoundError):
            po_service.get_purchase_order(order.id)

    def test_delete_rejected(self, po_service, order, plain_user, admin):
        po_service.reject(order.id, admin, "over budget")

        with pytest.raises(NotEditableError):
            po_service.delete_purchase_order(order.id, plain_user)

    def test_unknown_order(self, po_service, plain_user):
        with pytest.raises(PurchaseOrderNotFoundError):
            po_service.delete_purchase_order(uuid4(), plain_user)


class TestApprovalWorkflow:
    def test_two_tier_approval(self, po_service, order, admin, accountant, clock):
        first = po_service.first_approve(order.id, admin)

        assert first.status == PurchaseOrderStatus.FIRST_APPROVED
        assert first.approved_by_1 == admin.user_id
        assert _naive(first.approved_at_1) == _naive(clock.now())

        clock.advance(60)
        final = po_service.second_approve(order.id, accountant)

        assert final.status == PurchaseOrderStatus.APPROVED
        assert final.approved_by_2 == accountant.user_id
        assert _naive(final.approved_at_2) == _naive(clock.now())
        assert final.approved_by_1 == admin.user_id

    def test_same_admin_cannot_complete_approval(self, po_service, order, admin):
        po_service.first_approve(order.id, admin)

        with pytest.raises(InvalidTransitionError):
            po_service.second_approve(order.id, admin)

        assert po_service.get_purchase_order(order.id).status == PurchaseOrderStatus.FIRST_APPROVED

    def test_second_admin_cannot_complete_approval(self, po_service, order, admin, admin2):
        po_service.first_approve(order.id, admin)

        with pytest.raises(InvalidTransitionError):
            po_service.second_approve(order.id, admin2)

    def test_accountant_cannot_first_approve(self, po_service, order, accountant):
        with pytest.raises(UnauthorizedApproverError):
            po_service.first_approve(order.id, accountant)

    def test_plain_user_cannot_approve(self, po_service, order, plain_user):
        with pytest.raises(UnauthorizedApproverError):
            po_service.first_approve(order.id, plain_user)

    def test_reject_after_first_approval(self, po_service, order, admin, accountant):
        po_service.first_approve(order.id, admin)

        rejected = po_service.reject(order.id, accountant, "  vendor not approved ")

        assert rejected.status == PurchaseOrderStatus.REJECTED
        assert rejected.rejected_by == accountant.user_id
        assert rejected.rejection_reason == "vendor not approved"
        assert rejected.rejected_at is not None

    def test_reject_requires_reason(self, po_service, order, admin):
        with pytest.raises(MissingRejectionReasonError):
            po_service.reject(order.id, admin, "  ")

        assert po_service.get_purchase_order(order.id).status == PurchaseOrderStatus.PENDING

    def test_terminal_states(self, po_service, order, admin, accountant):
        po_service.first_approve(order.id, admin)
        po_service.second_approve(order.id, accountant)

        with pytest.raises(InvalidTransitionError):
            po_service.reject(order.id, admin, "too late")
        with pytest.raises(InvalidTransitionError):
            po_service.first_approve(order.id, admin)

    def test_transition_logged_with_context(self, po_service, order, admin, captured_logs):
        po_service.first_approve(order.id, admin)

        records = [r for r in captured_logs() if r["message"] == "purchase_order_transitioned"]
        assert records[0]["purchase_order_id"] == str(order.id)
        assert records[0]["actor_id"] == str(admin.user_id)
        assert records[0]["to_status"] == "first_approved"

    def test_create_requires_capability(self, po_service):
        nobody = Actor(user_id=uuid4(), role=Role.USER, capabilities=frozenset())

        with pytest.raises(UnauthorizedActorError):
            po_service.create_purchase_order(1, "Pens", nobody)
