"""Tests for customer pre-orders."""

import pytest

from branchpos.services import preorder_service
from branchpos.services.inventory_service import increment_stock
from branchpos.services.preorder_service import PreOrderError
from branchpos.validation import ValidationError


@pytest.fixture
def preorder(db_session, main_branch, variant, cashier_user):
    preorder = preorder_service.create_preorder(
        branch_id=main_branch.id,
        variant_id=variant.id,
        customer_name="Hana",
        customer_phone="01111111111",
        quantity=2,
        user_id=cashier_user.id,
    )
    db_session.commit()
    return preorder


def test_create(preorder):
    assert preorder.status == "PENDING"
    assert preorder.quantity == 2


def test_quantity_must_be_positive(db_session, main_branch, variant):
    with pytest.raises(ValidationError):
        preorder_service.create_preorder(
            branch_id=main_branch.id, variant_id=variant.id, customer_name="Hana", quantity=0,
        )


def test_available_once_stock_arrives(preorder, db_session, main_branch, variant):
    assert preorder_service.list_available(main_branch.id) == []

    increment_stock(main_branch.id, variant.id, 1)
    assert preorder_service.list_available(main_branch.id) == []

    increment_stock(main_branch.id, variant.id, 1)
    assert [p.id for p in preorder_service.list_available(main_branch.id)] == [preorder.id]


def test_notify_then_complete(preorder, cashier_user):
    preorder_service.mark_notified(preorder.id, cashier_user.id)
    assert preorder.status == "NOTIFIED"
    assert preorder.notified_at is not None

    preorder_service.complete_preorder(preorder.id, cashier_user.id)
    assert preorder.status == "COMPLETED"
    assert preorder.completed_at is not None


def test_notified_not_listed_as_available(preorder, db_session, main_branch, variant):
    increment_stock(main_branch.id, variant.id, 5)
    preorder_service.mark_notified(preorder.id)

    assert preorder_service.list_available(main_branch.id) == []


def test_completed_cannot_be_cancelled(preorder):
    preorder_service.complete_preorder(preorder.id)

    with pytest.raises(PreOrderError):
        preorder_service.cancel_preorder(preorder.id)


def test_cancelled_cannot_be_notified(preorder):
    preorder_service.cancel_preorder(preorder.id)

    with pytest.raises(PreOrderError):
        preorder_service.mark_notified(preorder.id)
