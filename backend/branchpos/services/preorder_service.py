# Overview: Customer pre-orders for out-of-stock variants.

"""
Pre-order Service

A pre-order reserves nothing; it is a note that a customer wants a variant
at a branch. Staff check which pending orders can now be filled, notify the
customer and complete the order when it is picked up.

    PENDING -> NOTIFIED -> COMPLETED
    PENDING -> COMPLETED
    PENDING/NOTIFIED -> CANCELLED
"""

from __future__ import annotations

from ..extensions import db
from ..models import Inventory, PreOrder
from ..validation import NotFoundError, ValidationError
from branchpos.time_utils import utcnow
from .branch_service import get_active_branch
from .ledger_service import append_ledger_event
from .products_service import get_variant


class PreOrderError(Exception):
    """Raised for invalid pre-order state changes."""
    pass


PREORDER_STATUSES = ("PENDING", "NOTIFIED", "COMPLETED", "CANCELLED")

ALLOWED_TRANSITIONS = {
    "PENDING": {"NOTIFIED", "COMPLETED", "CANCELLED"},
    "NOTIFIED": {"COMPLETED", "CANCELLED"},
    "COMPLETED": set(),
    "CANCELLED": set(),
}


def create_preorder(
    *,
    branch_id: int,
    variant_id: int,
    customer_name: str,
    quantity: int = 1,
    customer_phone: str | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> PreOrder:
    if quantity <= 0:
        raise ValidationError("quantity must be positive")

    get_active_branch(branch_id)
    get_variant(variant_id)

    preorder = PreOrder(
        branch_id=branch_id,
        variant_id=variant_id,
        user_id=user_id,
        customer_name=customer_name,
        customer_phone=customer_phone,
        quantity=quantity,
        notes=notes,
        status="PENDING",
        created_at=utcnow(),
    )
    db.session.add(preorder)
    db.session.flush()

    append_ledger_event(
        branch_id=branch_id,
        event_type="preorder.created",
        event_category="preorders",
        entity_type="preorder",
        entity_id=preorder.id,
        actor_user_id=user_id,
        note=customer_name,
        payload=f"variant_id={variant_id},quantity={quantity}",
    )

    return preorder


def get_preorder(preorder_id: int) -> PreOrder:
    preorder = db.session.get(PreOrder, preorder_id)
    if not preorder:
        raise NotFoundError(f"Pre-order {preorder_id} not found")
    return preorder


def list_preorders(*, branch_id: int | None = None, status: str | None = None) -> list[PreOrder]:
    query = db.session.query(PreOrder)
    if branch_id is not None:
        query = query.filter(PreOrder.branch_id == branch_id)
    if status:
        query = query.filter(PreOrder.status == status)
    return query.order_by(PreOrder.id.desc()).all()


def list_available(branch_id: int | None = None) -> list[PreOrder]:
    """Pending pre-orders whose branch now holds enough stock to fill them."""
    query = db.session.query(PreOrder).join(
        Inventory,
        (Inventory.variant_id == PreOrder.variant_id) & (Inventory.branch_id == PreOrder.branch_id),
    ).filter(
        PreOrder.status == "PENDING",
        Inventory.quantity >= PreOrder.quantity,
    )
    if branch_id is not None:
        query = query.filter(PreOrder.branch_id == branch_id)
    return query.order_by(PreOrder.created_at, PreOrder.id).all()


def _transition(preorder_id: int, next_status: str, user_id: int | None) -> PreOrder:
    preorder = get_preorder(preorder_id)

    if next_status not in ALLOWED_TRANSITIONS[preorder.status]:
        raise PreOrderError(f"Cannot move pre-order from {preorder.status} to {next_status}")

    now = utcnow()
    if next_status == "NOTIFIED":
        preorder.notified_at = now
    elif next_status == "COMPLETED":
        preorder.completed_at = now
    else:
        preorder.cancelled_at = now

    previous = preorder.status
    preorder.status = next_status
    db.session.flush()

    append_ledger_event(
        branch_id=preorder.branch_id,
        event_type=f"preorder.{next_status.lower()}",
        event_category="preorders",
        entity_type="preorder",
        entity_id=preorder.id,
        actor_user_id=user_id,
        occurred_at=now,
        payload=f"from={previous},to={next_status}",
    )

    return preorder


def mark_notified(preorder_id: int, user_id: int | None = None) -> PreOrder:
    return _transition(preorder_id, "NOTIFIED", user_id)


def complete_preorder(preorder_id: int, user_id: int | None = None) -> PreOrder:
    return _transition(preorder_id, "COMPLETED", user_id)


def cancel_preorder(preorder_id: int, user_id: int | None = None) -> PreOrder:
    return _transition(preorder_id, "CANCELLED", user_id)
