# Overview: Service-layer operations for purchase orders and receiving.

"""
Purchase order service.

WHY: Stock enters the business from suppliers. An order records what was
ordered at what cost; stock at the ordering branch only grows as goods are
received, line by line, so a short delivery leaves the order PARTIAL until
the rest arrives or the order is cancelled.

LIFECYCLE:
1. PENDING: Ordered, nothing received
2. PARTIAL: Some quantity received, some outstanding
3. RECEIVED: All lines fully received
4. CANCELLED: Closed early; received stock is kept
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import PurchaseOrder, PurchaseOrderLine
from ..validation import NotFoundError, ValidationError, quantize_money
from branchpos.time_utils import utcnow
from .branch_service import get_active_branch
from .concurrency import lock_row, run_with_retry
from .document_service import next_document_number
from .inventory_service import increment_stock
from .ledger_service import append_ledger_event
from .products_service import get_variant
from .supplier_service import get_active_supplier


PURCHASE_STATUS_PENDING = "PENDING"
PURCHASE_STATUS_PARTIAL = "PARTIAL"
PURCHASE_STATUS_RECEIVED = "RECEIVED"
PURCHASE_STATUS_CANCELLED = "CANCELLED"

PURCHASE_STATUSES = (
    PURCHASE_STATUS_PENDING,
    PURCHASE_STATUS_PARTIAL,
    PURCHASE_STATUS_RECEIVED,
    PURCHASE_STATUS_CANCELLED,
)

# Orders that can still take deliveries or be cancelled
OPEN_STATUSES = (PURCHASE_STATUS_PENDING, PURCHASE_STATUS_PARTIAL)


class PurchaseError(Exception):
    """Raised when a purchase order operation violates its rules."""
    pass


def create_purchase_order(
    *,
    branch_id: int,
    supplier_id: int,
    lines: list[dict],
    user_id: int,
    notes: str | None = None,
    auto_receive: bool = False,
) -> PurchaseOrder:
    """
    Create a purchase order (status: PENDING) with its lines.

    Args:
        lines: [{"variant_id": int, "quantity": int, "unit_cost": Decimal}],
               each variant once
        auto_receive: receive every line in full right away

    Raises:
        PurchaseError: no lines, duplicate variant, non-positive quantity
                       or negative cost
        SupplierError / BranchError: inactive supplier or branch
    """
    def _op():
        if not lines:
            raise PurchaseError("A purchase order needs at least one line")

        get_active_branch(branch_id)
        get_active_supplier(supplier_id)

        seen = set()
        total = Decimal("0.00")
        for line in lines:
            variant_id = line["variant_id"]
            if variant_id in seen:
                raise PurchaseError(f"Variant {variant_id} appears more than once")
            seen.add(variant_id)

            if line["quantity"] <= 0:
                raise PurchaseError("Quantity must be positive")
            if line["unit_cost"] < 0:
                raise PurchaseError("Unit cost cannot be negative")

            get_variant(variant_id)
            total += quantize_money(line["unit_cost"] * line["quantity"])

        order = PurchaseOrder(
            branch_id=branch_id,
            supplier_id=supplier_id,
            document_number=next_document_number(
                branch_id=branch_id,
                document_type="PURCHASE",
                prefix="PO",
            ),
            status=PURCHASE_STATUS_PENDING,
            total=total,
            notes=notes,
            created_by_user_id=user_id,
            created_at=utcnow(),
        )
        db.session.add(order)
        db.session.flush()

        for line in lines:
            db.session.add(PurchaseOrderLine(
                purchase_order=order,
                variant_id=line["variant_id"],
                quantity=line["quantity"],
                unit_cost=line["unit_cost"],
                received_quantity=0,
            ))
        db.session.flush()

        append_ledger_event(
            branch_id=branch_id,
            event_type="purchase.created",
            event_category="purchases",
            entity_type="purchase_order",
            entity_id=order.id,
            actor_user_id=user_id,
            occurred_at=order.created_at,
            note=notes,
            payload=f"supplier_id={supplier_id},lines={len(lines)},total={total}",
        )

        if auto_receive:
            _receive(order, [(line, line.outstanding) for line in order.lines], user_id)

        return order

    return run_with_retry(_op)


def _resolve_receipts(order: PurchaseOrder, receipts: list[dict] | None) -> list[tuple]:
    """Turn [{"line_id", "quantity"}] into (line, quantity) pairs; None means everything outstanding."""
    if receipts is None:
        return [(line, line.outstanding) for line in order.lines if line.outstanding > 0]

    by_id = {line.id: line for line in order.lines}
    resolved = []
    seen = set()
    for receipt in receipts:
        line = by_id.get(receipt["line_id"])
        if line is None:
            raise PurchaseError(f"Line {receipt['line_id']} is not on {order.document_number}")
        if line.id in seen:
            raise PurchaseError(f"Line {line.id} appears more than once")
        seen.add(line.id)

        quantity = receipt["quantity"]
        if quantity <= 0:
            raise PurchaseError("Received quantity must be positive")
        if quantity > line.outstanding:
            raise PurchaseError(
                f"Cannot receive {quantity} of variant {line.variant_id}; "
                f"only {line.outstanding} outstanding"
            )
        resolved.append((line, quantity))
    return resolved


def _receive(order: PurchaseOrder, pairs: list[tuple], user_id: int) -> None:
    if not pairs:
        raise PurchaseError("Nothing to receive")

    for line, quantity in pairs:
        increment_stock(order.branch_id, line.variant_id, quantity)
        line.received_quantity = line.received_quantity + quantity

        append_ledger_event(
            branch_id=order.branch_id,
            event_type="inventory.purchase_in",
            event_category="inventory",
            entity_type="purchase_order_line",
            entity_id=line.id,
            actor_user_id=user_id,
            note=f"Purchase {order.document_number}",
            payload=f"variant_id={line.variant_id},quantity={quantity}",
        )

    previous = order.status
    if all(line.outstanding == 0 for line in order.lines):
        order.status = PURCHASE_STATUS_RECEIVED
        order.received_at = utcnow()
    else:
        order.status = PURCHASE_STATUS_PARTIAL
    db.session.flush()

    current_app.logger.info(
        "Purchase %s received %d line(s), %s -> %s",
        order.document_number, len(pairs), previous, order.status,
    )

    append_ledger_event(
        branch_id=order.branch_id,
        event_type=f"purchase.{order.status.lower()}",
        event_category="purchases",
        entity_type="purchase_order",
        entity_id=order.id,
        actor_user_id=user_id,
        payload=f"from={previous},to={order.status}",
    )


def receive_purchase_order(
    purchase_order_id: int,
    user_id: int,
    receipts: list[dict] | None = None,
) -> PurchaseOrder:
    """
    Receive goods against an open purchase order.

    Args:
        receipts: [{"line_id": int, "quantity": int}]; None receives every
                  outstanding quantity

    Raises:
        NotFoundError: unknown order
        PurchaseError: order not open, unknown line, or more than outstanding
    """
    def _op():
        order = lock_row(PurchaseOrder, purchase_order_id)
        if not order:
            raise NotFoundError(f"Purchase order {purchase_order_id} not found")
        if order.status not in OPEN_STATUSES:
            raise PurchaseError(f"Cannot receive a {order.status} purchase order")

        _receive(order, _resolve_receipts(order, receipts), user_id)
        return order

    return run_with_retry(_op)


def cancel_purchase_order(
    purchase_order_id: int,
    user_id: int,
    reason: str | None = None,
) -> PurchaseOrder:
    """Close an open order. Stock already received stays at the branch."""
    order = lock_row(PurchaseOrder, purchase_order_id)
    if not order:
        raise NotFoundError(f"Purchase order {purchase_order_id} not found")
    if order.status not in OPEN_STATUSES:
        raise PurchaseError(f"Cannot cancel a {order.status} purchase order")

    previous = order.status
    order.status = PURCHASE_STATUS_CANCELLED
    order.cancelled_at = utcnow()
    order.cancelled_by_user_id = user_id
    db.session.flush()

    append_ledger_event(
        branch_id=order.branch_id,
        event_type="purchase.cancelled",
        event_category="purchases",
        entity_type="purchase_order",
        entity_id=order.id,
        actor_user_id=user_id,
        note=reason,
        payload=f"from={previous},to={PURCHASE_STATUS_CANCELLED}",
    )
    return order


def get_purchase_order(purchase_order_id: int) -> PurchaseOrder:
    order = db.session.get(PurchaseOrder, purchase_order_id)
    if not order:
        raise NotFoundError(f"Purchase order {purchase_order_id} not found")
    return order


def list_purchase_orders(
    *,
    status: str | None = None,
    supplier_id: int | None = None,
    branch_id: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[PurchaseOrder], int]:
    if status and status not in PURCHASE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PURCHASE_STATUSES)}")

    query = db.session.query(PurchaseOrder)
    if status:
        query = query.filter(PurchaseOrder.status == status)
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    if branch_id is not None:
        query = query.filter(PurchaseOrder.branch_id == branch_id)

    total = query.count()
    orders = query.order_by(PurchaseOrder.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return orders, total
