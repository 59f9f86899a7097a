# Overview: Per-branch stock levels; all stock movements go through here.

"""
Inventory Service

WHY: Sales, transfers and manual adjustments all change the same
(variant, branch) rows. Centralizing the movement rules keeps the
non-negative quantity invariant in one place.

- Decrements lock the row and fail if stock is insufficient
- Increments create the row on first receipt (min_stock from config)
- Manual "subtract" adjustments floor at zero instead of failing
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Inventory, ProductVariant
from ..validation import NotFoundError, ValidationError
from .branch_service import get_branch
from .concurrency import lock_for_update
from .ledger_service import append_ledger_event


class InventoryError(Exception):
    """Raised when a stock movement is not possible."""
    pass


ADJUST_OPERATIONS = ("SET", "ADD", "SUBTRACT")


def get_inventory_row(variant_id: int, branch_id: int, *, lock: bool = False) -> Inventory | None:
    query = db.session.query(Inventory).filter_by(variant_id=variant_id, branch_id=branch_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def get_quantity_on_hand(branch_id: int, variant_id: int) -> int:
    row = get_inventory_row(variant_id, branch_id)
    return row.quantity if row else 0


def _default_min_stock() -> int:
    return current_app.config.get("DEFAULT_MIN_STOCK", 5)


def _get_or_create_row(variant_id: int, branch_id: int) -> Inventory:
    row = get_inventory_row(variant_id, branch_id, lock=True)
    if row is None:
        row = Inventory(
            variant_id=variant_id,
            branch_id=branch_id,
            quantity=0,
            min_stock=_default_min_stock(),
        )
        db.session.add(row)
        db.session.flush()
    return row


def decrement_stock(branch_id: int, variant_id: int, quantity: int) -> Inventory:
    """
    Remove quantity from a branch.

    Raises InventoryError if the branch holds less than quantity.
    """
    if quantity <= 0:
        raise InventoryError("Quantity must be positive")

    row = get_inventory_row(variant_id, branch_id, lock=True)
    on_hand = row.quantity if row else 0
    if on_hand < quantity:
        raise InventoryError(
            f"Insufficient stock for variant {variant_id} at branch {branch_id}. "
            f"On-hand: {on_hand}, requested: {quantity}"
        )

    row.quantity = on_hand - quantity
    db.session.flush()
    return row


def increment_stock(branch_id: int, variant_id: int, quantity: int) -> Inventory:
    """Add quantity to a branch, creating the inventory row if needed."""
    if quantity <= 0:
        raise InventoryError("Quantity must be positive")

    row = _get_or_create_row(variant_id, branch_id)
    row.quantity = row.quantity + quantity
    db.session.flush()
    return row


def adjust_stock(
    *,
    variant_id: int,
    branch_id: int,
    quantity: int,
    operation: str = "SET",
    min_stock: int | None = None,
    user_id: int | None = None,
    note: str | None = None,
) -> Inventory:
    """
    Manual stock correction.

    SET replaces the quantity, ADD adds to it and SUBTRACT removes from it,
    flooring at zero.
    """
    if operation not in ADJUST_OPERATIONS:
        raise ValidationError(f"operation must be one of: {', '.join(ADJUST_OPERATIONS)}")
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")
    if min_stock is not None and min_stock < 0:
        raise ValidationError("min_stock must be >= 0")

    get_branch(branch_id)
    if db.session.get(ProductVariant, variant_id) is None:
        raise NotFoundError(f"Variant {variant_id} not found")

    row = _get_or_create_row(variant_id, branch_id)
    before = row.quantity

    if operation == "SET":
        row.quantity = quantity
    elif operation == "ADD":
        row.quantity = before + quantity
    else:
        row.quantity = max(0, before - quantity)

    if min_stock is not None:
        row.min_stock = min_stock

    db.session.flush()

    append_ledger_event(
        branch_id=branch_id,
        event_type="inventory.adjusted",
        event_category="inventory",
        entity_type="inventory",
        entity_id=row.id,
        actor_user_id=user_id,
        note=note,
        payload=f"variant_id={variant_id},operation={operation},before={before},after={row.quantity}",
    )

    return row


def list_inventory(
    *,
    branch_id: int | None = None,
    low_stock: bool = False,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[Inventory], int]:
    query = db.session.query(Inventory)

    if branch_id is not None:
        query = query.filter(Inventory.branch_id == branch_id)
    if low_stock:
        query = query.filter(Inventory.quantity <= Inventory.min_stock)

    total = query.count()
    rows = query.order_by(Inventory.branch_id, Inventory.variant_id).offset((page - 1) * limit).limit(limit).all()
    return rows, total
