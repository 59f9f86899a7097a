# Overview: Service-layer operations for POS sales.

"""
Sales Service

A sale is created complete in one call: lines are priced, stock is
decremented at the selling branch, and the sale is attached to the
seller's open shift at that branch (if any) so the shift can reconcile its
cash at close.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Sale, SaleLine, Shift
from ..validation import ConflictError, NotFoundError, ValidationError, quantize_money
from .branch_service import get_active_branch
from .concurrency import lock_for_update
from .document_service import next_document_number
from .inventory_service import decrement_stock
from .ledger_service import append_ledger_event
from .products_service import default_price, get_variant


class SaleError(Exception):
    """Raised when a sale cannot be completed."""
    pass


PAYMENT_METHODS = ("CASH", "CARD", "TRANSFER", "INSTALLMENT")
DISCOUNT_TYPES = ("AMOUNT", "PERCENTAGE")

ZERO = Decimal("0.00")


def _compute_discount(subtotal: Decimal, discount: Decimal, discount_type: str) -> Decimal:
    if discount_type == "PERCENTAGE":
        if discount > 100:
            raise ValidationError("Percentage discount cannot exceed 100")
        return quantize_money(subtotal * discount / Decimal(100))
    if discount > subtotal:
        raise ValidationError("Discount cannot exceed the subtotal")
    return discount


def find_open_shift(user_id: int, branch_id: int) -> Shift | None:
    return lock_for_update(db.session.query(Shift).filter_by(
        user_id=user_id,
        branch_id=branch_id,
        closed_at=None,
    )).first()


def claim_open_shift(shift: Shift) -> None:
    """
    Bump the shift version while it is still open.

    A close committed since the shift was read leaves no matching row, and a
    close still in flight fails its own version check at commit.

    Raises:
        ConflictError: the shift was closed concurrently
    """
    shift_id = shift.id
    claimed = db.session.query(Shift).filter(
        Shift.id == shift_id,
        Shift.closed_at.is_(None),
    ).update({Shift.version_id: Shift.version_id + 1}, synchronize_session=False)
    db.session.expire(shift)
    if not claimed:
        raise ConflictError(f"Shift {shift_id} was closed while the sale was in progress, please retry")


def create_sale(
    *,
    user_id: int,
    branch_id: int,
    items: list[dict],
    payment_method: str = "CASH",
    discount: Decimal = ZERO,
    discount_type: str = "AMOUNT",
    tax: Decimal = ZERO,
    paid: Decimal | None = None,
    notes: str | None = None,
) -> Sale:
    """
    Create a completed sale.

    Args:
        items: [{"variant_id": int, "quantity": int,
                 "unit_price": Decimal | None, "discount": Decimal}]
        paid: amount tendered; defaults to the total. Only INSTALLMENT
              sales may be paid below the total (the rest is financed).

    Raises:
        SaleError / InventoryError / ValidationError on rule violations
    """
    branch = get_active_branch(branch_id)
    if branch.is_warehouse:
        raise SaleError(f"Branch {branch.code} is a warehouse and cannot sell")

    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"discount_type must be one of: {', '.join(DISCOUNT_TYPES)}")
    if not items:
        raise SaleError("A sale needs at least one item")

    subtotal = ZERO
    lines = []
    for item in items:
        variant = get_variant(item["variant_id"])
        if not variant.is_active:
            raise SaleError(f"Variant {variant.sku} is not active")

        quantity = item["quantity"]
        if quantity <= 0:
            raise ValidationError("Item quantity must be positive")

        unit_price = item.get("unit_price")
        if unit_price is None:
            unit_price = default_price(variant)
        line_discount = item.get("discount") or ZERO

        line_total = quantize_money(unit_price * quantity) - line_discount
        if line_total < 0:
            raise ValidationError(f"Line discount exceeds line amount for {variant.sku}")

        subtotal += line_total
        lines.append((variant, quantity, unit_price, line_discount, line_total))

    discount_amount = _compute_discount(subtotal, discount, discount_type)
    total = quantize_money(subtotal - discount_amount + tax)

    if paid is None:
        paid = total
    if paid < total and payment_method != "INSTALLMENT":
        raise SaleError(f"Paid amount {paid} is less than total {total}")
    change = paid - total if paid > total else ZERO

    shift = find_open_shift(user_id, branch_id)

    sale = Sale(
        invoice_number=next_document_number(branch_id=branch_id, document_type="SALE", prefix="INV"),
        branch_id=branch_id,
        user_id=user_id,
        shift_id=shift.id if shift else None,
        subtotal=subtotal,
        discount_type=discount_type,
        discount_amount=discount_amount,
        tax=tax,
        total=total,
        paid=paid,
        change=change,
        payment_method=payment_method,
        status="COMPLETED",
        notes=notes,
    )
    if shift:
        claim_open_shift(shift)

    db.session.add(sale)
    db.session.flush()

    for variant, quantity, unit_price, line_discount, line_total in lines:
        decrement_stock(branch_id, variant.id, quantity)
        db.session.add(SaleLine(
            sale=sale,
            variant_id=variant.id,
            quantity=quantity,
            unit_price=unit_price,
            discount=line_discount,
            line_total=line_total,
        ))

    db.session.flush()

    append_ledger_event(
        branch_id=branch_id,
        event_type="sale.completed",
        event_category="sales",
        entity_type="sale",
        entity_id=sale.id,
        actor_user_id=user_id,
        note=sale.invoice_number,
        payload=f"total={total},payment_method={payment_method},shift_id={sale.shift_id}",
    )

    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


def list_sales(
    *,
    branch_id: int | None = None,
    shift_id: int | None = None,
    user_id: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Sale], int]:
    query = db.session.query(Sale)
    if branch_id is not None:
        query = query.filter(Sale.branch_id == branch_id)
    if shift_id is not None:
        query = query.filter(Sale.shift_id == shift_id)
    if user_id is not None:
        query = query.filter(Sale.user_id == user_id)

    total = query.count()
    sales = query.order_by(Sale.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return sales, total


def cash_sales_total(shift_id: int) -> Decimal:
    """Net cash kept from CASH sales attached to a shift (totals, change excluded)."""
    sales = db.session.query(Sale).filter_by(
        shift_id=shift_id,
        payment_method="CASH",
        status="COMPLETED",
    ).all()
    return sum((Decimal(s.total) for s in sales), ZERO)
