# Overview: Service-layer operations for cashier shifts and drawer cash.

"""
Shift Management Service

WHY: Each shift is a period of cash accountability for one cashier at one
branch. Closing a shift compares the counted cash with what the drawer
should hold and records the difference.

DESIGN PRINCIPLES:
- One open shift per user at a time
- Shifts are immutable once closed
- expected = opening balance + CASH sales + deposits - withdrawals
- difference = actual - expected (negative means cash is missing)
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import CashTransaction, Shift
from ..validation import NotFoundError, ValidationError
from branchpos.time_utils import utcnow
from .branch_service import get_active_branch
from .concurrency import lock_row
from .ledger_service import append_ledger_event
from .permission_service import PermissionDeniedError
from .sales_service import cash_sales_total


class ShiftError(Exception):
    """Raised for shift management errors."""
    pass


CASH_TRANSACTION_TYPES = ("DEPOSIT", "WITHDRAWAL")

ZERO = Decimal("0.00")


def open_shift(user_id: int, branch_id: int, opening_balance: Decimal) -> Shift:
    """
    Open a new shift for a user.

    Raises:
        ShiftError: If the user already has an open shift
    """
    if opening_balance < 0:
        raise ValidationError("opening_balance must be >= 0")

    branch = get_active_branch(branch_id)

    existing = get_current_shift(user_id)
    if existing:
        raise ShiftError(f"User already has an open shift (shift {existing.id})")

    shift = Shift(
        branch_id=branch.id,
        user_id=user_id,
        opening_balance=opening_balance,
        opened_at=utcnow(),
    )
    db.session.add(shift)
    db.session.flush()

    append_ledger_event(
        branch_id=branch.id,
        event_type="shift.opened",
        event_category="shifts",
        entity_type="shift",
        entity_id=shift.id,
        actor_user_id=user_id,
        occurred_at=shift.opened_at,
        note="Shift opened",
        payload=f"opening_balance={opening_balance}",
    )

    return shift


def _cash_movements(shift: Shift) -> tuple[Decimal, Decimal]:
    cash_in = ZERO
    cash_out = ZERO
    for tx in shift.transactions:
        if tx.type == "DEPOSIT":
            cash_in += Decimal(tx.amount)
        else:
            cash_out += Decimal(tx.amount)
    return cash_in, cash_out


def compute_expected_cash(shift: Shift) -> dict:
    """
    Break down the cash the drawer should hold right now.

    Used both at close and for the live preview of an open shift.
    """
    sales_cash = cash_sales_total(shift.id)
    cash_in, cash_out = _cash_movements(shift)
    opening = Decimal(shift.opening_balance)
    return {
        "opening_balance": opening,
        "cash_sales_total": sales_cash,
        "cash_in_total": cash_in,
        "cash_out_total": cash_out,
        "expected_cash": opening + sales_cash + cash_in - cash_out,
    }


def close_shift(
    shift_id: int,
    actual_cash: Decimal,
    notes: str | None = None,
    *,
    current_user_id: int | None = None,
    allow_any: bool = False,
) -> Shift:
    """
    Close a shift and calculate the cash difference.

    IMMUTABLE: Once closed, a shift cannot be reopened or modified.

    Args:
        actual_cash: Cash counted in the drawer
        allow_any: Caller may close shifts owned by other users

    Raises:
        NotFoundError, ShiftError, PermissionDeniedError (not the owner)
    """
    if actual_cash < 0:
        raise ValidationError("actual_cash must be >= 0")

    shift = lock_row(Shift, shift_id)
    if not shift:
        raise NotFoundError(f"Shift {shift_id} not found")

    if not shift.is_open:
        raise ShiftError("Shift already closed")

    if current_user_id is not None and shift.user_id != current_user_id and not allow_any:
        raise PermissionDeniedError("Only the shift owner can close this shift")

    totals = compute_expected_cash(shift)
    expected = totals["expected_cash"]
    difference = actual_cash - expected

    shift.cash_sales_total = totals["cash_sales_total"]
    shift.cash_in_total = totals["cash_in_total"]
    shift.cash_out_total = totals["cash_out_total"]
    shift.expected_cash = expected
    shift.actual_cash = actual_cash
    shift.difference = difference
    shift.closed_at = utcnow()
    shift.closed_by_user_id = current_user_id or shift.user_id
    shift.notes = notes
    db.session.flush()

    current_app.logger.info(
        "Shift %s closed: expected=%s actual=%s difference=%s",
        shift.id, expected, actual_cash, difference,
    )

    append_ledger_event(
        branch_id=shift.branch_id,
        event_type="shift.closed",
        event_category="shifts",
        entity_type="shift",
        entity_id=shift.id,
        actor_user_id=shift.closed_by_user_id,
        occurred_at=shift.closed_at,
        note=notes,
        payload=f"expected={expected},actual={actual_cash},difference={difference}",
    )

    return shift


def add_cash_transaction(
    shift_id: int,
    tx_type: str,
    amount: Decimal,
    reason: str | None = None,
    *,
    user_id: int,
) -> CashTransaction:
    """Record cash put into or taken out of the drawer of an open shift."""
    if tx_type not in CASH_TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(CASH_TRANSACTION_TYPES)}")
    if amount <= 0:
        raise ValidationError("amount must be positive")

    shift = lock_row(Shift, shift_id)
    if not shift:
        raise NotFoundError(f"Shift {shift_id} not found")
    if not shift.is_open:
        raise ShiftError("Cannot record cash on a closed shift")

    tx = CashTransaction(
        shift=shift,
        user_id=user_id,
        type=tx_type,
        amount=amount,
        reason=reason,
        created_at=utcnow(),
    )
    db.session.add(tx)
    db.session.flush()

    append_ledger_event(
        branch_id=shift.branch_id,
        event_type=f"shift.cash_{tx_type.lower()}",
        event_category="shifts",
        entity_type="cash_transaction",
        entity_id=tx.id,
        actor_user_id=user_id,
        occurred_at=tx.created_at,
        note=reason,
        payload=f"shift_id={shift.id},amount={amount}",
    )

    return tx


def get_current_shift(user_id: int) -> Shift | None:
    """Get the open shift for a user, if any."""
    return db.session.query(Shift).filter_by(user_id=user_id, closed_at=None).first()


def get_shift(shift_id: int) -> Shift:
    shift = db.session.get(Shift, shift_id)
    if not shift:
        raise NotFoundError(f"Shift {shift_id} not found")
    return shift


def list_shifts(
    *,
    branch_id: int | None = None,
    user_id: int | None = None,
    is_open: bool | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Shift], int]:
    query = db.session.query(Shift)
    if branch_id is not None:
        query = query.filter(Shift.branch_id == branch_id)
    if user_id is not None:
        query = query.filter(Shift.user_id == user_id)
    if is_open is True:
        query = query.filter(Shift.closed_at.is_(None))
    elif is_open is False:
        query = query.filter(Shift.closed_at.isnot(None))

    total = query.count()
    shifts = query.order_by(Shift.opened_at.desc(), Shift.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return shifts, total
