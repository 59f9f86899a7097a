# Overview: Service-layer operations for inter-branch stock transfers.

"""
Inter-branch transfer service.

WHY: Move stock between branches with an approval step and a record of who
did what. Stock leaves the source branch when the transfer ships and
arrives at the destination when it is completed, so the units are never
counted at both branches at once.

LIFECYCLE:
1. PENDING: Transfer created with its lines
2. APPROVED: Manager approved
3. IN_TRANSIT: Shipped from source (source stock decremented)
4. COMPLETED: Received at destination (destination stock incremented)
5. CANCELLED: Cancelled before shipping
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Transfer, TransferLine
from ..validation import NotFoundError, ValidationError
from branchpos.time_utils import utcnow
from .branch_service import get_active_branch
from .concurrency import lock_row, run_with_retry
from .document_service import next_document_number
from .inventory_service import decrement_stock, get_quantity_on_hand, increment_stock
from .ledger_service import append_ledger_event
from .products_service import get_variant


TRANSFER_STATUS_PENDING = "PENDING"
TRANSFER_STATUS_APPROVED = "APPROVED"
TRANSFER_STATUS_IN_TRANSIT = "IN_TRANSIT"
TRANSFER_STATUS_COMPLETED = "COMPLETED"
TRANSFER_STATUS_CANCELLED = "CANCELLED"

TRANSFER_STATUSES = (
    TRANSFER_STATUS_PENDING,
    TRANSFER_STATUS_APPROVED,
    TRANSFER_STATUS_IN_TRANSIT,
    TRANSFER_STATUS_COMPLETED,
    TRANSFER_STATUS_CANCELLED,
)

# current status -> statuses it may move to
ALLOWED_TRANSITIONS = {
    TRANSFER_STATUS_PENDING: {TRANSFER_STATUS_APPROVED, TRANSFER_STATUS_CANCELLED},
    TRANSFER_STATUS_APPROVED: {TRANSFER_STATUS_IN_TRANSIT, TRANSFER_STATUS_CANCELLED},
    TRANSFER_STATUS_IN_TRANSIT: {TRANSFER_STATUS_COMPLETED},
    TRANSFER_STATUS_COMPLETED: set(),
    TRANSFER_STATUS_CANCELLED: set(),
}

# target status -> capability required to move a transfer into it
TRANSITION_PERMISSIONS = {
    TRANSFER_STATUS_APPROVED: "APPROVE_TRANSFERS",
    TRANSFER_STATUS_CANCELLED: "APPROVE_TRANSFERS",
    TRANSFER_STATUS_IN_TRANSIT: "MOVE_TRANSFERS",
    TRANSFER_STATUS_COMPLETED: "MOVE_TRANSFERS",
}


class TransferError(Exception):
    """Raised when transfer operations fail."""
    pass


def create_transfer(
    from_branch_id: int,
    to_branch_id: int,
    lines: list[dict],
    user_id: int,
    notes: str | None = None,
) -> Transfer:
    """
    Create a new transfer document (status: PENDING) with its lines.

    Args:
        lines: [{"variant_id": int, "quantity": int}], each variant once

    Raises:
        TransferError: same branch, no lines, duplicate variant or
                       insufficient stock at the source
    """
    def _op():
        if from_branch_id == to_branch_id:
            raise TransferError("Cannot transfer to the same branch")
        if not lines:
            raise TransferError("A transfer needs at least one line")

        get_active_branch(from_branch_id)
        get_active_branch(to_branch_id)

        seen = set()
        for line in lines:
            variant_id = line["variant_id"]
            quantity = line["quantity"]
            if variant_id in seen:
                raise TransferError(f"Variant {variant_id} appears more than once")
            seen.add(variant_id)

            if quantity <= 0:
                raise TransferError("Quantity must be positive")

            get_variant(variant_id)

            on_hand = get_quantity_on_hand(from_branch_id, variant_id)
            if on_hand < quantity:
                raise TransferError(
                    f"Insufficient inventory for variant {variant_id}. "
                    f"On-hand: {on_hand}, requested: {quantity}"
                )

        document_number = next_document_number(
            branch_id=from_branch_id,
            document_type="TRANSFER",
            prefix="TRF",
        )

        transfer = Transfer(
            from_branch_id=from_branch_id,
            to_branch_id=to_branch_id,
            document_number=document_number,
            status=TRANSFER_STATUS_PENDING,
            notes=notes,
            created_by_user_id=user_id,
            created_at=utcnow(),
        )
        db.session.add(transfer)
        db.session.flush()

        for line in lines:
            db.session.add(TransferLine(
                transfer=transfer,
                variant_id=line["variant_id"],
                quantity=line["quantity"],
            ))
        db.session.flush()

        append_ledger_event(
            branch_id=from_branch_id,
            event_type="transfer.created",
            event_category="transfers",
            entity_type="transfer",
            entity_id=transfer.id,
            actor_user_id=user_id,
            occurred_at=transfer.created_at,
            note=notes,
            payload=f"to_branch_id={to_branch_id},lines={len(lines)}",
        )

        return transfer

    return run_with_retry(_op)


def _ship(transfer: Transfer, user_id: int) -> None:
    for line in transfer.lines:
        on_hand = get_quantity_on_hand(transfer.from_branch_id, line.variant_id)
        if on_hand < line.quantity:
            raise TransferError(
                f"Insufficient inventory for variant {line.variant_id}. "
                f"On-hand: {on_hand}, required: {line.quantity}"
            )
        decrement_stock(transfer.from_branch_id, line.variant_id, line.quantity)

        append_ledger_event(
            branch_id=transfer.from_branch_id,
            event_type="inventory.transfer_out",
            event_category="inventory",
            entity_type="transfer_line",
            entity_id=line.id,
            actor_user_id=user_id,
            note=f"Transfer {transfer.document_number} to branch {transfer.to_branch_id}",
            payload=f"variant_id={line.variant_id},quantity={line.quantity}",
        )

    transfer.shipped_by_user_id = user_id
    transfer.shipped_at = utcnow()


def _complete(transfer: Transfer, user_id: int) -> None:
    for line in transfer.lines:
        increment_stock(transfer.to_branch_id, line.variant_id, line.quantity)

        append_ledger_event(
            branch_id=transfer.to_branch_id,
            event_type="inventory.transfer_in",
            event_category="inventory",
            entity_type="transfer_line",
            entity_id=line.id,
            actor_user_id=user_id,
            note=f"Transfer {transfer.document_number} from branch {transfer.from_branch_id}",
            payload=f"variant_id={line.variant_id},quantity={line.quantity}",
        )

    transfer.completed_by_user_id = user_id
    transfer.completed_at = utcnow()


def advance_status(
    transfer_id: int,
    next_status: str,
    user_id: int,
    reason: str | None = None,
) -> Transfer:
    """
    Move a transfer forward one step in its lifecycle.

    Only transitions in ALLOWED_TRANSITIONS succeed. Shipping re-checks
    and decrements source stock; completing increments destination stock.

    Raises:
        ValidationError: unknown status value
        NotFoundError: unknown transfer
        TransferError: transition not allowed or stock no longer available
    """
    if next_status not in TRANSFER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(TRANSFER_STATUSES)}")

    def _op():
        transfer = lock_row(Transfer, transfer_id)
        if not transfer:
            raise NotFoundError(f"Transfer {transfer_id} not found")

        current = transfer.status
        if next_status not in ALLOWED_TRANSITIONS[current]:
            raise TransferError(f"Invalid status transition {current} -> {next_status}")

        if next_status == TRANSFER_STATUS_APPROVED:
            transfer.approved_by_user_id = user_id
            transfer.approved_at = utcnow()
        elif next_status == TRANSFER_STATUS_IN_TRANSIT:
            _ship(transfer, user_id)
        elif next_status == TRANSFER_STATUS_COMPLETED:
            _complete(transfer, user_id)
        else:
            transfer.cancelled_by_user_id = user_id
            transfer.cancelled_at = utcnow()
            transfer.cancellation_reason = reason

        transfer.status = next_status
        db.session.flush()

        current_app.logger.info(
            "Transfer %s moved %s -> %s by user %s",
            transfer.document_number, current, next_status, user_id,
        )

        append_ledger_event(
            branch_id=transfer.from_branch_id,
            event_type=f"transfer.{next_status.lower()}",
            event_category="transfers",
            entity_type="transfer",
            entity_id=transfer.id,
            actor_user_id=user_id,
            note=reason,
            payload=f"from={current},to={next_status}",
        )

        return transfer

    return run_with_retry(_op)


def get_transfer(transfer_id: int) -> Transfer:
    transfer = db.session.get(Transfer, transfer_id)
    if not transfer:
        raise NotFoundError(f"Transfer {transfer_id} not found")
    return transfer


def list_transfers(
    *,
    status: str | None = None,
    from_branch_id: int | None = None,
    to_branch_id: int | None = None,
    limit: int = 50,
) -> list[Transfer]:
    query = db.session.query(Transfer)
    if status:
        query = query.filter(Transfer.status == status)
    if from_branch_id is not None:
        query = query.filter(Transfer.from_branch_id == from_branch_id)
    if to_branch_id is not None:
        query = query.filter(Transfer.to_branch_id == to_branch_id)
    return query.order_by(Transfer.id.desc()).limit(limit).all()
