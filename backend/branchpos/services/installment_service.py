# Overview: Service-layer operations for customer installment plans.

"""
Installment Plan Service

WHY: Customers may pay for a purchase over several periods. The plan keeps
the outstanding balance and the next due date; each payment is recorded as
its own row so the history can be audited.

LIFECYCLE:
    ACTIVE -> COMPLETED     (remaining reaches zero)
    ACTIVE -> OVERDUE       (mark_overdue after the due date passes)
    OVERDUE -> ACTIVE       (a payment moves the due date back into the future)
    ACTIVE/OVERDUE -> CANCELLED

INVARIANT: remaining_amount == total - down_payment - sum(payments) >= 0
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import InstallmentPayment, InstallmentPlan, Sale
from ..validation import NotFoundError, ValidationError, quantize_money
from branchpos.time_utils import add_months, utcnow, utctoday
from .branch_service import get_active_branch
from .concurrency import lock_for_update, lock_row
from .ledger_service import append_ledger_event


class InstallmentError(Exception):
    """Raised for installment plan rule violations."""
    pass


PLAN_STATUSES = ("ACTIVE", "OVERDUE", "COMPLETED", "CANCELLED")
OPEN_STATUSES = ("ACTIVE", "OVERDUE")

ZERO = Decimal("0.00")


def _period_months() -> int:
    return current_app.config.get("INSTALLMENT_PERIOD_MONTHS", 1)


def create_plan(
    *,
    branch_id: int,
    user_id: int,
    customer_name: str,
    total_amount: Decimal,
    down_payment: Decimal,
    number_of_payments: int,
    customer_phone: str | None = None,
    sale_id: int | None = None,
    notes: str | None = None,
) -> InstallmentPlan:
    """
    Create an installment plan.

    remaining = total - down_payment, split evenly over number_of_payments.
    The first payment is due one period from today.

    Raises:
        ValidationError: amounts or payment count out of range
        NotFoundError: unknown branch or sale
    """
    if total_amount <= 0:
        raise ValidationError("total_amount must be positive")
    if down_payment < 0:
        raise ValidationError("down_payment must be >= 0")
    if down_payment > total_amount:
        raise ValidationError("down_payment cannot exceed total_amount")
    if number_of_payments < 1:
        raise ValidationError("number_of_payments must be >= 1")

    get_active_branch(branch_id)

    if sale_id is not None and db.session.get(Sale, sale_id) is None:
        raise NotFoundError(f"Sale {sale_id} not found")

    remaining = total_amount - down_payment
    per_period = quantize_money(remaining / number_of_payments)
    now = utcnow()

    plan = InstallmentPlan(
        branch_id=branch_id,
        user_id=user_id,
        sale_id=sale_id,
        customer_name=customer_name,
        customer_phone=customer_phone,
        total_amount=total_amount,
        down_payment=down_payment,
        number_of_payments=number_of_payments,
        payment_per_period=per_period,
        remaining_amount=remaining,
        notes=notes,
        created_at=now,
    )

    if remaining == 0:
        plan.status = "COMPLETED"
        plan.completed_at = now
        plan.next_due_date = None
    else:
        plan.status = "ACTIVE"
        plan.next_due_date = add_months(now.date(), _period_months())

    db.session.add(plan)
    db.session.flush()

    append_ledger_event(
        branch_id=branch_id,
        event_type="installment.created",
        event_category="installments",
        entity_type="installment_plan",
        entity_id=plan.id,
        actor_user_id=user_id,
        occurred_at=now,
        note=customer_name,
        payload=f"total={total_amount},down_payment={down_payment},payments={number_of_payments}",
    )

    return plan


def _lock_plan(plan_id: int) -> InstallmentPlan:
    plan = lock_row(InstallmentPlan, plan_id)
    if not plan:
        raise NotFoundError(f"Installment plan {plan_id} not found")
    return plan


def record_payment(
    plan_id: int,
    amount: Decimal,
    *,
    user_id: int,
    payment_method: str = "CASH",
    notes: str | None = None,
    today: date | None = None,
) -> tuple[InstallmentPlan, InstallmentPayment]:
    """
    Record a payment against a plan.

    Payments larger than the remaining balance are rejected, not capped.

    Returns:
        (plan, payment)
    """
    if amount <= 0:
        raise ValidationError("amount must be positive")

    plan = _lock_plan(plan_id)

    if plan.status not in OPEN_STATUSES:
        raise InstallmentError(f"Cannot record a payment on a {plan.status} plan")

    remaining = Decimal(plan.remaining_amount)
    if amount > remaining:
        raise InstallmentError(f"Payment {amount} exceeds remaining amount {remaining}")

    now = utcnow()
    today = today or now.date()
    new_remaining = remaining - amount

    payment = InstallmentPayment(
        plan=plan,
        user_id=user_id,
        amount=amount,
        payment_method=payment_method,
        notes=notes,
        remaining_after=new_remaining,
        paid_at=now,
    )
    db.session.add(payment)

    plan.remaining_amount = new_remaining
    if new_remaining == 0:
        plan.status = "COMPLETED"
        plan.completed_at = now
        plan.next_due_date = None
        current_app.logger.info("Installment plan %s completed", plan.id)
    else:
        base = plan.next_due_date or today
        plan.next_due_date = add_months(base, _period_months())
        if plan.status == "OVERDUE" and plan.next_due_date >= today:
            plan.status = "ACTIVE"

    db.session.flush()

    append_ledger_event(
        branch_id=plan.branch_id,
        event_type="installment.payment_recorded",
        event_category="installments",
        entity_type="installment_plan",
        entity_id=plan.id,
        actor_user_id=user_id,
        occurred_at=now,
        note=notes,
        payload=f"amount={amount},remaining={new_remaining},status={plan.status}",
    )

    return plan, payment


def cancel_plan(plan_id: int, reason: str | None = None, *, user_id: int | None = None) -> InstallmentPlan:
    plan = _lock_plan(plan_id)

    if plan.status not in OPEN_STATUSES:
        raise InstallmentError(f"Cannot cancel a {plan.status} plan")

    plan.status = "CANCELLED"
    plan.cancelled_at = utcnow()
    plan.cancellation_reason = reason
    db.session.flush()

    append_ledger_event(
        branch_id=plan.branch_id,
        event_type="installment.cancelled",
        event_category="installments",
        entity_type="installment_plan",
        entity_id=plan.id,
        actor_user_id=user_id,
        occurred_at=plan.cancelled_at,
        note=reason,
    )

    return plan


def mark_overdue(today: date | None = None) -> list[InstallmentPlan]:
    """
    Flag ACTIVE plans whose due date has passed.

    Plans due today are not overdue. Returns the plans that changed.
    """
    today = today or utctoday()
    plans = lock_for_update(
        db.session.query(InstallmentPlan).filter(
            InstallmentPlan.status == "ACTIVE",
            InstallmentPlan.next_due_date < today,
        )
    ).all()

    for plan in plans:
        plan.status = "OVERDUE"
        append_ledger_event(
            branch_id=plan.branch_id,
            event_type="installment.overdue",
            event_category="installments",
            entity_type="installment_plan",
            entity_id=plan.id,
            note=f"Due {plan.next_due_date.isoformat()}",
        )

    db.session.flush()

    if plans:
        current_app.logger.info("Marked %d installment plan(s) overdue", len(plans))

    return plans


def list_overdue(today: date | None = None, branch_id: int | None = None) -> list[InstallmentPlan]:
    """Open plans due before today, oldest due date first."""
    today = today or utctoday()
    query = db.session.query(InstallmentPlan).filter(
        InstallmentPlan.status.in_(OPEN_STATUSES),
        InstallmentPlan.next_due_date < today,
    )
    if branch_id is not None:
        query = query.filter(InstallmentPlan.branch_id == branch_id)
    return query.order_by(InstallmentPlan.next_due_date, InstallmentPlan.id).all()


def get_plan(plan_id: int) -> InstallmentPlan:
    plan = db.session.get(InstallmentPlan, plan_id)
    if not plan:
        raise NotFoundError(f"Installment plan {plan_id} not found")
    return plan


def list_plans(
    *,
    branch_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[InstallmentPlan], int]:
    query = db.session.query(InstallmentPlan)
    if branch_id is not None:
        query = query.filter(InstallmentPlan.branch_id == branch_id)
    if status:
        query = query.filter(InstallmentPlan.status == status)

    total = query.count()
    plans = query.order_by(InstallmentPlan.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return plans, total
