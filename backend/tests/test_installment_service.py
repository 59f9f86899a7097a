"""Tests for installment plan creation, payments and overdue handling."""

from datetime import date
from decimal import Decimal

import pytest

from branchpos.services import installment_service
from branchpos.services.installment_service import InstallmentError
from branchpos.time_utils import add_months, utctoday
from branchpos.validation import NotFoundError, ValidationError


@pytest.fixture
def plan(db_session, main_branch, cashier_user):
    """1200.00 with 200.00 down, paid over 4 periods of 250.00."""
    plan = installment_service.create_plan(
        branch_id=main_branch.id,
        user_id=cashier_user.id,
        customer_name="Mona Adel",
        customer_phone="01000000000",
        total_amount=Decimal("1200.00"),
        down_payment=Decimal("200.00"),
        number_of_payments=4,
    )
    db_session.commit()
    return plan


def _pay(plan, amount, user, **kwargs):
    return installment_service.record_payment(plan.id, Decimal(amount), user_id=user.id, **kwargs)


class TestCreatePlan:
    def test_create_plan(self, plan):
        assert plan.status == "ACTIVE"
        assert plan.remaining_amount == Decimal("1000.00")
        assert plan.payment_per_period == Decimal("250.00")
        assert plan.next_due_date == add_months(utctoday(), 1)

    def test_per_period_rounds_to_cents(self, db_session, main_branch, cashier_user):
        plan = installment_service.create_plan(
            branch_id=main_branch.id,
            user_id=cashier_user.id,
            customer_name="Omar",
            total_amount=Decimal("100.00"),
            down_payment=Decimal("0.00"),
            number_of_payments=3,
        )
        assert plan.payment_per_period == Decimal("33.33")
        assert plan.remaining_amount == Decimal("100.00")

    def test_full_down_payment_completes_immediately(self, db_session, main_branch, cashier_user):
        plan = installment_service.create_plan(
            branch_id=main_branch.id,
            user_id=cashier_user.id,
            customer_name="Omar",
            total_amount=Decimal("500.00"),
            down_payment=Decimal("500.00"),
            number_of_payments=2,
        )
        assert plan.status == "COMPLETED"
        assert plan.remaining_amount == Decimal("0.00")
        assert plan.next_due_date is None

    @pytest.mark.parametrize("total, down, payments", [
        (Decimal("0.00"), Decimal("0.00"), 2),
        (Decimal("100.00"), Decimal("-1.00"), 2),
        (Decimal("100.00"), Decimal("150.00"), 2),
        (Decimal("100.00"), Decimal("10.00"), 0),
    ])
    def test_invalid_plan_rejected(self, db_session, main_branch, cashier_user, total, down, payments):
        with pytest.raises(ValidationError):
            installment_service.create_plan(
                branch_id=main_branch.id,
                user_id=cashier_user.id,
                customer_name="Omar",
                total_amount=total,
                down_payment=down,
                number_of_payments=payments,
            )

    def test_unknown_sale_rejected(self, db_session, main_branch, cashier_user):
        with pytest.raises(NotFoundError):
            installment_service.create_plan(
                branch_id=main_branch.id,
                user_id=cashier_user.id,
                customer_name="Omar",
                total_amount=Decimal("100.00"),
                down_payment=Decimal("0.00"),
                number_of_payments=2,
                sale_id=999999,
            )


class TestRecordPayment:
    def test_payment_reduces_remaining(self, plan, cashier_user):
        first_due = plan.next_due_date

        plan, payment = _pay(plan, "250.00", cashier_user)

        assert plan.remaining_amount == Decimal("750.00")
        assert plan.status == "ACTIVE"
        assert plan.next_due_date == add_months(first_due, 1)
        assert payment.amount == Decimal("250.00")
        assert payment.remaining_after == Decimal("750.00")
        assert payment.payment_method == "CASH"

    def test_paying_off_completes_plan(self, plan, cashier_user):
        for _ in range(4):
            plan, _payment = _pay(plan, "250.00", cashier_user)

        assert plan.remaining_amount == Decimal("0.00")
        assert plan.status == "COMPLETED"
        assert plan.completed_at is not None
        assert plan.next_due_date is None
        assert len(plan.payments) == 4

    def test_remaining_matches_payment_history(self, plan, cashier_user):
        _pay(plan, "100.00", cashier_user)
        _pay(plan, "333.33", cashier_user, payment_method="CARD")

        paid = sum(p.amount for p in plan.payments)
        assert plan.remaining_amount == plan.total_amount - plan.down_payment - paid
        assert plan.remaining_amount == Decimal("566.67")

    def test_overpayment_rejected(self, plan, cashier_user):
        with pytest.raises(InstallmentError, match="exceeds remaining"):
            _pay(plan, "1000.01", cashier_user)

        assert plan.remaining_amount == Decimal("1000.00")
        assert plan.payments == []

    @pytest.mark.parametrize("amount", ["0.00", "-10.00"])
    def test_non_positive_payment_rejected(self, plan, cashier_user, amount):
        with pytest.raises(ValidationError):
            _pay(plan, amount, cashier_user)

    def test_completed_plan_rejects_payment(self, plan, cashier_user):
        _pay(plan, "1000.00", cashier_user)

        with pytest.raises(InstallmentError):
            _pay(plan, "1.00", cashier_user)

    def test_cancelled_plan_rejects_payment(self, plan, cashier_user):
        installment_service.cancel_plan(plan.id, "Returned goods", user_id=cashier_user.id)

        with pytest.raises(InstallmentError):
            _pay(plan, "250.00", cashier_user)

    def test_unknown_plan(self, db_session, cashier_user):
        with pytest.raises(NotFoundError):
            installment_service.record_payment(999999, Decimal("1.00"), user_id=cashier_user.id)


class TestOverdue:
    def test_mark_overdue(self, plan, db_session):
        plan.next_due_date = date(2026, 3, 5)
        db_session.flush()

        changed = installment_service.mark_overdue(today=date(2026, 3, 15))

        assert [p.id for p in changed] == [plan.id]
        assert plan.status == "OVERDUE"

    def test_due_today_is_not_overdue(self, plan, db_session):
        plan.next_due_date = date(2026, 3, 15)
        db_session.flush()

        assert installment_service.mark_overdue(today=date(2026, 3, 15)) == []
        assert plan.status == "ACTIVE"

    def test_payment_brings_overdue_plan_current(self, plan, db_session, cashier_user):
        plan.next_due_date = date(2026, 3, 5)
        db_session.flush()
        installment_service.mark_overdue(today=date(2026, 3, 15))

        plan, _payment = _pay(plan, "250.00", cashier_user, today=date(2026, 3, 15))

        assert plan.next_due_date == date(2026, 4, 5)
        assert plan.status == "ACTIVE"

    def test_payment_leaves_plan_overdue_while_still_behind(self, plan, db_session, cashier_user):
        plan.next_due_date = date(2026, 1, 5)
        db_session.flush()
        installment_service.mark_overdue(today=date(2026, 3, 15))

        plan, _payment = _pay(plan, "250.00", cashier_user, today=date(2026, 3, 15))

        assert plan.next_due_date == date(2026, 2, 5)
        assert plan.status == "OVERDUE"

    def test_list_overdue_includes_open_plans_only(self, plan, db_session, main_branch, cashier_user):
        plan.next_due_date = date(2026, 3, 5)
        cancelled = installment_service.create_plan(
            branch_id=main_branch.id,
            user_id=cashier_user.id,
            customer_name="Omar",
            total_amount=Decimal("300.00"),
            down_payment=Decimal("0.00"),
            number_of_payments=3,
        )
        cancelled.next_due_date = date(2026, 3, 1)
        installment_service.cancel_plan(cancelled.id)

        overdue = installment_service.list_overdue(today=date(2026, 3, 15))

        assert [p.id for p in overdue] == [plan.id]


class TestCancelPlan:
    def test_cancel(self, plan, cashier_user):
        cancelled = installment_service.cancel_plan(plan.id, "Customer moved", user_id=cashier_user.id)

        assert cancelled.status == "CANCELLED"
        assert cancelled.cancellation_reason == "Customer moved"
        assert cancelled.cancelled_at is not None

    def test_cancel_completed_rejected(self, plan, cashier_user):
        _pay(plan, "1000.00", cashier_user)

        with pytest.raises(InstallmentError):
            installment_service.cancel_plan(plan.id)
