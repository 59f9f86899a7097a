"""Tests for shift open/close and cash reconciliation."""

from decimal import Decimal

import pytest

from branchpos.services import sales_service, shift_service
from branchpos.services.permission_service import PermissionDeniedError
from branchpos.services.shift_service import ShiftError
from branchpos.validation import NotFoundError, ValidationError


def _sell(cashier, branch, variant, quantity, payment_method="CASH"):
    return sales_service.create_sale(
        user_id=cashier.id,
        branch_id=branch.id,
        items=[{"variant_id": variant.id, "quantity": quantity}],
        payment_method=payment_method,
    )


class TestOpenShift:
    def test_open_shift(self, db_session, cashier_user, main_branch):
        shift = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("100.00"))

        assert shift.id is not None
        assert shift.is_open
        assert shift.status == "OPEN"
        assert shift.opening_balance == Decimal("100.00")
        assert shift.expected_cash is None
        assert shift_service.get_current_shift(cashier_user.id) is shift

    def test_second_open_shift_rejected(self, db_session, cashier_user, main_branch, second_branch):
        shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("100.00"))

        with pytest.raises(ShiftError, match="already has an open shift"):
            shift_service.open_shift(cashier_user.id, second_branch.id, Decimal("50.00"))

    def test_negative_opening_balance_rejected(self, db_session, cashier_user, main_branch):
        with pytest.raises(ValidationError):
            shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("-1.00"))

    def test_unknown_branch(self, db_session, cashier_user):
        with pytest.raises(NotFoundError):
            shift_service.open_shift(cashier_user.id, 999999, Decimal("0.00"))

    def test_can_open_again_after_close(self, db_session, cashier_user, main_branch):
        first = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("0.00"))
        shift_service.close_shift(first.id, Decimal("0.00"), current_user_id=cashier_user.id)

        second = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("20.00"))
        assert second.id != first.id
        assert shift_service.get_current_shift(cashier_user.id) is second


class TestCloseShift:
    def test_difference_is_actual_minus_expected(
        self, db_session, cashier_user, main_branch, variant, stocked
    ):
        shift = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("100.00"))

        _sell(cashier_user, main_branch, variant, 2)                          # 200.00 cash
        _sell(cashier_user, main_branch, variant, 1, payment_method="CARD")   # not in drawer
        shift_service.add_cash_transaction(shift.id, "DEPOSIT", Decimal("50.00"), user_id=cashier_user.id)
        shift_service.add_cash_transaction(
            shift.id, "WITHDRAWAL", Decimal("30.00"), "Supplier", user_id=cashier_user.id
        )

        closed = shift_service.close_shift(
            shift.id, Decimal("310.00"), "Short ten", current_user_id=cashier_user.id
        )

        assert closed.cash_sales_total == Decimal("200.00")
        assert closed.cash_in_total == Decimal("50.00")
        assert closed.cash_out_total == Decimal("30.00")
        assert closed.expected_cash == Decimal("320.00")
        assert closed.actual_cash == Decimal("310.00")
        assert closed.difference == Decimal("-10.00")
        assert closed.difference == closed.actual_cash - closed.expected_cash
        assert closed.closed_at is not None
        assert closed.closed_by_user_id == cashier_user.id
        assert closed.status == "CLOSED"

    def test_close_with_exact_cash(self, db_session, cashier_user, main_branch):
        shift = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("75.50"))

        closed = shift_service.close_shift(shift.id, Decimal("75.50"), current_user_id=cashier_user.id)

        assert closed.expected_cash == Decimal("75.50")
        assert closed.difference == Decimal("0.00")

    def test_close_twice_rejected(self, db_session, cashier_user, main_branch):
        shift = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("0.00"))
        shift_service.close_shift(shift.id, Decimal("0.00"), current_user_id=cashier_user.id)

        with pytest.raises(ShiftError, match="already closed"):
            shift_service.close_shift(shift.id, Decimal("10.00"), current_user_id=cashier_user.id)

        assert shift.actual_cash == Decimal("0.00")

    def test_non_owner_cannot_close(self, db_session, cashier_user, other_cashier, main_branch):
        shift = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("0.00"))

        with pytest.raises(PermissionDeniedError):
            shift_service.close_shift(shift.id, Decimal("0.00"), current_user_id=other_cashier.id)

        assert shift.is_open

    def test_manager_can_close_any(self, db_session, cashier_user, manager_user, main_branch):
        shift = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("10.00"))

        closed = shift_service.close_shift(
            shift.id, Decimal("10.00"), current_user_id=manager_user.id, allow_any=True,
        )

        assert not closed.is_open
        assert closed.closed_by_user_id == manager_user.id

    def test_unknown_shift(self, db_session):
        with pytest.raises(NotFoundError):
            shift_service.close_shift(999999, Decimal("0.00"))

    def test_sales_after_close_not_attached(
        self, db_session, cashier_user, main_branch, variant, stocked
    ):
        shift = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("0.00"))
        shift_service.close_shift(shift.id, Decimal("0.00"), current_user_id=cashier_user.id)

        sale = _sell(cashier_user, main_branch, variant, 1)

        assert sale.shift_id is None
        assert sales_service.cash_sales_total(shift.id) == Decimal("0.00")


class TestCashTransactions:
    def test_preview_tracks_open_shift(self, db_session, cashier_user, main_branch, variant, stocked):
        shift = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("20.00"))
        _sell(cashier_user, main_branch, variant, 1)
        shift_service.add_cash_transaction(shift.id, "WITHDRAWAL", Decimal("5.00"), user_id=cashier_user.id)

        totals = shift_service.compute_expected_cash(shift)

        assert totals["cash_sales_total"] == Decimal("100.00")
        assert totals["cash_out_total"] == Decimal("5.00")
        assert totals["expected_cash"] == Decimal("115.00")

    @pytest.mark.parametrize("amount", [Decimal("0.00"), Decimal("-5.00")])
    def test_amount_must_be_positive(self, db_session, cashier_user, main_branch, amount):
        shift = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("0.00"))

        with pytest.raises(ValidationError):
            shift_service.add_cash_transaction(shift.id, "DEPOSIT", amount, user_id=cashier_user.id)

    def test_unknown_type_rejected(self, db_session, cashier_user, main_branch):
        shift = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("0.00"))

        with pytest.raises(ValidationError):
            shift_service.add_cash_transaction(shift.id, "REFUND", Decimal("5.00"), user_id=cashier_user.id)

    def test_closed_shift_rejects_cash(self, db_session, cashier_user, main_branch):
        shift = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("0.00"))
        shift_service.close_shift(shift.id, Decimal("0.00"), current_user_id=cashier_user.id)

        with pytest.raises(ShiftError):
            shift_service.add_cash_transaction(shift.id, "DEPOSIT", Decimal("5.00"), user_id=cashier_user.id)

    def test_list_shifts_filters_open(self, db_session, cashier_user, other_cashier, main_branch):
        closed = shift_service.open_shift(cashier_user.id, main_branch.id, Decimal("0.00"))
        shift_service.close_shift(closed.id, Decimal("0.00"), current_user_id=cashier_user.id)
        still_open = shift_service.open_shift(other_cashier.id, main_branch.id, Decimal("0.00"))

        shifts, total = shift_service.list_shifts(branch_id=main_branch.id, is_open=True)

        assert total == 1
        assert [s.id for s in shifts] == [still_open.id]
