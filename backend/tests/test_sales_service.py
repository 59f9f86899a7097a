"""Tests for sale creation, stock decrement and shift attachment."""

from decimal import Decimal

import pytest

from branchpos.models import Sale, Shift
from branchpos.services import sales_service, shift_service
from branchpos.services.inventory_service import InventoryError, get_quantity_on_hand
from branchpos.services.sales_service import SaleError
from branchpos.time_utils import utcnow
from branchpos.validation import ConflictError, ValidationError


def _items(variant, quantity=1, **extra):
    return [{"variant_id": variant.id, "quantity": quantity, **extra}]


def test_sale_decrements_stock_and_numbers_invoice(db_session, cashier_user, stocked, variant):
    sale = sales_service.create_sale(
        user_id=cashier_user.id, branch_id=stocked.id, items=_items(variant, 3),
    )

    assert sale.invoice_number == "INV-000001"
    assert sale.subtotal == Decimal("300.00")
    assert sale.total == Decimal("300.00")
    assert sale.status == "COMPLETED"
    assert len(sale.lines) == 1
    assert get_quantity_on_hand(stocked.id, variant.id) == 17

    second = sales_service.create_sale(
        user_id=cashier_user.id, branch_id=stocked.id, items=_items(variant),
    )
    assert second.invoice_number == "INV-000002"


def test_percentage_discount_and_tax(db_session, cashier_user, stocked, variant, other_variant):
    sale = sales_service.create_sale(
        user_id=cashier_user.id,
        branch_id=stocked.id,
        items=_items(variant, 2) + _items(other_variant, 1, unit_price=Decimal("50.00")),
        discount=Decimal("10"),
        discount_type="PERCENTAGE",
        tax=Decimal("5.00"),
    )

    assert sale.subtotal == Decimal("250.00")
    assert sale.discount_amount == Decimal("25.00")
    assert sale.total == Decimal("230.00")


def test_change_returned_for_cash_overpayment(db_session, cashier_user, stocked, variant):
    sale = sales_service.create_sale(
        user_id=cashier_user.id, branch_id=stocked.id, items=_items(variant), paid=Decimal("150.00"),
    )

    assert sale.change == Decimal("50.00")


def test_underpayment_rejected_unless_installment(db_session, cashier_user, stocked, variant):
    with pytest.raises(SaleError, match="less than total"):
        sales_service.create_sale(
            user_id=cashier_user.id, branch_id=stocked.id, items=_items(variant), paid=Decimal("20.00"),
        )

    sale = sales_service.create_sale(
        user_id=cashier_user.id,
        branch_id=stocked.id,
        items=_items(variant),
        payment_method="INSTALLMENT",
        paid=Decimal("20.00"),
    )
    assert sale.paid == Decimal("20.00")
    assert sale.change == Decimal("0.00")


def test_insufficient_stock(db_session, cashier_user, stocked, variant):
    with pytest.raises(InventoryError, match="Insufficient stock"):
        sales_service.create_sale(
            user_id=cashier_user.id, branch_id=stocked.id, items=_items(variant, 21),
        )


def test_warehouse_cannot_sell(db_session, cashier_user, warehouse, variant):
    with pytest.raises(SaleError, match="warehouse"):
        sales_service.create_sale(
            user_id=cashier_user.id, branch_id=warehouse.id, items=_items(variant),
        )


@pytest.mark.parametrize("kwargs", [
    {"payment_method": "BARTER"},
    {"discount_type": "COUPON"},
    {"discount": Decimal("101"), "discount_type": "PERCENTAGE"},
    {"discount": Decimal("500.00")},
])
def test_invalid_terms_rejected(db_session, cashier_user, stocked, variant, kwargs):
    with pytest.raises(ValidationError):
        sales_service.create_sale(
            user_id=cashier_user.id, branch_id=stocked.id, items=_items(variant), **kwargs,
        )


def test_sale_attaches_to_open_shift_at_same_branch(
    db_session, cashier_user, stocked, variant
):
    shift = shift_service.open_shift(cashier_user.id, stocked.id, Decimal("0.00"))

    sale = sales_service.create_sale(
        user_id=cashier_user.id, branch_id=stocked.id, items=_items(variant, 2),
    )

    assert sale.shift_id == shift.id
    assert sales_service.cash_sales_total(shift.id) == Decimal("200.00")

    sales, total = sales_service.list_sales(shift_id=shift.id)
    assert total == 1
    assert sales[0].id == sale.id


def test_card_sales_excluded_from_cash_total(db_session, cashier_user, stocked, variant):
    shift = shift_service.open_shift(cashier_user.id, stocked.id, Decimal("0.00"))

    sales_service.create_sale(
        user_id=cashier_user.id, branch_id=stocked.id, items=_items(variant), payment_method="CARD",
    )

    assert sales_service.cash_sales_total(shift.id) == Decimal("0.00")


def test_sale_bumps_open_shift_version(db_session, cashier_user, stocked, variant):
    shift = shift_service.open_shift(cashier_user.id, stocked.id, Decimal("0.00"))
    db_session.commit()
    version = shift.version_id

    sales_service.create_sale(
        user_id=cashier_user.id, branch_id=stocked.id, items=_items(variant),
    )
    db_session.commit()

    assert shift.version_id == version + 1

    closed = shift_service.close_shift(shift.id, Decimal("100.00"), current_user_id=cashier_user.id)
    assert closed.expected_cash == Decimal("100.00")
    assert closed.difference == Decimal("0.00")


def test_sale_rejected_when_shift_closes_mid_sale(
    db_session, monkeypatch, cashier_user, stocked, variant
):
    shift = shift_service.open_shift(cashier_user.id, stocked.id, Decimal("0.00"))
    db_session.commit()
    shift_id = shift.id
    numbering = sales_service.next_document_number

    def close_then_number(**kwargs):
        # Another request closes the shift after the sale has looked it up
        shifts = Shift.__table__
        db_session.execute(
            shifts.update()
            .where(shifts.c.id == shift_id)
            .values(closed_at=utcnow(), expected_cash=Decimal("0.00"), version_id=shifts.c.version_id + 1)
        )
        return numbering(**kwargs)

    monkeypatch.setattr(sales_service, "next_document_number", close_then_number)

    with pytest.raises(ConflictError, match="closed while the sale"):
        sales_service.create_sale(
            user_id=cashier_user.id, branch_id=stocked.id, items=_items(variant),
        )
    db_session.rollback()

    assert db_session.query(Sale).count() == 0
    assert get_quantity_on_hand(stocked.id, variant.id) == 20
