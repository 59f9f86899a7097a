"""Tests for stock movements and manual adjustments."""

import pytest

from branchpos.services import inventory_service
from branchpos.services.inventory_service import InventoryError
from branchpos.validation import NotFoundError, ValidationError


class TestStockMovements:
    def test_decrement(self, stocked, variant):
        row = inventory_service.decrement_stock(stocked.id, variant.id, 4)
        assert row.quantity == 16

    def test_decrement_cannot_go_negative(self, stocked, variant):
        with pytest.raises(InventoryError):
            inventory_service.decrement_stock(stocked.id, variant.id, 21)

        assert inventory_service.get_quantity_on_hand(stocked.id, variant.id) == 20

    def test_decrement_without_row(self, db_session, second_branch, variant):
        with pytest.raises(InventoryError):
            inventory_service.decrement_stock(second_branch.id, variant.id, 1)

    def test_increment_creates_row(self, db_session, second_branch, variant, app):
        row = inventory_service.increment_stock(second_branch.id, variant.id, 3)

        assert row.quantity == 3
        assert row.min_stock == app.config["DEFAULT_MIN_STOCK"]


class TestAdjustStock:
    @pytest.mark.parametrize("operation, quantity, expected", [
        ("SET", 7, 7),
        ("ADD", 5, 25),
        ("SUBTRACT", 5, 15),
        ("SUBTRACT", 50, 0),
    ])
    def test_operations(self, stocked, variant, manager_user, operation, quantity, expected):
        row = inventory_service.adjust_stock(
            variant_id=variant.id,
            branch_id=stocked.id,
            quantity=quantity,
            operation=operation,
            user_id=manager_user.id,
        )
        assert row.quantity == expected

    def test_min_stock_and_low_stock_listing(self, stocked, variant, other_variant):
        inventory_service.adjust_stock(
            variant_id=variant.id, branch_id=stocked.id, quantity=3, operation="SET", min_stock=4,
        )

        rows, total = inventory_service.list_inventory(branch_id=stocked.id, low_stock=True)

        assert total == 1
        assert rows[0].variant_id == variant.id
        assert rows[0].is_low_stock

    def test_unknown_operation(self, stocked, variant):
        with pytest.raises(ValidationError):
            inventory_service.adjust_stock(
                variant_id=variant.id, branch_id=stocked.id, quantity=1, operation="MULTIPLY",
            )

    def test_unknown_branch(self, db_session, variant):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_stock(variant_id=variant.id, branch_id=999999, quantity=1)

    def test_unknown_variant(self, db_session, main_branch):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_stock(variant_id=999999, branch_id=main_branch.id, quantity=1)
