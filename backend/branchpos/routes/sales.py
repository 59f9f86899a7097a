# Overview: Flask API routes for sales; parses input and returns JSON responses.

from decimal import Decimal

from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..decorators import require_auth, require_permission, resolve_branch_id
from ..responses import EXPECTED_ERRORS, error_response, fail, ok, page_args, pagination
from ..services import sales_service
from ..services.concurrency import commit_session
from ..validation import (
    ValidationError,
    clean_str,
    parse_choice,
    parse_int,
    parse_money,
    parse_optional_int,
    require_json,
)


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _parse_items(raw) -> list[dict]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty list")

    items = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{i}] must be an object")
        unit_price = item.get("unit_price")
        discount = item.get("discount")
        items.append({
            "variant_id": parse_int(item.get("variant_id"), f"items[{i}].variant_id"),
            "quantity": parse_int(item.get("quantity"), f"items[{i}].quantity", min_value=1),
            "unit_price": parse_money(unit_price, f"items[{i}].unit_price") if unit_price is not None else None,
            "discount": parse_money(discount, f"items[{i}].discount") if discount is not None else Decimal("0.00"),
        })
    return items


def _optional_money(data: dict, field: str, default=Decimal("0.00")):
    value = data.get(field)
    if value in (None, ""):
        return default
    return parse_money(value, field)


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Create a completed sale.

    Request body:
    {
        "branch_id": int (optional, defaults to caller's branch),
        "items": [{"variant_id": int, "quantity": int,
                   "unit_price": number (optional), "discount": number (optional)}],
        "payment_method": "CASH" | "CARD" | "TRANSFER" | "INSTALLMENT",
        "discount": number (optional),
        "discount_type": "AMOUNT" | "PERCENTAGE" (optional),
        "tax": number (optional),
        "paid": number (optional, defaults to total),
        "notes": str (optional)
    }

    Returns:
        201: Sale created (with lines)
        400: Invalid input, insufficient stock, or underpayment
    """
    try:
        data = require_json(request.get_json(silent=True))

        branch_id = resolve_branch_id(data.get("branch_id"))
        if branch_id is None:
            raise ValidationError("branch_id is required")

        sale = sales_service.create_sale(
            user_id=g.current_user.id,
            branch_id=branch_id,
            items=_parse_items(data.get("items")),
            payment_method=parse_choice(
                data.get("payment_method", "CASH"), "payment_method", sales_service.PAYMENT_METHODS
            ),
            discount=_optional_money(data, "discount"),
            discount_type=parse_choice(
                data.get("discount_type", "AMOUNT"), "discount_type", sales_service.DISCOUNT_TYPES
            ),
            tax=_optional_money(data, "tax"),
            paid=_optional_money(data, "paid", default=None),
            notes=clean_str(data.get("notes"), "notes", max_length=2000),
        )
        commit_session()
        return ok(sale.to_dict(include_lines=True), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create sale")
        return fail("Internal server error", 500)


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """Query params: branch_id, shift_id, user_id, page, limit"""
    try:
        page, limit = page_args()
        sales, total = sales_service.list_sales(
            branch_id=parse_optional_int(request.args.get("branch_id"), "branch_id"),
            shift_id=parse_optional_int(request.args.get("shift_id"), "shift_id"),
            user_id=parse_optional_int(request.args.get("user_id"), "user_id"),
            page=page,
            limit=limit,
        )
        return ok([s.to_dict() for s in sales], pagination=pagination(page, limit, total))
    except EXPECTED_ERRORS as e:
        return error_response(e)


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    try:
        return ok(sales_service.get_sale(sale_id).to_dict(include_lines=True))
    except EXPECTED_ERRORS as e:
        return error_response(e)
