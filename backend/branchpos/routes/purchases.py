# backend/branchpos/routes/purchases.py
"""
Purchase order API routes.

Stock only moves on POST /:id/receive; creating an order records what was
ordered and at what cost.
"""
from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..decorators import require_auth, require_permission, resolve_branch_id
from ..responses import EXPECTED_ERRORS, error_response, fail, ok, page_args, pagination
from ..services import purchase_service
from ..services.concurrency import commit_session
from ..validation import (
    ValidationError,
    clean_str,
    parse_choice,
    parse_int,
    parse_money,
    parse_optional_int,
    require_fields,
    require_json,
)


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


def _parse_lines(raw) -> list[dict]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("lines must be a non-empty list")
    lines = []
    for i, line in enumerate(raw):
        if not isinstance(line, dict):
            raise ValidationError(f"lines[{i}] must be an object")
        lines.append({
            "variant_id": parse_int(line.get("variant_id"), f"lines[{i}].variant_id"),
            "quantity": parse_int(line.get("quantity"), f"lines[{i}].quantity", min_value=1),
            "unit_cost": parse_money(line.get("unit_cost"), f"lines[{i}].unit_cost"),
        })
    return lines


def _parse_receipts(raw) -> list[dict] | None:
    if raw is None:
        return None
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty list")
    receipts = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{i}] must be an object")
        receipts.append({
            "line_id": parse_int(item.get("line_id"), f"items[{i}].line_id"),
            "quantity": parse_int(item.get("quantity"), f"items[{i}].quantity", min_value=1),
        })
    return receipts


@purchases_bp.get("")
@require_auth
@require_permission("VIEW_PURCHASES")
def list_purchases_route():
    """Query params: status, supplier_id, branch_id, page, limit"""
    try:
        page, limit = page_args()
        status = request.args.get("status")
        orders, total = purchase_service.list_purchase_orders(
            status=parse_choice(status, "status", purchase_service.PURCHASE_STATUSES) if status else None,
            supplier_id=parse_optional_int(request.args.get("supplier_id"), "supplier_id"),
            branch_id=parse_optional_int(request.args.get("branch_id"), "branch_id"),
            page=page,
            limit=limit,
        )
        return ok([o.to_dict() for o in orders], pagination=pagination(page, limit, total))
    except EXPECTED_ERRORS as e:
        return error_response(e)


@purchases_bp.post("")
@require_auth
@require_permission("MANAGE_PURCHASES")
def create_purchase_route():
    """
    Create a purchase order.

    Request body:
    {
        "supplier_id": int,
        "branch_id": int (optional, defaults to caller's branch),
        "lines": [{"variant_id": int, "quantity": int, "unit_cost": number}],
        "notes": str (optional),
        "auto_receive": bool (optional, receive everything now)
    }

    Returns:
        201: Order created (PENDING, or RECEIVED with auto_receive)
        400: Invalid request, inactive supplier or branch
        403: Forbidden
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "supplier_id")

        branch_id = resolve_branch_id(data.get("branch_id"))
        if branch_id is None:
            raise ValidationError("branch_id is required")
        auto_receive = data.get("auto_receive", False)
        if not isinstance(auto_receive, bool):
            raise ValidationError("auto_receive must be a boolean")

        order = purchase_service.create_purchase_order(
            branch_id=branch_id,
            supplier_id=parse_int(data["supplier_id"], "supplier_id"),
            lines=_parse_lines(data.get("lines")),
            user_id=g.current_user.id,
            notes=clean_str(data.get("notes"), "notes", max_length=2000),
            auto_receive=auto_receive,
        )
        commit_session()
        return ok(order.to_dict(include_lines=True), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create purchase order")
        return fail("Internal server error", 500)


@purchases_bp.get("/<int:purchase_order_id>")
@require_auth
@require_permission("VIEW_PURCHASES")
def get_purchase_route(purchase_order_id: int):
    try:
        return ok(purchase_service.get_purchase_order(purchase_order_id).to_dict(include_lines=True))
    except EXPECTED_ERRORS as e:
        return error_response(e)


@purchases_bp.post("/<int:purchase_order_id>/receive")
@require_auth
@require_permission("MANAGE_PURCHASES")
def receive_purchase_route(purchase_order_id: int):
    """
    Receive goods.

    Request body (optional):
    {
        "items": [{"line_id": int, "quantity": int}]
    }
    Without items every outstanding quantity is received.
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

        order = purchase_service.receive_purchase_order(
            purchase_order_id,
            user_id=g.current_user.id,
            receipts=_parse_receipts(data.get("items")),
        )
        commit_session()
        return ok(order.to_dict(include_lines=True))

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to receive purchase order")
        return fail("Internal server error", 500)


@purchases_bp.post("/<int:purchase_order_id>/cancel")
@require_auth
@require_permission("MANAGE_PURCHASES")
def cancel_purchase_route(purchase_order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

        order = purchase_service.cancel_purchase_order(
            purchase_order_id,
            user_id=g.current_user.id,
            reason=clean_str(data.get("reason"), "reason", max_length=2000),
        )
        commit_session()
        return ok(order.to_dict(include_lines=True))

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel purchase order")
        return fail("Internal server error", 500)
