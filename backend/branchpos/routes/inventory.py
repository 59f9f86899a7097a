# Overview: Flask API routes for per-branch stock levels.

from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..decorators import require_auth, require_permission, resolve_branch_id
from ..responses import EXPECTED_ERRORS, error_response, fail, ok, page_args, pagination
from ..services import inventory_service
from ..services.concurrency import commit_session
from ..validation import (
    ValidationError,
    clean_str,
    parse_choice,
    parse_int,
    parse_optional_bool,
    parse_optional_int,
    require_fields,
    require_json,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_inventory_route():
    """
    List stock rows.

    Query params: branch_id (defaults to the caller's branch), low_stock,
    page, limit
    """
    try:
        page, limit = page_args(default_limit=50, max_limit=500)
        rows, total = inventory_service.list_inventory(
            branch_id=resolve_branch_id(request.args.get("branch_id")),
            low_stock=parse_optional_bool(request.args.get("low_stock"), "low_stock", default=False),
            page=page,
            limit=limit,
        )
        return ok([r.to_dict() for r in rows], pagination=pagination(page, limit, total))
    except EXPECTED_ERRORS as e:
        return error_response(e)


@inventory_bp.post("/adjust")
@require_auth
@require_permission("ADJUST_INVENTORY")
def adjust_inventory_route():
    """
    Manual stock correction.

    Request body:
    {
        "variant_id": int,
        "branch_id": int (optional, defaults to caller's branch),
        "quantity": int >= 0,
        "operation": "set" | "add" | "subtract" (default "set"),
        "min_stock": int (optional),
        "note": str (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "variant_id", "quantity")

        branch_id = resolve_branch_id(data.get("branch_id"))
        if branch_id is None:
            raise ValidationError("branch_id is required")

        row = inventory_service.adjust_stock(
            variant_id=parse_int(data["variant_id"], "variant_id"),
            branch_id=branch_id,
            quantity=parse_int(data["quantity"], "quantity", min_value=0),
            operation=parse_choice(
                data.get("operation", "SET"), "operation", inventory_service.ADJUST_OPERATIONS
            ),
            min_stock=parse_optional_int(data.get("min_stock"), "min_stock"),
            user_id=g.current_user.id,
            note=clean_str(data.get("note"), "note", max_length=255),
        )
        commit_session()
        return ok(row.to_dict())

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to adjust inventory")
        return fail("Internal server error", 500)
