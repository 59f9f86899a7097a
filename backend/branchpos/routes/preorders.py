# Overview: Flask API routes for customer pre-orders.

from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..decorators import require_auth, require_permission, resolve_branch_id
from ..responses import EXPECTED_ERRORS, error_response, fail, ok
from ..services import preorder_service
from ..services.concurrency import commit_session
from ..validation import (
    ValidationError,
    clean_str,
    parse_choice,
    parse_int,
    parse_optional_int,
    require_fields,
    require_json,
)


preorders_bp = Blueprint("preorders", __name__, url_prefix="/api/preorders")


@preorders_bp.get("")
@require_auth
@require_permission("MANAGE_PREORDERS")
def list_preorders_route():
    """Query params: branch_id, status"""
    try:
        status = request.args.get("status")
        preorders = preorder_service.list_preorders(
            branch_id=parse_optional_int(request.args.get("branch_id"), "branch_id"),
            status=parse_choice(status, "status", preorder_service.PREORDER_STATUSES) if status else None,
        )
        return ok([p.to_dict() for p in preorders])
    except EXPECTED_ERRORS as e:
        return error_response(e)


@preorders_bp.post("")
@require_auth
@require_permission("MANAGE_PREORDERS")
def create_preorder_route():
    """
    Request body:
    {
        "branch_id": int (optional, defaults to caller's branch),
        "variant_id": int,
        "customer_name": str,
        "customer_phone": str (optional),
        "quantity": int (default 1),
        "notes": str (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "variant_id", "customer_name")

        branch_id = resolve_branch_id(data.get("branch_id"))
        if branch_id is None:
            raise ValidationError("branch_id is required")

        preorder = preorder_service.create_preorder(
            branch_id=branch_id,
            variant_id=parse_int(data["variant_id"], "variant_id"),
            customer_name=clean_str(data["customer_name"], "customer_name", max_length=128, required=True),
            customer_phone=clean_str(data.get("customer_phone"), "customer_phone", max_length=32),
            quantity=parse_int(data.get("quantity", 1), "quantity", min_value=1),
            notes=clean_str(data.get("notes"), "notes", max_length=2000),
            user_id=g.current_user.id,
        )
        commit_session()
        return ok(preorder.to_dict(), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create pre-order")
        return fail("Internal server error", 500)


@preorders_bp.get("/available")
@require_auth
@require_permission("MANAGE_PREORDERS")
def list_available_route():
    """Pending pre-orders that can be filled from current stock."""
    try:
        preorders = preorder_service.list_available(
            branch_id=parse_optional_int(request.args.get("branch_id"), "branch_id"),
        )
        return ok([p.to_dict() for p in preorders])
    except EXPECTED_ERRORS as e:
        return error_response(e)


def _transition(action, preorder_id: int, label: str):
    try:
        preorder = action(preorder_id, user_id=g.current_user.id)
        commit_session()
        return ok(preorder.to_dict())
    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to %s pre-order", label)
        return fail("Internal server error", 500)


@preorders_bp.post("/<int:preorder_id>/notify")
@require_auth
@require_permission("MANAGE_PREORDERS")
def notify_preorder_route(preorder_id: int):
    return _transition(preorder_service.mark_notified, preorder_id, "notify")


@preorders_bp.post("/<int:preorder_id>/complete")
@require_auth
@require_permission("MANAGE_PREORDERS")
def complete_preorder_route(preorder_id: int):
    return _transition(preorder_service.complete_preorder, preorder_id, "complete")


@preorders_bp.post("/<int:preorder_id>/cancel")
@require_auth
@require_permission("MANAGE_PREORDERS")
def cancel_preorder_route(preorder_id: int):
    return _transition(preorder_service.cancel_preorder, preorder_id, "cancel")
