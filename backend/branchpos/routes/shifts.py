# Overview: Flask API routes for cashier shifts; parses input and returns JSON responses.

"""
Shift API routes

A cashier opens a shift with the cash in the drawer, sells during it, and
closes it with the counted cash. Closing someone else's shift needs
CLOSE_ANY_SHIFT.
"""

from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..decorators import require_auth, require_permission, resolve_branch_id
from ..responses import EXPECTED_ERRORS, error_response, fail, ok, page_args, pagination
from ..services import permission_service, shift_service
from ..services.concurrency import commit_session
from ..services.permission_service import PermissionDeniedError
from ..validation import (
    ValidationError,
    clean_str,
    parse_choice,
    parse_money,
    parse_optional_bool,
    parse_optional_int,
    require_fields,
    require_json,
    money_str,
)


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


def _can_act_for_others() -> bool:
    return permission_service.user_has_permission(g.current_user.id, "CLOSE_ANY_SHIFT")


def _shift_detail(shift) -> dict:
    data = shift.to_dict(include_transactions=True)
    if shift.is_open:
        totals = shift_service.compute_expected_cash(shift)
        data["preview"] = {key: money_str(value) for key, value in totals.items()}
    return data


@shifts_bp.get("")
@require_auth
@require_permission("VIEW_SHIFTS")
def list_shifts_route():
    """Query params: branch_id, user_id, is_open (true/false), page, limit"""
    try:
        page, limit = page_args()
        shifts, total = shift_service.list_shifts(
            branch_id=parse_optional_int(request.args.get("branch_id"), "branch_id"),
            user_id=parse_optional_int(request.args.get("user_id"), "user_id"),
            is_open=parse_optional_bool(request.args.get("is_open"), "is_open"),
            page=page,
            limit=limit,
        )
        return ok([s.to_dict() for s in shifts], pagination=pagination(page, limit, total))
    except EXPECTED_ERRORS as e:
        return error_response(e)


@shifts_bp.get("/current")
@require_auth
@require_permission("OPERATE_SHIFT")
def current_shift_route():
    """Caller's open shift, or null."""
    shift = shift_service.get_current_shift(g.current_user.id)
    return ok(_shift_detail(shift) if shift else None)


@shifts_bp.get("/<int:shift_id>")
@require_auth
@require_permission("OPERATE_SHIFT")
def get_shift_route(shift_id: int):
    """
    Shift with its cash transactions. Open shifts include a live preview
    of the expected cash. Other users' shifts need VIEW_SHIFTS.
    """
    try:
        shift = shift_service.get_shift(shift_id)
        if shift.user_id != g.current_user.id and not permission_service.user_has_permission(
            g.current_user.id, "VIEW_SHIFTS"
        ):
            raise PermissionDeniedError("Permission denied: VIEW_SHIFTS")
        return ok(_shift_detail(shift))
    except EXPECTED_ERRORS as e:
        return error_response(e)


@shifts_bp.post("/open")
@require_auth
@require_permission("OPERATE_SHIFT")
def open_shift_route():
    """
    Open a shift for the caller.

    Request body:
    {
        "branch_id": int (optional, defaults to caller's branch),
        "opening_balance": number
    }

    Returns:
        201: Shift opened
        400: Caller already has an open shift, or invalid input
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "opening_balance")

        branch_id = resolve_branch_id(data.get("branch_id"))
        if branch_id is None:
            raise ValidationError("branch_id is required")

        shift = shift_service.open_shift(
            user_id=g.current_user.id,
            branch_id=branch_id,
            opening_balance=parse_money(data["opening_balance"], "opening_balance"),
        )
        commit_session()
        return ok(shift.to_dict(), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to open shift")
        return fail("Internal server error", 500)


@shifts_bp.post("/<int:shift_id>/close")
@require_auth
@require_permission("OPERATE_SHIFT")
def close_shift_route(shift_id: int):
    """
    Close a shift with the counted cash.

    Request body:
    {
        "actual_cash": number,
        "notes": str (optional)
    }

    Returns:
        200: Shift closed (expected_cash, actual_cash, difference set)
        400: Shift already closed
        403: Not the owner and no CLOSE_ANY_SHIFT
        404: Shift not found
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "actual_cash")

        shift = shift_service.close_shift(
            shift_id,
            actual_cash=parse_money(data["actual_cash"], "actual_cash"),
            notes=clean_str(data.get("notes"), "notes", max_length=2000),
            current_user_id=g.current_user.id,
            allow_any=_can_act_for_others(),
        )
        commit_session()
        return ok(shift.to_dict(include_transactions=True))

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to close shift")
        return fail("Internal server error", 500)


@shifts_bp.post("/<int:shift_id>/transactions")
@require_auth
@require_permission("OPERATE_SHIFT")
def add_cash_transaction_route(shift_id: int):
    """
    Record a cash deposit or withdrawal on an open shift.

    Request body:
    {
        "type": "DEPOSIT" | "WITHDRAWAL",
        "amount": number > 0,
        "reason": str (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "type", "amount")

        shift = shift_service.get_shift(shift_id)
        if shift.user_id != g.current_user.id and not _can_act_for_others():
            raise PermissionDeniedError("Only the shift owner can record cash on this shift")

        tx = shift_service.add_cash_transaction(
            shift_id,
            parse_choice(data["type"], "type", shift_service.CASH_TRANSACTION_TYPES),
            parse_money(data["amount"], "amount"),
            clean_str(data.get("reason"), "reason", max_length=255),
            user_id=g.current_user.id,
        )
        commit_session()
        return ok(tx.to_dict(), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record cash transaction")
        return fail("Internal server error", 500)
