# backend/branchpos/routes/transfers.py
"""
Inter-branch transfer API routes.

Status changes go through a single PUT /:id/status endpoint; the capability
checked depends on the target status (see TRANSITION_PERMISSIONS).
"""
from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..decorators import require_auth, require_permission
from ..responses import EXPECTED_ERRORS, error_response, fail, ok
from ..services import permission_service, transfer_service
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


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


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
        })
    return lines


@transfers_bp.post("")
@require_auth
@require_permission("CREATE_TRANSFERS")
def create_transfer_route():
    """
    Create a new transfer document with its lines.

    Request body:
    {
        "from_branch_id": int,
        "to_branch_id": int,
        "lines": [{"variant_id": int, "quantity": int}],
        "notes": str (optional)
    }

    Returns:
        201: Transfer created (PENDING)
        400: Invalid request or insufficient stock at source
        403: Forbidden
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "from_branch_id", "to_branch_id")

        transfer = transfer_service.create_transfer(
            from_branch_id=parse_int(data["from_branch_id"], "from_branch_id"),
            to_branch_id=parse_int(data["to_branch_id"], "to_branch_id"),
            lines=_parse_lines(data.get("lines")),
            user_id=g.current_user.id,
            notes=clean_str(data.get("notes"), "notes", max_length=2000),
        )
        commit_session()
        return ok(transfer.to_dict(include_lines=True), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create transfer")
        return fail("Internal server error", 500)


@transfers_bp.get("")
@require_auth
@require_permission("VIEW_TRANSFERS")
def list_transfers_route():
    """Query params: status, from_branch_id, to_branch_id, limit"""
    try:
        status = request.args.get("status")
        limit = parse_int(request.args.get("limit", 50), "limit", min_value=1)
        transfers = transfer_service.list_transfers(
            status=parse_choice(status, "status", transfer_service.TRANSFER_STATUSES) if status else None,
            from_branch_id=parse_optional_int(request.args.get("from_branch_id"), "from_branch_id"),
            to_branch_id=parse_optional_int(request.args.get("to_branch_id"), "to_branch_id"),
            limit=min(limit, 500),
        )
        return ok([t.to_dict() for t in transfers])
    except EXPECTED_ERRORS as e:
        return error_response(e)


@transfers_bp.get("/<int:transfer_id>")
@require_auth
@require_permission("VIEW_TRANSFERS")
def get_transfer_route(transfer_id: int):
    try:
        return ok(transfer_service.get_transfer(transfer_id).to_dict(include_lines=True))
    except EXPECTED_ERRORS as e:
        return error_response(e)


@transfers_bp.put("/<int:transfer_id>/status")
@require_auth
def update_transfer_status_route(transfer_id: int):
    """
    Advance a transfer.

    Request body:
    {
        "status": "APPROVED" | "IN_TRANSIT" | "COMPLETED" | "CANCELLED",
        "reason": str (optional, recorded on cancel)
    }

    Returns:
        200: Transfer updated
        400: Invalid transition or insufficient stock at ship time
        403: Missing APPROVE_TRANSFERS / MOVE_TRANSFERS
        404: Transfer not found
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "status")
        next_status = parse_choice(data["status"], "status", transfer_service.TRANSFER_STATUSES)

        required = transfer_service.TRANSITION_PERMISSIONS.get(next_status)
        if required is None:
            raise transfer_service.TransferError(f"Cannot move a transfer to {next_status}")
        permission_service.require_permission(
            user_id=g.current_user.id,
            permission_code=required,
            resource=request.path,
            ip_address=request.remote_addr,
        )

        transfer = transfer_service.advance_status(
            transfer_id,
            next_status,
            user_id=g.current_user.id,
            reason=clean_str(data.get("reason"), "reason", max_length=2000),
        )
        commit_session()
        return ok(transfer.to_dict(include_lines=True))

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update transfer status")
        return fail("Internal server error", 500)
