# Overview: Flask API routes for branches.

from flask import Blueprint, request, current_app

from ..extensions import db
from ..decorators import require_auth, require_permission
from ..responses import EXPECTED_ERRORS, error_response, fail, ok
from ..services import branch_service
from ..services.concurrency import commit_session
from ..validation import ValidationError, clean_str, parse_optional_bool, require_fields, require_json


branches_bp = Blueprint("branches", __name__, url_prefix="/api/branches")


def _parse_bool(value, field: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValidationError(f"{field} must be a boolean")


@branches_bp.get("")
@require_auth
@require_permission("VIEW_BRANCHES")
def list_branches_route():
    try:
        include_inactive = parse_optional_bool(
            request.args.get("include_inactive"), "include_inactive", default=False,
        )
    except ValidationError as e:
        return error_response(e)
    branches = branch_service.list_branches(include_inactive=include_inactive)
    return ok([b.to_dict() for b in branches])


@branches_bp.post("")
@require_auth
@require_permission("MANAGE_BRANCHES")
def create_branch_route():
    """
    Create a branch.

    Request body:
    {
        "name": str,
        "code": str,
        "address": str (optional),
        "phone": str (optional),
        "is_warehouse": bool (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "name", "code")

        branch = branch_service.create_branch(
            name=clean_str(data["name"], "name", max_length=128, required=True),
            code=clean_str(data["code"], "code", max_length=32, required=True),
            address=clean_str(data.get("address"), "address", max_length=255),
            phone=clean_str(data.get("phone"), "phone", max_length=32),
            is_warehouse=_parse_bool(data.get("is_warehouse", False), "is_warehouse"),
        )
        commit_session()
        return ok(branch.to_dict(), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create branch")
        return fail("Internal server error", 500)


@branches_bp.get("/<int:branch_id>")
@require_auth
@require_permission("VIEW_BRANCHES")
def get_branch_route(branch_id: int):
    try:
        return ok(branch_service.get_branch(branch_id).to_dict())
    except EXPECTED_ERRORS as e:
        return error_response(e)


@branches_bp.patch("/<int:branch_id>")
@require_auth
@require_permission("MANAGE_BRANCHES")
def update_branch_route(branch_id: int):
    """
    Update branch fields. Only name, address, phone, is_warehouse and
    is_active may change; the code is permanent.
    """
    try:
        data = require_json(request.get_json(silent=True))
        changes = {}
        if "name" in data:
            changes["name"] = clean_str(data["name"], "name", max_length=128, required=True)
        for field, max_length in (("address", 255), ("phone", 32)):
            if field in data:
                changes[field] = clean_str(data[field], field, max_length=max_length)
        for field in ("is_warehouse", "is_active"):
            if field in data:
                changes[field] = _parse_bool(data[field], field)

        branch = branch_service.update_branch(branch_id, changes)
        commit_session()
        return ok(branch.to_dict())

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update branch")
        return fail("Internal server error", 500)
