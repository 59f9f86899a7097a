# Overview: Flask API routes for user accounts.

from flask import Blueprint, request, current_app

from ..extensions import db
from ..decorators import require_auth, require_permission
from ..responses import EXPECTED_ERRORS, error_response, fail, ok
from ..services import auth_service
from ..services.concurrency import commit_session
from ..validation import clean_str, parse_optional_int, require_fields, require_json


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_users_route():
    try:
        branch_id = parse_optional_int(request.args.get("branch_id"), "branch_id")
        users = auth_service.list_users(branch_id=branch_id)
        return ok([u.to_dict() for u in users])
    except EXPECTED_ERRORS as e:
        return error_response(e)


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """
    Create a user account.

    Request body:
    {
        "username": str,
        "name": str,
        "password": str,
        "role": "ADMIN" | "MANAGER" | "CASHIER" (default CASHIER),
        "branch_id": int (optional)
    }

    Returns:
        201: User created
        400: Invalid input or weak password
        409: Username taken
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "username", "name", "password")

        user = auth_service.create_user(
            username=clean_str(data["username"], "username", max_length=64, required=True),
            name=clean_str(data["name"], "name", max_length=128, required=True),
            password=data["password"],
            role=data.get("role") or "CASHIER",
            branch_id=parse_optional_int(data.get("branch_id"), "branch_id"),
        )
        commit_session()

        current_app.logger.info("User %s created with role %s", user.username, user.role)
        return ok(user.to_dict(), 201)

    except EXPECTED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create user")
        return fail("Internal server error", 500)
