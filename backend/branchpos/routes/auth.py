# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Login issues an opaque bearer token (see session_service)
- Logout revokes the presented token
- /me returns the caller and their capabilities
"""

from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..decorators import bearer_token, require_auth
from ..responses import fail, ok
from ..services import auth_service, session_service, permission_service
from ..services.concurrency import commit_session
from ..validation import ValidationError, require_json
from branchpos.time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body:
    {
        "username": str,
        "password": str
    }

    Returns:
        200: {token, expires_at, user}
        400: Missing credentials
        401: Invalid credentials
    """
    try:
        data = require_json(request.get_json(silent=True))
        username = data.get("username")
        password = data.get("password")

        if not username or not password:
            return fail("username and password required", 400)

        user = auth_service.authenticate(username, password)
        if not user:
            db.session.rollback()
            current_app.logger.info("Failed login for username=%s ip=%s", username, request.remote_addr)
            return fail("Invalid credentials", 401)

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        commit_session()

        return ok({
            "token": token,
            "expires_at": to_utc_z(session.expires_at),
            "user": user.to_dict(),
        })

    except ValidationError as e:
        db.session.rollback()
        return fail(str(e), 400)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Login failed")
        return fail("Internal server error", 500)


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the bearer token used for this request."""
    try:
        session_service.revoke_session(bearer_token())
        commit_session()
        return ok(None, message="Logged out")
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Logout failed")
        return fail("Internal server error", 500)


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    data = user.to_dict()
    data["permissions"] = sorted(permission_service.get_user_permissions(user.id))
    return ok(data)
