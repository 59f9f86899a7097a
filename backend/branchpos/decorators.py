# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, g

from .responses import fail
from .services import session_service, permission_service
from .services.permission_service import PermissionDeniedError
from .validation import parse_optional_int


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require authentication and establish the request context.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.branch_id: The user's home branch ID (None for cross-branch users)
    - g.session_context: The full SessionContext object

    Returns 401 if the Authorization header is missing, the token is
    invalid, expired or revoked, or the user account is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return fail("Authentication required", 401)

        context = session_service.validate_session(token)
        if not context:
            return fail("Invalid or expired token", 401)

        g.current_user = context.user
        g.branch_id = context.branch_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a specific capability. Must be applied after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return fail("Authentication required", 401)

            try:
                permission_service.require_permission(
                    user_id=g.current_user.id,
                    permission_code=permission_code,
                    resource=request.path,
                    ip_address=request.remote_addr,
                )
            except PermissionDeniedError as e:
                return fail(str(e), 403, required_permission=permission_code)

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def resolve_branch_id(requested, field: str = "branch_id") -> int | None:
    """
    Branch a request acts on: the explicit value if given, otherwise the
    caller's home branch.
    """
    branch_id = parse_optional_int(requested, field)
    if branch_id is not None:
        return branch_id
    return g.branch_id
