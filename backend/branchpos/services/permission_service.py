# Overview: Capability checks against the fixed role -> capability mapping.

"""
Permission Service

WHY: Every protected route declares the capability it needs. Capabilities
are a fixed enumerated set (branchpos.permissions) and roles map to static
subsets of it, so a check is a set lookup with no database round trip
beyond loading the user.

Denials are logged to the application logger with the user, the resource
and the missing capability.
"""

from flask import current_app

from ..extensions import db
from ..models import User
from ..permissions import get_role_permissions, validate_permission_code


class PermissionDeniedError(Exception):
    """Raised when user lacks required capability."""
    pass


def get_user_permissions(user_id: int) -> set[str]:
    """
    Get all capability codes for a user.

    Inactive or unknown users have no capabilities.
    """
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return set()
    return set(get_role_permissions(user.role))


def user_has_permission(user_id: int, permission_code: str) -> bool:
    """Check if user has a specific capability."""
    return permission_code in get_user_permissions(user_id)


def require_permission(
    user_id: int,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
) -> None:
    """
    Require user to have capability, raise PermissionDeniedError if not.

    Usage:
        require_permission(user.id, "CREATE_SALE", resource="/api/sales")
    """
    if not validate_permission_code(permission_code):
        # Misconfigured route; fail closed
        raise PermissionDeniedError(f"Unknown permission: {permission_code}")

    if not user_has_permission(user_id, permission_code):
        current_app.logger.warning(
            "Permission denied: user=%s permission=%s resource=%s ip=%s",
            user_id, permission_code, resource, ip_address,
        )
        raise PermissionDeniedError(f"Permission denied: {permission_code}")
