# Overview: Capability system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    BRANCH_PERMISSIONS,
    USER_PERMISSIONS,
    CATALOG_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    SALES_PERMISSIONS,
    SHIFT_PERMISSIONS,
    INSTALLMENT_PERMISSIONS,
    TRANSFER_PERMISSIONS,
    PURCHASING_PERMISSIONS,
    PREORDER_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
    get_role_permissions,
    role_has_permission,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "BRANCH_PERMISSIONS",
    "USER_PERMISSIONS",
    "CATALOG_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "SALES_PERMISSIONS",
    "SHIFT_PERMISSIONS",
    "INSTALLMENT_PERMISSIONS",
    "TRANSFER_PERMISSIONS",
    "PURCHASING_PERMISSIONS",
    "PREORDER_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "ROLES",
    "ROLE_ADMIN",
    "ROLE_MANAGER",
    "ROLE_CASHIER",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "get_role_permissions",
    "role_has_permission",
]
