# Overview: Static role -> capability mapping.

from .definitions import PERMISSION_DEFINITIONS


ROLE_ADMIN = "ADMIN"
ROLE_MANAGER = "MANAGER"
ROLE_CASHIER = "CASHIER"

ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)


_CASHIER = frozenset({
    "VIEW_BRANCHES",
    "VIEW_PRODUCTS",
    "VIEW_INVENTORY",
    "CREATE_SALE",
    "VIEW_SALES",
    "OPERATE_SHIFT",
    "VIEW_INSTALLMENTS",
    "MANAGE_INSTALLMENTS",
    "VIEW_TRANSFERS",
    "MANAGE_PREORDERS",
})

_MANAGER = _CASHIER | frozenset({
    "VIEW_USERS",
    "MANAGE_PRODUCTS",
    "ADJUST_INVENTORY",
    "VIEW_SHIFTS",
    "CLOSE_ANY_SHIFT",
    "CANCEL_INSTALLMENTS",
    "CREATE_TRANSFERS",
    "APPROVE_TRANSFERS",
    "MOVE_TRANSFERS",
    "VIEW_PURCHASES",
    "MANAGE_SUPPLIERS",
    "MANAGE_PURCHASES",
    "VIEW_AUDIT_LOG",
})

DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: frozenset(perm[0] for perm in PERMISSION_DEFINITIONS),
    ROLE_MANAGER: _MANAGER,
    ROLE_CASHIER: _CASHIER,
}
