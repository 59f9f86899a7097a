# Overview: The fixed capability set, organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- BRANCHES & USERS --

BRANCH_PERMISSIONS = [
    (
        "VIEW_BRANCHES",
        "View Branches",
        "List branches and their details",
        PermissionCategory.BRANCHES,
    ),
    (
        "MANAGE_BRANCHES",
        "Manage Branches",
        "Create, edit and deactivate branches",
        PermissionCategory.BRANCHES,
    ),
]

USER_PERMISSIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "List user accounts",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create user accounts and assign roles",
        PermissionCategory.USERS,
    ),
]


# -- CATALOG & INVENTORY --

CATALOG_PERMISSIONS = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "Browse products, variants and barcode lookups",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create products and variants",
        PermissionCategory.CATALOG,
    ),
]

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View stock levels per branch",
        PermissionCategory.INVENTORY,
    ),
    (
        "ADJUST_INVENTORY",
        "Adjust Inventory",
        "Set, add or subtract stock and change minimum stock",
        PermissionCategory.INVENTORY,
    ),
]


# -- SALES & SHIFTS --

SALES_PERMISSIONS = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Ring up sales at the POS",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "List and inspect sales",
        PermissionCategory.SALES,
    ),
]

SHIFT_PERMISSIONS = [
    (
        "OPERATE_SHIFT",
        "Operate Shift",
        "Open and close own shift, record cash deposits and withdrawals",
        PermissionCategory.SHIFTS,
    ),
    (
        "VIEW_SHIFTS",
        "View Shifts",
        "List shifts of all users",
        PermissionCategory.SHIFTS,
    ),
    (
        "CLOSE_ANY_SHIFT",
        "Close Any Shift",
        "Close a shift owned by another user",
        PermissionCategory.SHIFTS,
    ),
]


# -- INSTALLMENTS --

INSTALLMENT_PERMISSIONS = [
    (
        "VIEW_INSTALLMENTS",
        "View Installments",
        "List installment plans and their payments",
        PermissionCategory.INSTALLMENTS,
    ),
    (
        "MANAGE_INSTALLMENTS",
        "Manage Installments",
        "Create plans and record payments",
        PermissionCategory.INSTALLMENTS,
    ),
    (
        "CANCEL_INSTALLMENTS",
        "Cancel Installments",
        "Cancel plans and run overdue marking",
        PermissionCategory.INSTALLMENTS,
    ),
]


# -- TRANSFERS --

TRANSFER_PERMISSIONS = [
    (
        "VIEW_TRANSFERS",
        "View Transfers",
        "List and inspect transfers",
        PermissionCategory.TRANSFERS,
    ),
    (
        "CREATE_TRANSFERS",
        "Create Transfers",
        "Create transfer requests",
        PermissionCategory.TRANSFERS,
    ),
    (
        "APPROVE_TRANSFERS",
        "Approve Transfers",
        "Approve or cancel pending transfers",
        PermissionCategory.TRANSFERS,
    ),
    (
        "MOVE_TRANSFERS",
        "Move Transfers",
        "Ship approved transfers and complete them on receipt",
        PermissionCategory.TRANSFERS,
    ),
]


# -- PURCHASING --

PURCHASING_PERMISSIONS = [
    (
        "VIEW_PURCHASES",
        "View Purchases",
        "List suppliers and purchase orders",
        PermissionCategory.PURCHASING,
    ),
    (
        "MANAGE_SUPPLIERS",
        "Manage Suppliers",
        "Create, edit and deactivate suppliers",
        PermissionCategory.PURCHASING,
    ),
    (
        "MANAGE_PURCHASES",
        "Manage Purchases",
        "Create, receive and cancel purchase orders",
        PermissionCategory.PURCHASING,
    ),
]


# -- PRE-ORDERS --

PREORDER_PERMISSIONS = [
    (
        "MANAGE_PREORDERS",
        "Manage Pre-orders",
        "Create, notify, complete and cancel pre-orders",
        PermissionCategory.PREORDERS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "VIEW_AUDIT_LOG",
        "View Audit Log",
        "Read the ledger of domain events",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    BRANCH_PERMISSIONS
    + USER_PERMISSIONS
    + CATALOG_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + SHIFT_PERMISSIONS
    + INSTALLMENT_PERMISSIONS
    + TRANSFER_PERMISSIONS
    + PURCHASING_PERMISSIONS
    + PREORDER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
