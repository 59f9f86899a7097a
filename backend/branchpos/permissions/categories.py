# Overview: Capability category constants for grouping related capabilities.


class PermissionCategory:
    """Capability categories for organization and UI display."""
    BRANCHES = "BRANCHES"
    USERS = "USERS"
    CATALOG = "CATALOG"
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    SHIFTS = "SHIFTS"
    INSTALLMENTS = "INSTALLMENTS"
    TRANSFERS = "TRANSFERS"
    PURCHASING = "PURCHASING"
    PREORDERS = "PREORDERS"
    SYSTEM = "SYSTEM"
