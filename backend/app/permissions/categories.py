# Overview: Identifier constants for roles, modules and actions.


class Role:
    """Roles supplied by the session provider."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    SALES_MANAGER = "sales_manager"
    USER = "user"


class Module:
    """Application modules a permission check can target."""
    PRODUCTS = "products"
    INVENTORY = "inventory"
    SALES = "sales"
    CUSTOMERS = "customers"
    SUPPLIERS = "suppliers"
    CATEGORIES = "categories"
    SAMPLES = "samples"
    REPORTS = "reports"
    DASHBOARD = "dashboard"
    USERS = "users"
    NOTIFICATIONS = "notifications"
    ACTIVITY_LOGS = "activitylogs"
    SETTINGS = "settings"


class Action:
    """Canonical action names."""
    VIEW = "view"
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"
    TRANSFER = "transfer"
    EXPORT = "export"
    APPROVE = "approve"


ALL_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.SALES_MANAGER, Role.USER})

# Roles whose location scope is a single assigned location
SINGLE_LOCATION_ROLES = frozenset({Role.SALES_MANAGER, Role.USER})

ALL_MODULES = frozenset(
    value for name, value in vars(Module).items() if not name.startswith("_")
)

ALL_ACTIONS = frozenset(
    value for name, value in vars(Action).items() if not name.startswith("_")
)

# Synonyms accepted from callers, mapped to the canonical action
ACTION_ALIASES = {
    "read": Action.VIEW,
    "create": Action.ADD,
    "update": Action.EDIT,
    "remove": Action.DELETE,
}
