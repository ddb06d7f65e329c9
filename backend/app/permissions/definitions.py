# Overview: Per-role permission tables.
# Each table maps module -> {action: requirement}. Anything not listed falls
# through to the role's DEFAULT_* entry.

from .categories import Module, Action


class Requirement:
    """What must hold for a table entry to grant access."""
    ALLOW = "allow"
    DENY = "deny"
    # Accessible set must include a warehouse (or, for a location-scoped
    # check, the location itself must be a warehouse)
    WAREHOUSE = "warehouse"
    SHOWROOM = "showroom"


_VIEW_ADD_EDIT = {
    Action.VIEW: Requirement.ALLOW,
    Action.ADD: Requirement.ALLOW,
    Action.EDIT: Requirement.ALLOW,
}

_VIEW_ONLY = {
    Action.VIEW: Requirement.ALLOW,
}

_VIEW_EXPORT = {
    Action.VIEW: Requirement.ALLOW,
    Action.EXPORT: Requirement.ALLOW,
}


# -- ADMIN --

ADMIN_RULES = {
    Module.PRODUCTS: {
        Action.VIEW: Requirement.ALLOW,
        Action.EDIT: Requirement.ALLOW,
        Action.ADD: Requirement.WAREHOUSE,
    },
    Module.INVENTORY: {
        Action.VIEW: Requirement.ALLOW,
        Action.ADD: Requirement.ALLOW,
        Action.EDIT: Requirement.ALLOW,
        Action.TRANSFER: Requirement.WAREHOUSE,
    },
    Module.SALES: {
        Action.VIEW: Requirement.ALLOW,
        Action.EDIT: Requirement.ALLOW,
        Action.ADD: Requirement.SHOWROOM,
    },
    Module.CUSTOMERS: _VIEW_ADD_EDIT,
    Module.SUPPLIERS: _VIEW_ADD_EDIT,
    Module.CATEGORIES: _VIEW_ADD_EDIT,
    Module.REPORTS: _VIEW_EXPORT,
    Module.DASHBOARD: _VIEW_ONLY,
    # Admins cannot create other admins or higher roles
    Module.USERS: _VIEW_ONLY,
}

ADMIN_DENIED_ACTIONS = frozenset({Action.DELETE})

DEFAULT_ADMIN_RULE = _VIEW_ONLY


# -- SALES MANAGER --

SALES_MANAGER_RULES = {
    Module.SALES: _VIEW_ADD_EDIT,
    Module.CUSTOMERS: _VIEW_ADD_EDIT,
    Module.PRODUCTS: _VIEW_ONLY,
    Module.INVENTORY: _VIEW_ONLY,
    Module.REPORTS: _VIEW_EXPORT,
    Module.DASHBOARD: _VIEW_ONLY,
    Module.SUPPLIERS: {},
    Module.CATEGORIES: {},
    Module.SAMPLES: {},
    Module.NOTIFICATIONS: {},
    Module.ACTIVITY_LOGS: {},
    Module.SETTINGS: {},
    Module.USERS: {},
}

SALES_MANAGER_DENIED_ACTIONS = frozenset({Action.DELETE, Action.TRANSFER})

DEFAULT_SALES_MANAGER_RULE = _VIEW_ONLY
