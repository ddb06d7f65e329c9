# Overview: Permission rule package.
# Re-exports identifiers and role tables used by permission_service.

from .categories import (
    Role,
    Module,
    Action,
    ALL_ROLES,
    ALL_MODULES,
    ALL_ACTIONS,
    ACTION_ALIASES,
    SINGLE_LOCATION_ROLES,
)
from .definitions import (
    Requirement,
    ADMIN_RULES,
    ADMIN_DENIED_ACTIONS,
    DEFAULT_ADMIN_RULE,
    SALES_MANAGER_RULES,
    SALES_MANAGER_DENIED_ACTIONS,
    DEFAULT_SALES_MANAGER_RULE,
)
from .helpers import (
    normalize_module,
    normalize_action,
    lookup_requirement,
)

__all__ = [
    "Role",
    "Module",
    "Action",
    "ALL_ROLES",
    "ALL_MODULES",
    "ALL_ACTIONS",
    "ACTION_ALIASES",
    "SINGLE_LOCATION_ROLES",
    "Requirement",
    "ADMIN_RULES",
    "ADMIN_DENIED_ACTIONS",
    "DEFAULT_ADMIN_RULE",
    "SALES_MANAGER_RULES",
    "SALES_MANAGER_DENIED_ACTIONS",
    "DEFAULT_SALES_MANAGER_RULE",
    "normalize_module",
    "normalize_action",
    "lookup_requirement",
]
