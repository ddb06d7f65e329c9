# Overview: Identifier normalization and table lookups.

from ..errors import ConfigurationError
from .categories import ALL_MODULES, ALL_ACTIONS, ACTION_ALIASES
from .definitions import Requirement


def normalize_module(module):
    """Lower-case a module name and reject anything unrecognized."""
    if not isinstance(module, str):
        raise ConfigurationError(f"Module must be a string, got {module!r}")
    code = module.strip().lower()
    if code not in ALL_MODULES:
        raise ConfigurationError(f"Unknown module: {module!r}")
    return code


def normalize_action(action):
    """Map aliases (create, update, ...) to canonical actions."""
    if not isinstance(action, str):
        raise ConfigurationError(f"Action must be a string, got {action!r}")
    code = action.strip().lower()
    code = ACTION_ALIASES.get(code, code)
    if code not in ALL_ACTIONS:
        raise ConfigurationError(f"Unknown action: {action!r}")
    return code


def lookup_requirement(rules, default_rule, module, action):
    """Requirement for (module, action) in a role table; DENY when absent."""
    module_rules = rules.get(module, default_rule)
    return module_rules.get(action, Requirement.DENY)
