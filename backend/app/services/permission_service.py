# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission evaluation and denial logging.

PermissionEvaluator.check() is the single authorization decision point. It
is a pure function of (user, module, action, location_id) and the location
reference data held by its classifier: no hidden state, safe to call
repeatedly and concurrently.

RULE ORDER (first match wins):
1. super_admin -> allow
2. admin + delete -> deny
3. role table lookup (see app/permissions/definitions.py)

LOCATION-SCOPED CHECKS:
When location_id is supplied (a transaction-level check) BOTH must hold:
- location_id is in the user's accessible set
- the role table entry holds for that location's classified type

DESIGN PRINCIPLES:
- Fail closed: unknown roles are denied
- Denial is a normal False; only malformed input raises ConfigurationError
- Denials at mutation points (require_permission) are written to security_events
"""

from __future__ import annotations

from ..errors import ConfigurationError, PermissionDenied
from ..extensions import db
from ..models import SecurityEvent, LOCATION_TYPE_WAREHOUSE, LOCATION_TYPE_SHOWROOM
from ..permissions import (
    Role,
    ALL_ROLES,
    ALL_MODULES,
    ALL_ACTIONS,
    Requirement,
    ADMIN_RULES,
    ADMIN_DENIED_ACTIONS,
    DEFAULT_ADMIN_RULE,
    SALES_MANAGER_RULES,
    SALES_MANAGER_DENIED_ACTIONS,
    DEFAULT_SALES_MANAGER_RULE,
    normalize_module,
    normalize_action,
    lookup_requirement,
)
from .location_service import LocationClassifier, UNKNOWN_POLICY_DENY, load_location_classifier
from app.time_utils import utcnow


_LOCATION_TYPE_FOR_REQUIREMENT = {
    Requirement.WAREHOUSE: LOCATION_TYPE_WAREHOUSE,
    Requirement.SHOWROOM: LOCATION_TYPE_SHOWROOM,
}


class PermissionEvaluator:
    """Role-table driven authorization over one snapshot of location data."""

    def __init__(self, classifier: LocationClassifier):
        self.classifier = classifier
        self._strategies = {
            Role.ADMIN: self._check_admin,
            Role.SALES_MANAGER: self._check_sales_manager,
            Role.USER: self._check_user,
        }

    def check(self, user, module: str, action: str, location_id: int | None = None) -> bool:
        module = normalize_module(module)
        action = normalize_action(action)

        if location_id is not None and not self.classifier.knows(location_id):
            if self.classifier.unknown_policy == UNKNOWN_POLICY_DENY:
                return False
            raise ConfigurationError(f"Location {location_id} cannot be classified")

        if user is None:
            return False

        if user.role == Role.SUPER_ADMIN:
            return True

        strategy = self._strategies.get(user.role)
        if strategy is None:
            return False

        accessible = self.classifier.accessible_locations(user)
        if location_id is not None and not accessible.contains(location_id):
            return False

        return strategy(user, module, action, accessible, location_id)

    def _satisfies(self, requirement: str, accessible, location_id: int | None) -> bool:
        if requirement == Requirement.ALLOW:
            return True
        location_type = _LOCATION_TYPE_FOR_REQUIREMENT.get(requirement)
        if location_type is None:
            return False
        if location_id is not None:
            return self.classifier.type_of(location_id) == location_type
        return self.classifier.any_of_type(accessible, location_type)

    def _check_admin(self, user, module, action, accessible, location_id) -> bool:
        if action in ADMIN_DENIED_ACTIONS:
            return False
        requirement = lookup_requirement(ADMIN_RULES, DEFAULT_ADMIN_RULE, module, action)
        return self._satisfies(requirement, accessible, location_id)

    def _check_sales_manager(self, user, module, action, accessible, location_id) -> bool:
        # Location outside the assignment was already rejected by the
        # accessible-set membership test in check().
        if action in SALES_MANAGER_DENIED_ACTIONS:
            return False
        requirement = lookup_requirement(SALES_MANAGER_RULES, DEFAULT_SALES_MANAGER_RULE, module, action)
        return self._satisfies(requirement, accessible, location_id)

    def _check_user(self, user, module, action, accessible, location_id) -> bool:
        return (module, action) in user.module_grants

    def describe_capabilities(self, user) -> dict[str, list[str]]:
        """Module -> allowed actions at module level, for enabling UI controls."""
        capabilities = {}
        for module in sorted(ALL_MODULES):
            actions = [action for action in sorted(ALL_ACTIONS) if self.check(user, module, action)]
            if actions:
                capabilities[module] = actions
        return capabilities


def get_evaluator() -> PermissionEvaluator:
    """Evaluator over the current active-location reference data."""
    return PermissionEvaluator(load_location_classifier())


def log_security_event(
    user_id: int | None,
    event_type: str,
    module: str | None = None,
    action: str | None = None,
    location_id: int | None = None,
    reason: str | None = None,
) -> SecurityEvent:
    """
    Append a security event to the audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - UNKNOWN_ROLE
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        module=module,
        action=action,
        location_id=location_id,
        reason=reason,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def require_permission(
    user,
    module: str,
    action: str,
    location_id: int | None = None,
    *,
    evaluator: PermissionEvaluator | None = None,
) -> None:
    """
    Require the user to pass check(), raising PermissionDenied if not.

    Denials are logged to security_events before raising. An unrecognized
    role is a defect, not a denial, and raises ConfigurationError.

    Usage:
        require_permission(user, "sales", "add", location_id=lot.location_id)
    """
    if evaluator is None:
        evaluator = get_evaluator()

    user_id = user.id if user is not None else None

    if user is not None and user.role not in ALL_ROLES:
        log_security_event(
            user_id=user_id,
            event_type="UNKNOWN_ROLE",
            module=module,
            action=action,
            location_id=location_id,
            reason=f"Unrecognized role: {user.role!r}",
        )
        raise ConfigurationError(f"Unrecognized role: {user.role!r}")

    if evaluator.check(user, module, action, location_id):
        return

    reason = f"Missing capability: {module}.{action}"
    if location_id is not None:
        reason += f" at location {location_id}"

    log_security_event(
        user_id=user_id,
        event_type="PERMISSION_DENIED",
        module=module,
        action=action,
        location_id=location_id,
        reason=reason,
    )
    raise PermissionDenied(module, action, location_id)
