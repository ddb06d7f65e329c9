# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .errors import ConfigurationError, PermissionDenied
from .services import session_service, permission_service


def require_auth(f):
    """
    Require a bearer token and establish the session user.

    Sets the following Flask g attributes:
    - g.current_user: SessionUser snapshot for this request
    - g.evaluator: PermissionEvaluator over current location data

    Returns 401 if the header is missing or the token is invalid,
    expired or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.evaluator = permission_service.get_evaluator()

        return f(*args, **kwargs)

    return decorated_function


def require_permission(module: str, action: str):
    """
    Module-level gate (no location). Must follow @require_auth.

    Location-level checks happen in the services once the effective
    location is known.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                permission_service.require_permission(
                    g.current_user, module, action, evaluator=g.evaluator
                )
            except PermissionDenied as e:
                return jsonify(e.to_dict()), 403
            except ConfigurationError:
                current_app.logger.error(
                    "Permission configuration error for %s.%s", module, action, exc_info=True
                )
                return jsonify({"error": "Server configuration error"}), 500

            return f(*args, **kwargs)

        return decorated_function

    return decorator
