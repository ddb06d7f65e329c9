# Overview: Flask API routes for the session user; parses input and returns JSON responses.

# backend/app/routes/auth.py
"""
Session user endpoints.

- GET  /api/auth/me       session user plus module-level capabilities
- GET  /api/auth/check    single permission decision (UI gate)
- POST /api/auth/logout   revoke the bearer token
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import ConfigurationError
from ..services import session_service
from ..validation import ValidationError, parse_int, parse_str
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.get("/me")
@require_auth
def me_route():
    try:
        capabilities = g.evaluator.describe_capabilities(g.current_user)
    except ConfigurationError:
        current_app.logger.error("Failed to describe capabilities", exc_info=True)
        return jsonify({"error": "Server configuration error"}), 500

    return jsonify({
        "user": g.current_user.to_dict(),
        "capabilities": capabilities,
    }), 200


@auth_bp.get("/check")
@require_auth
def check_route():
    """
    Evaluate one permission for the session user.

    Query: module, action, optional location_id.
    Denial is a normal 200 with allowed=false.
    """
    try:
        module = parse_str(request.args.get("module"), "module")
        action = parse_str(request.args.get("action"), "action")
        location_id = parse_int(request.args.get("location_id"), "location_id", required=False)

        allowed = g.evaluator.check(g.current_user, module, action, location_id)

        return jsonify({
            "module": module,
            "action": action,
            "location_id": location_id,
            "allowed": allowed,
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConfigurationError as e:
        current_app.logger.error("Permission check misconfigured: %s", e)
        return jsonify({"error": "Unrecognized module, action or location"}), 400


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers["Authorization"].split(" ", 1)[1]
    try:
        session_service.revoke_session(token)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500
