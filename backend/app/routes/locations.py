# Overview: Flask API routes for locations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g

from ..extensions import db
from ..models import Location
from ..decorators import require_auth


locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


@locations_bp.get("")
@require_auth
def list_locations_route():
    """
    Active locations, each flagged with whether the session user can act on it.
    """
    accessible = g.evaluator.classifier.accessible_locations(g.current_user)
    locations = (
        db.session.query(Location)
        .filter_by(status="active")
        .order_by(Location.type.asc(), Location.name.asc())
        .all()
    )
    return jsonify({
        "all_locations": accessible.is_all,
        "locations": [
            {**location.to_dict(), "accessible": accessible.contains(location.id)}
            for location in locations
        ],
    }), 200


@locations_bp.get("/accessible")
@require_auth
def accessible_locations_route():
    classifier = g.evaluator.classifier
    accessible = classifier.accessible_locations(g.current_user)
    if accessible.is_all:
        ids = classifier.warehouses() + classifier.showrooms()
    else:
        ids = list(accessible)
    return jsonify({
        "all_locations": accessible.is_all,
        "location_ids": sorted(ids),
    }), 200
