# backend/app/routes/inventory.py
"""
Lot lookups for the lot-selection UI.

The presentation layer calls /lots/<id>/location every time the selected
lot changes, keeping its "source location" field in sync with the lot.
"""
from flask import Blueprint, jsonify, g

from ..errors import NotFoundError
from ..services import lot_service
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/lots/<int:lot_id>/location")
@require_auth
@require_permission("inventory", "view")
def resolve_lot_location_route(lot_id: int):
    try:
        lot = lot_service.get_lot(lot_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    location_id = lot_service.resolve_transaction_location(lot)
    accessible = g.evaluator.classifier.accessible_locations(g.current_user)
    if not accessible.contains(location_id):
        return jsonify({"error": f"Lot {lot_id} not found"}), 404

    return jsonify({
        "lot_id": lot.id,
        "product_id": lot.product_id,
        "location_id": location_id,
    }), 200
