# Overview: Flask API routes for products and their lots; parses input and returns JSON responses.

# backend/app/routes/products.py
"""
Product listing and stock entry.

Listing is lot-based: a product appears when any of its lots with stock
sits at a location the session user can access, regardless of the
product's nominal location.
"""

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConfigurationError, NotFoundError, PermissionDenied
from ..services import lot_service, products_service
from ..services.concurrency import run_in_transaction, LOT_INSERT_RETRY_ON
from ..validation import ValidationError, parse_int, parse_price_cents, parse_str
from ..decorators import require_auth, require_permission


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("products", "view")
def list_products_route():
    products = lot_service.list_visible_products(g.current_user)
    return jsonify({"products": [product.to_dict() for product in products]}), 200


@products_bp.post("")
@require_auth
@require_permission("products", "add")
def create_product_route():
    """
    Create a product with its first lot.

    Request body:
    {
        "product_code": str,
        "name": str,
        "location_id": int,
        "quantity": int,
        "unit_price_cents": int (optional)
    }
    """
    data = request.get_json() or {}

    try:
        product_code = parse_str(data.get("product_code"), "product_code", max_length=64)
        name = parse_str(data.get("name"), "name")
        location_id = parse_int(data.get("location_id"), "location_id")
        quantity = parse_int(data.get("quantity"), "quantity", minimum=1)
        unit_price_cents = parse_price_cents(data.get("unit_price_cents"))

        # No IntegrityError retry: a duplicate product_code stays a duplicate
        product, lot = run_in_transaction(
            lambda: products_service.create_product(
                g.current_user,
                product_code=product_code,
                name=name,
                location_id=location_id,
                quantity=quantity,
                unit_price_cents=unit_price_cents,
                evaluator=g.evaluator,
            )
        )

        return jsonify({"product": product.to_dict(), "lot": lot.to_dict()}), 201

    except PermissionDenied as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 403
    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "Product code already exists"}), 409
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except ConfigurationError:
        db.session.rollback()
        current_app.logger.error("Configuration error creating product", exc_info=True)
        return jsonify({"error": "Server configuration error"}), 500
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/stock")
@require_auth
@require_permission("inventory", "add")
def add_stock_route(product_id: int):
    """
    Add stock as a new lot (next lot number).

    Request body:
    {
        "location_id": int,
        "quantity": int,
        "unit_price_cents": int (optional)
    }
    """
    data = request.get_json() or {}

    try:
        location_id = parse_int(data.get("location_id"), "location_id")
        quantity = parse_int(data.get("quantity"), "quantity", minimum=1)
        unit_price_cents = parse_price_cents(data.get("unit_price_cents"))

        lot = run_in_transaction(
            lambda: products_service.add_stock(
                g.current_user,
                product_id,
                location_id=location_id,
                quantity=quantity,
                unit_price_cents=unit_price_cents,
                evaluator=g.evaluator,
            ),
            retry_on=LOT_INSERT_RETRY_ON,
        )

        return jsonify({"lot": lot.to_dict()}), 201

    except PermissionDenied as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 403
    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning("Lot number conflict persisted across retries", exc_info=True)
        return jsonify({"error": "Concurrent stock update, please retry"}), 409
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except ConfigurationError:
        db.session.rollback()
        current_app.logger.error("Configuration error adding stock", exc_info=True)
        return jsonify({"error": "Server configuration error"}), 500
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to add stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/lots")
@require_auth
@require_permission("inventory", "view")
def list_lots_route(product_id: int):
    """Lots selectable for a sale or transfer (stock > 0, accessible location)."""
    try:
        lots = lot_service.list_visible_lots(product_id, g.current_user)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"lots": [lot.to_dict() for lot in lots]}), 200


@products_bp.get("/<int:product_id>/lots/history")
@require_auth
@require_permission("inventory", "view")
def lot_history_route(product_id: int):
    """Audit view of lots, including depleted ones."""
    try:
        lots = lot_service.list_lot_history(product_id, g.current_user)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"lots": [lot.to_dict() for lot in lots]}), 200
