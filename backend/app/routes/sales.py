# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/app/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..errors import ConfigurationError, InsufficientStockError, NotFoundError, PermissionDenied
from ..services import sales_service
from ..services.concurrency import run_in_transaction
from ..validation import parse_int, parse_price_cents, parse_str
from ..decorators import require_auth, require_permission


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission("sales", "add")
def create_sale_route():
    """
    Sell from a selected lot.

    The sale's location is the lot's location; clients do not send one.

    Request body:
    {
        "lot_id": int,
        "quantity": int,
        "unit_price_cents": int (optional, defaults to the lot's price),
        "customer_name": str (optional)
    }

    Returns:
        201: Sale created
        400: Invalid request
        403: Not allowed to sell at the lot's location
        404: Lot not found
        409: Insufficient stock in lot
    """
    data = request.get_json() or {}

    try:
        lot_id = parse_int(data.get("lot_id"), "lot_id")
        quantity = parse_int(data.get("quantity"), "quantity", minimum=1)
        unit_price_cents = parse_price_cents(data.get("unit_price_cents"))
        customer_name = parse_str(data.get("customer_name"), "customer_name", required=False)

        sale = run_in_transaction(
            lambda: sales_service.create_sale(
                g.current_user,
                lot_id=lot_id,
                quantity=quantity,
                unit_price_cents=unit_price_cents,
                customer_name=customer_name,
                evaluator=g.evaluator,
            )
        )

        return jsonify({"sale": sale.to_dict()}), 201

    except PermissionDenied as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 403
    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except InsufficientStockError as e:
        db.session.rollback()
        return jsonify({"error": str(e), "available": e.available, "requested": e.requested}), 409
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except ConfigurationError:
        db.session.rollback()
        current_app.logger.error("Configuration error creating sale", exc_info=True)
        return jsonify({"error": "Server configuration error"}), 500
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_permission("sales", "view")
def list_sales_route():
    try:
        limit = parse_int(request.args.get("limit"), "limit", required=False, minimum=1) or 100
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    sales = sales_service.list_sales(g.current_user, limit=min(limit, 500))
    return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200
