# backend/app/routes/transfers.py
"""
Lot transfer API routes.
"""
from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.errors import ConfigurationError, InsufficientStockError, NotFoundError, PermissionDenied
from app.decorators import require_auth, require_permission
from app.services import transfer_service
from app.services.concurrency import run_in_transaction, LOT_INSERT_RETRY_ON
from app.validation import parse_int, parse_str


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.route("", methods=["POST"])
@require_auth
@require_permission("inventory", "transfer")
def create_transfer():
    """
    Move stock from a selected lot to another location.

    Request body:
    {
        "lot_id": int,
        "to_location_id": int,
        "quantity": int,
        "note": str (optional)
    }

    Returns:
        201: Transfer created
        400: Invalid request
        403: Forbidden
        404: Lot or destination not found
        409: Insufficient stock in lot, or lot numbering conflict
    """
    data = request.get_json() or {}

    try:
        lot_id = parse_int(data.get("lot_id"), "lot_id")
        to_location_id = parse_int(data.get("to_location_id"), "to_location_id")
        quantity = parse_int(data.get("quantity"), "quantity", minimum=1)
        note = parse_str(data.get("note"), "note", required=False)

        transfer = run_in_transaction(
            lambda: transfer_service.create_transfer(
                g.current_user,
                lot_id=lot_id,
                to_location_id=to_location_id,
                quantity=quantity,
                note=note,
                evaluator=g.evaluator,
            ),
            retry_on=LOT_INSERT_RETRY_ON,
        )

        return jsonify(transfer.to_dict()), 201

    except PermissionDenied as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 403
    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except InsufficientStockError as e:
        db.session.rollback()
        return jsonify({"error": str(e), "available": e.available, "requested": e.requested}), 409
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning("Lot number conflict persisted across retries", exc_info=True)
        return jsonify({"error": "Concurrent stock update, please retry"}), 409
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except ConfigurationError:
        db.session.rollback()
        current_app.logger.error("Configuration error creating transfer", exc_info=True)
        return jsonify({"error": "Server configuration error"}), 500
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create transfer")
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("", methods=["GET"])
@require_auth
@require_permission("inventory", "view")
def list_transfers():
    transfers = transfer_service.list_transfers(g.current_user)
    return jsonify({"transfers": [transfer.to_dict() for transfer in transfers]}), 200
