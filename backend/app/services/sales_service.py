# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sales drawn from a selected lot.

FLOW:
1. Module gate: sales.add (can this user sell at all?)
2. Resolve the effective location from the selected lot
3. Transaction gate: sales.add at that location
4. Conditional decrement of the lot and product total_stock
5. Persist the Sale carrying the resolved location

The product's nominal location plays no part in any of these steps.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Sale
from ..permissions import Module, Action
from . import lot_service, permission_service
from .location_service import accessible_locations
from .permission_service import PermissionEvaluator


def create_sale(
    user,
    *,
    lot_id: int,
    quantity: int,
    unit_price_cents: int | None = None,
    customer_name: str | None = None,
    evaluator: PermissionEvaluator | None = None,
) -> Sale:
    """
    Sell `quantity` units from a lot.

    Raises:
        PermissionDenied: module or location-level gate failed
        NotFoundError: lot does not exist
        InsufficientStockError: lot holds fewer than `quantity` (nothing written)
        ValueError: bad quantity or no price available
    """
    if evaluator is None:
        evaluator = permission_service.get_evaluator()

    permission_service.require_permission(user, Module.SALES, Action.ADD, evaluator=evaluator)

    lot = lot_service.get_lot(lot_id)
    location_id = lot_service.resolve_transaction_location(lot)
    permission_service.require_permission(
        user, Module.SALES, Action.ADD, location_id=location_id, evaluator=evaluator
    )

    price = unit_price_cents if unit_price_cents is not None else lot.unit_price_cents
    if price is None:
        raise ValueError("unit_price_cents is required when the lot has no price")
    if price < 0:
        raise ValueError("unit_price_cents must not be negative")

    lot_service.decrement_lot(lot.id, quantity)

    sale = Sale(
        product_id=lot.product_id,
        lot_id=lot.id,
        location_id=location_id,
        quantity=quantity,
        unit_price_cents=price,
        total_cents=price * quantity,
        customer_name=customer_name,
        sold_by_user_id=user.id,
    )
    db.session.add(sale)
    db.session.flush()

    return sale


def list_sales(user, *, limit: int = 100) -> list[Sale]:
    """Recent sales at locations the user can access."""
    accessible = accessible_locations(user)
    query = db.session.query(Sale)
    if not accessible.is_all:
        if not len(accessible):
            return []
        query = query.filter(Sale.location_id.in_(accessible.location_ids))
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()
