# Overview: Service-layer operations for products; encapsulates business logic and database work.

"""
Permission-checked stock entry.

New products and stock additions are location-scoped: the check runs
against the location the new lot will sit in.
"""

from __future__ import annotations

from ..models import Product, ProductLot
from ..permissions import Module, Action
from . import lot_service, permission_service
from .permission_service import PermissionEvaluator


def create_product(
    user,
    *,
    product_code: str,
    name: str,
    location_id: int,
    quantity: int,
    unit_price_cents: int | None = None,
    evaluator: PermissionEvaluator | None = None,
) -> tuple[Product, ProductLot]:
    """Create a product with lot #1; products.add must hold at location_id."""
    if evaluator is None:
        evaluator = permission_service.get_evaluator()

    permission_service.require_permission(
        user, Module.PRODUCTS, Action.ADD, location_id=location_id, evaluator=evaluator
    )

    return lot_service.create_product_with_stock(
        product_code=product_code,
        name=name,
        location_id=location_id,
        quantity=quantity,
        unit_price_cents=unit_price_cents,
    )


def add_stock(
    user,
    product_id: int,
    *,
    location_id: int,
    quantity: int,
    unit_price_cents: int | None = None,
    evaluator: PermissionEvaluator | None = None,
) -> ProductLot:
    """Add a new lot to an existing product; inventory.add must hold at location_id."""
    if evaluator is None:
        evaluator = permission_service.get_evaluator()

    permission_service.require_permission(
        user, Module.INVENTORY, Action.ADD, location_id=location_id, evaluator=evaluator
    )

    return lot_service.add_stock(
        product_id,
        location_id=location_id,
        quantity=quantity,
        unit_price_cents=unit_price_cents,
    )
