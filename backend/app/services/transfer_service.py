# backend/app/services/transfer_service.py
"""
Lot-to-location transfers.

WHY: Stock physically moves between warehouses and showrooms. The source
location is whatever location the selected lot sits in, never the
product's nominal location, and the permission check uses that resolved
location.

A transfer is applied immediately: the source lot is decremented and a new
lot (next lot number, same unit price) is created at the destination in
the same DB transaction. Product total_stock is unchanged.
"""
from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import Transfer
from ..permissions import Module, Action
from . import lot_service, permission_service
from .location_service import accessible_locations
from .permission_service import PermissionEvaluator


def create_transfer(
    user,
    *,
    lot_id: int,
    to_location_id: int,
    quantity: int,
    note: str | None = None,
    evaluator: PermissionEvaluator | None = None,
) -> Transfer:
    """
    Move `quantity` units from a lot to another location.

    Args:
        user: SessionUser requesting the transfer
        lot_id: Source lot (decides the source location)
        to_location_id: Destination location
        quantity: Units to move

    Raises:
        PermissionDenied: inventory.transfer denied, globally or at the source
        NotFoundError: lot or destination location unknown
        InsufficientStockError: source lot holds fewer units (nothing written)
        ValueError: destination equals source, or bad quantity
    """
    if evaluator is None:
        evaluator = permission_service.get_evaluator()

    permission_service.require_permission(user, Module.INVENTORY, Action.TRANSFER, evaluator=evaluator)

    lot = lot_service.get_lot(lot_id)
    from_location_id = lot_service.resolve_transaction_location(lot)
    permission_service.require_permission(
        user, Module.INVENTORY, Action.TRANSFER, location_id=from_location_id, evaluator=evaluator
    )

    if not evaluator.classifier.knows(to_location_id):
        raise NotFoundError(f"Location {to_location_id} not found")
    if to_location_id == from_location_id:
        raise ValueError("Cannot transfer to the lot's own location")

    source, destination = lot_service.move_between_lots(lot.id, to_location_id, quantity)

    transfer = Transfer(
        product_id=source.product_id,
        source_lot_id=source.id,
        destination_lot_id=destination.id,
        from_location_id=from_location_id,
        to_location_id=to_location_id,
        quantity=quantity,
        note=note,
        requested_by_user_id=user.id,
    )
    db.session.add(transfer)
    db.session.flush()

    return transfer


def list_transfers(user, *, limit: int = 100) -> list[Transfer]:
    """Recent transfers touching a location the user can access."""
    accessible = accessible_locations(user)
    query = db.session.query(Transfer)
    if not accessible.is_all:
        if not len(accessible):
            return []
        ids = accessible.location_ids
        query = query.filter(
            db.or_(Transfer.from_location_id.in_(ids), Transfer.to_location_id.in_(ids))
        )
    return query.order_by(Transfer.created_at.desc(), Transfer.id.desc()).limit(limit).all()
