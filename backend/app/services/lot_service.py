# Overview: Service-layer operations for product lots; encapsulates business logic and database work.

"""
Inventory lot resolution and lot mutations.

Lot invariants (authoritative):
- A lot's location_id is the ONLY location that counts for visibility and
  for transactions. Product.location_id is nominal and never filtered on.
- lot_number per product starts at 1 and increases by 1 per new lot.
- quantity never goes negative. A decrement past zero is rejected whole
  (InsufficientStockError, nothing written).
- Product.total_stock == SUM(lot.quantity) for the product after every
  mutation. Sales lower it, stock additions raise it, transfers leave it.
- Depleted lots stay as history unless purged explicitly.

The resolver functions (visible_lots, lot_history, products_visible_to,
resolve_transaction_location, next_lot_number, recalculate_total_stock) are
pure: they take records and a session user and touch no database. Each
takes an optional `lots` iterable; without it, product.lots is used.

Mutations only flush. The caller owns the transaction and runs the whole
unit of work (mutation plus commit) through run_in_transaction, which
retries it from scratch on lock or lot-number conflicts. Decrements are
conditional UPDATEs ("quantity = quantity - k WHERE quantity >= k") so two
concurrent sales cannot both overdraw a lot even where SELECT ... FOR
UPDATE is ignored.
"""

from __future__ import annotations

from collections import defaultdict

from sqlalchemy import or_

from ..errors import InsufficientStockError, NotFoundError
from ..extensions import db
from ..models import Product, ProductLot, Sale, Transfer
from .concurrency import lock_for_update
from .location_service import accessible_locations, get_location


# -- Pure resolution --

def _lots_of(product, lots=None) -> list:
    source = product.lots if lots is None else lots
    return [lot for lot in source if lot.product_id == product.id]


def visible_lots(product, user, lots=None) -> list:
    """
    Lots of `product` the user may pick for a sale or transfer.

    quantity > 0 and lot.location_id in the user's accessible set, ordered
    by lot_number. Empty list when nothing qualifies.
    """
    accessible = accessible_locations(user)
    selected = [
        lot for lot in _lots_of(product, lots)
        if lot.quantity > 0 and accessible.contains(lot.location_id)
    ]
    return sorted(selected, key=lambda lot: lot.lot_number)


def lot_history(product, user, lots=None) -> list:
    """Audit view: like visible_lots but keeps depleted lots."""
    accessible = accessible_locations(user)
    selected = [lot for lot in _lots_of(product, lots) if accessible.contains(lot.location_id)]
    return sorted(selected, key=lambda lot: lot.lot_number)


def products_visible_to(all_products, all_lots, user) -> list:
    """
    Products with at least one visible lot, in input order.

    A product whose nominal location is inaccessible is still listed when
    any of its lots sits in an accessible location.
    """
    lots_by_product = defaultdict(list)
    for lot in all_lots:
        lots_by_product[lot.product_id].append(lot)

    return [
        product for product in all_products
        if visible_lots(product, user, lots_by_product.get(product.id, []))
    ]


def resolve_transaction_location(selected_lot) -> int:
    """The effective location of a sale/transfer: the selected lot's own location."""
    if selected_lot is None:
        raise NotFoundError("No lot selected")
    return selected_lot.location_id


def next_lot_number(product, lots=None) -> int:
    return max((lot.lot_number for lot in _lots_of(product, lots)), default=0) + 1


def recalculate_total_stock(product, lots=None) -> int:
    return sum(lot.quantity for lot in _lots_of(product, lots))


# -- Data access --

def get_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def get_lot(lot_id: int, *, lock: bool = False) -> ProductLot:
    query = db.session.query(ProductLot).filter_by(id=lot_id)
    if lock:
        query = lock_for_update(query)
    lot = query.first()
    if lot is None:
        raise NotFoundError(f"Lot {lot_id} not found")
    return lot


def _load_lots(product_id: int) -> list[ProductLot]:
    return (
        db.session.query(ProductLot)
        .filter_by(product_id=product_id)
        .order_by(ProductLot.lot_number.asc())
        .all()
    )


def list_visible_products(user) -> list[Product]:
    """Products listing under location-scoped permissions."""
    accessible = accessible_locations(user)

    lots_query = db.session.query(ProductLot).filter(ProductLot.quantity > 0)
    if not accessible.is_all:
        if not len(accessible):
            return []
        lots_query = lots_query.filter(ProductLot.location_id.in_(accessible.location_ids))
    lots = lots_query.all()

    product_ids = {lot.product_id for lot in lots}
    if not product_ids:
        return []
    products = (
        db.session.query(Product)
        .filter(Product.id.in_(product_ids))
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    return products_visible_to(products, lots, user)


def list_visible_lots(product_id: int, user) -> list[ProductLot]:
    product = get_product(product_id)
    return visible_lots(product, user, _load_lots(product_id))


def list_lot_history(product_id: int, user) -> list[ProductLot]:
    product = get_product(product_id)
    return lot_history(product, user, _load_lots(product_id))


# -- Mutations --

def _validate_quantity(quantity) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValueError("Quantity must be a positive integer")


def _insert_lot(product: Product, location_id: int, quantity: int, unit_price_cents: int | None) -> ProductLot:
    """
    Assign the next lot number and insert the lot as one unit.

    Caller holds the product row lock; the unique (product_id, lot_number)
    constraint catches the race where the lock is not honored.
    """
    lot = ProductLot(
        product_id=product.id,
        lot_number=next_lot_number(product, _load_lots(product.id)),
        quantity=quantity,
        location_id=location_id,
        unit_price_cents=unit_price_cents,
    )
    db.session.add(lot)
    db.session.flush()
    return lot


def _take_from_lot(lot: ProductLot, quantity: int) -> None:
    """Conditional decrement; raises without writing if stock is short."""
    updated = (
        db.session.query(ProductLot)
        .filter(ProductLot.id == lot.id, ProductLot.quantity >= quantity)
        .update({ProductLot.quantity: ProductLot.quantity - quantity}, synchronize_session=False)
    )
    if updated == 0:
        db.session.refresh(lot)
        raise InsufficientStockError(lot.id, quantity, lot.quantity)
    db.session.expire(lot)


def _adjust_total_stock(product: Product, delta: int) -> None:
    db.session.query(Product).filter(Product.id == product.id).update(
        {Product.total_stock: Product.total_stock + delta},
        synchronize_session=False,
    )
    db.session.expire(product)


def create_product_with_stock(
    *,
    product_code: str,
    name: str,
    location_id: int,
    quantity: int,
    unit_price_cents: int | None = None,
) -> tuple[Product, ProductLot]:
    """
    Create a product and its lot #1 at location_id.

    The product's nominal location is the location of its first lot.
    """
    _validate_quantity(quantity)
    if not product_code or not name:
        raise ValueError("product_code and name are required")
    get_location(location_id)

    existing = db.session.query(Product).filter_by(product_code=product_code).first()
    if existing:
        raise ValueError(f"Product code {product_code!r} already exists")

    product = Product(
        product_code=product_code,
        name=name,
        location_id=location_id,
        total_stock=quantity,
    )
    db.session.add(product)
    db.session.flush()

    lot = _insert_lot(product, location_id, quantity, unit_price_cents)
    return product, lot


def add_stock(
    product_id: int,
    *,
    location_id: int,
    quantity: int,
    unit_price_cents: int | None = None,
) -> ProductLot:
    """Add stock to an existing product as a new lot with the next lot number."""
    _validate_quantity(quantity)
    get_location(location_id)

    product = get_product(product_id, lock=True)
    lot = _insert_lot(product, location_id, quantity, unit_price_cents)
    _adjust_total_stock(product, quantity)
    return lot


def decrement_lot(lot_id: int, quantity: int, *, adjust_total: bool = True) -> ProductLot:
    """
    Remove `quantity` units from a lot.

    Raises InsufficientStockError (nothing written) if the lot holds fewer.
    adjust_total=False is for transfers, where the units land in another lot
    of the same product.
    """
    _validate_quantity(quantity)

    lot = get_lot(lot_id, lock=True)
    product = get_product(lot.product_id, lock=True)
    _take_from_lot(lot, quantity)
    if adjust_total:
        _adjust_total_stock(product, -quantity)
    return lot


def move_between_lots(lot_id: int, to_location_id: int, quantity: int) -> tuple[ProductLot, ProductLot]:
    """
    Move units out of a lot into a new lot at another location.

    Both writes happen in one DB transaction; total_stock does not change.
    """
    _validate_quantity(quantity)

    source = get_lot(lot_id, lock=True)
    product = get_product(source.product_id, lock=True)
    _take_from_lot(source, quantity)
    destination = _insert_lot(product, to_location_id, quantity, source.unit_price_cents)
    return source, destination


def purge_depleted_lots(product_id: int) -> int:
    """
    Delete depleted lots that no sale or transfer references.

    The highest-numbered lot is always kept so lot numbers are never reused.
    Returns the number of lots deleted.
    """
    lots = _load_lots(product_id)
    if not lots:
        return 0
    newest = lots[-1]

    purged = 0
    for lot in lots:
        if lot.quantity != 0 or lot.id == newest.id:
            continue
        referenced = (
            db.session.query(Sale.id).filter(Sale.lot_id == lot.id).first()
            or db.session.query(Transfer.id).filter(
                or_(Transfer.source_lot_id == lot.id, Transfer.destination_lot_id == lot.id)
            ).first()
        )
        if referenced:
            continue
        db.session.delete(lot)
        purged += 1

    db.session.flush()
    return purged


def repair_total_stock(product_id: int | None = None) -> list[dict]:
    """
    Rewrite Product.total_stock from its lots.

    Returns {"product_id", "before", "after"} for every product that drifted.
    """
    query = db.session.query(Product)
    if product_id is not None:
        query = query.filter_by(id=product_id)
    products = query.order_by(Product.id.asc()).all()
    if product_id is not None and not products:
        raise NotFoundError(f"Product {product_id} not found")

    drifted = []
    for product in products:
        expected = recalculate_total_stock(product, _load_lots(product.id))
        if product.total_stock != expected:
            drifted.append({"product_id": product.id, "before": product.total_stock, "after": expected})
            product.total_stock = expected

    db.session.flush()
    return drifted
