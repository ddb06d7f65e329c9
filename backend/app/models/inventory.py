from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    location_id is the NOMINAL location only (where the product was first
    stocked). It is denormalized display data and never decides visibility
    or a transaction's location; ProductLot.location_id does.

    INVARIANT: total_stock == SUM(product_lots.quantity) after every lot
    mutation. lot_service keeps both in the same DB transaction.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("total_stock >= 0", name="ck_products_total_stock_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_code = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)

    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    total_stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    location = db.relationship("Location")
    lots = db.relationship(
        "ProductLot",
        back_populates="product",
        order_by="ProductLot.lot_number",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.product_code!r} location_id={self.location_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_code": self.product_code,
            "name": self.name,
            "location_id": self.location_id,
            "total_stock": self.total_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductLot(db.Model):
    """
    A quantity of one product sitting at one location.

    lot_number increases by 1 per product starting at 1 (unique per product).
    Depleted lots (quantity 0) stay as history unless explicitly purged.
    """
    __tablename__ = "product_lots"
    __table_args__ = (
        db.UniqueConstraint("product_id", "lot_number", name="uq_product_lots_product_lot_number"),
        db.CheckConstraint("quantity >= 0", name="ck_product_lots_quantity_nonneg"),
        db.Index("ix_product_lots_product_location", "product_id", "location_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    lot_number = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    # Authoritative physical location for every sale/transfer from this lot
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

    unit_price_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", back_populates="lots")
    location = db.relationship("Location")

    def __repr__(self) -> str:
        return (
            f"<ProductLot id={self.id} product_id={self.product_id} "
            f"lot_number={self.lot_number} quantity={self.quantity} location_id={self.location_id}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "lot_number": self.lot_number,
            "quantity": self.quantity,
            "location_id": self.location_id,
            "unit_price_cents": self.unit_price_cents,
            "created_at": to_utc_z(self.created_at),
        }
