from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


class Transfer(db.Model):
    """
    Stock moved from one lot to a new lot at another location.

    from_location_id is resolved from the source lot. The destination lot is
    created by the same DB transaction, so product total_stock never changes.
    """
    __tablename__ = "transfers"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transfers_quantity_positive"),
        db.CheckConstraint("from_location_id <> to_location_id", name="ck_transfers_distinct_locations"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    source_lot_id = db.Column(db.Integer, db.ForeignKey("product_lots.id"), nullable=False, index=True)
    destination_lot_id = db.Column(db.Integer, db.ForeignKey("product_lots.id"), nullable=False, index=True)

    from_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)
    to_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    requested_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    source_lot = db.relationship("ProductLot", foreign_keys=[source_lot_id])
    destination_lot = db.relationship("ProductLot", foreign_keys=[destination_lot_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "source_lot_id": self.source_lot_id,
            "destination_lot_id": self.destination_lot_id,
            "from_location_id": self.from_location_id,
            "to_location_id": self.to_location_id,
            "quantity": self.quantity,
            "note": self.note,
            "requested_by_user_id": self.requested_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
