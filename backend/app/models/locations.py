from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


LOCATION_TYPE_WAREHOUSE = "warehouse"
LOCATION_TYPE_SHOWROOM = "showroom"
LOCATION_TYPES = (LOCATION_TYPE_WAREHOUSE, LOCATION_TYPE_SHOWROOM)


class Location(db.Model):
    """
    Physical place that holds stock: a warehouse or a showroom.

    Static reference data. Permission rules depend only on `type`;
    inactive locations are not loaded into the classifier.
    """
    __tablename__ = "locations"
    __table_args__ = (
        db.CheckConstraint("type IN ('warehouse', 'showroom')", name="ck_locations_type"),
        db.Index("ix_locations_type_status", "type", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    type = db.Column(db.String(16), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r} type={self.type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "address": self.address,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
