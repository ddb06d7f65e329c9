from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z

class SecurityEvent(db.Model):
    """
    Append-only audit log of denied actions.

    WHY: A denial at a mutation point is a security signal and must never be
    silently dropped. Never update or delete.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # PERMISSION_DENIED, ...
    module = db.Column(db.String(32), nullable=True)
    action = db.Column(db.String(32), nullable=True)
    location_id = db.Column(db.Integer, nullable=True)
    reason = db.Column(db.Text, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User", backref=db.backref("security_events", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "module": self.module,
            "action": self.action,
            "location_id": self.location_id,
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
        }
