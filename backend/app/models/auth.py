from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z

class User(db.Model):
    """
    User account as supplied by the session provider.

    role is one of super_admin | admin | sales_manager | user.
    - admin: location scope comes from UserLocationAccess rows
    - sales_manager / user: single-location scope via assigned_location_id
    - super_admin: every location, never enumerated
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=True)

    role = db.Column(db.String(32), nullable=False)
    assigned_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    assigned_location = db.relationship("Location")
    location_access = db.relationship(
        "UserLocationAccess",
        foreign_keys="UserLocationAccess.user_id",
        back_populates="user",
        lazy=True,
    )
    module_grants = db.relationship("UserModuleGrant", back_populates="user", lazy=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "role": self.role,
            "assigned_location_id": self.assigned_location_id,
            "location_ids": sorted(access.location_id for access in self.location_access),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class UserLocationAccess(db.Model):
    """
    Explicit location grant for multi-location roles (admin).
    """
    __tablename__ = "user_location_access"
    __table_args__ = (
        db.UniqueConstraint("user_id", "location_id", name="uq_user_location_access"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    granted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    granted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", foreign_keys=[user_id], back_populates="location_access")
    location = db.relationship("Location")


class UserModuleGrant(db.Model):
    """
    Explicit (module, action) grant for the generic `user` role.
    """
    __tablename__ = "user_module_grants"
    __table_args__ = (
        db.UniqueConstraint("user_id", "module", "action", name="uq_user_module_grants"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    module = db.Column(db.String(32), nullable=False)
    action = db.Column(db.String(32), nullable=False)

    user = db.relationship("User", back_populates="module_grants")


class SessionToken(db.Model):
    """
    Bearer token identifying the session user.

    Tokens are stored hashed (SHA-256); the plaintext is only returned once.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User")

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None
