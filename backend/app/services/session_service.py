# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session user and bearer-token handling.

The rest of the core never reads "the current user" from global state: a
SessionUser snapshot is built once per request from the token and passed
explicitly into every evaluator/resolver call.

Issuing tokens is limited to the CLI; password login and credential storage
belong to the external auth provider.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import timedelta

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import SessionToken, User
from app.time_utils import utcnow


@dataclass(frozen=True)
class SessionUser:
    """
    Immutable identity, role and location grants for one session.

    location_ids holds admin location grants; module_grants holds
    (module, action) pairs for the generic `user` role.
    """
    id: int | None
    role: str
    assigned_location_id: int | None = None
    location_ids: frozenset = field(default_factory=frozenset)
    module_grants: frozenset = field(default_factory=frozenset)
    username: str | None = None

    @classmethod
    def from_model(cls, user: User) -> "SessionUser":
        return cls(
            id=user.id,
            role=user.role,
            assigned_location_id=user.assigned_location_id,
            location_ids=frozenset(access.location_id for access in user.location_access),
            module_grants=frozenset((grant.module, grant.action) for grant in user.module_grants),
            username=user.username,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "assigned_location_id": self.assigned_location_id,
            "location_ids": sorted(self.location_ids),
        }


def generate_token() -> str:
    """64-character hex token (32 bytes from the OS CSPRNG)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is enough for high-entropy tokens (unlike passwords)."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(user_id: int, ttl: timedelta | None = None) -> tuple[SessionToken, str]:
    """
    Create a session token for an active user.

    Returns (session_record, plaintext_token); only the hash is stored.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    if not user.is_active:
        raise ValueError("User is inactive")

    if ttl is None:
        ttl = timedelta(hours=current_app.config.get("SESSION_TOKEN_TTL_HOURS", 24))

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + ttl,
    )
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> SessionUser | None:
    """
    Resolve a bearer token to a SessionUser.

    Returns None for unknown, expired or revoked tokens and for inactive users.
    """
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session or session.is_revoked:
        return None

    expires_at = session.expires_at
    if expires_at.tzinfo is not None:
        expires_at = expires_at.replace(tzinfo=None)
    if expires_at <= utcnow():
        return None

    user = session.user
    if not user or not user.is_active:
        return None

    return SessionUser.from_model(user)


def revoke_session(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session or session.is_revoked:
        return False

    session.revoked_at = utcnow()
    db.session.commit()
    return True


def load_session_user(user_id: int) -> SessionUser:
    """SessionUser for a stored user (CLI and tests)."""
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return SessionUser.from_model(user)
