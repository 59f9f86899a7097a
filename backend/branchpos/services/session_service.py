# Overview: Bearer session tokens and the per-request session context.

"""
Session Token Management Service

WHY: Opaque bearer tokens with a fixed lifetime, revocable on logout.

- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout from SESSION_TTL_HOURS
- The resolved SessionContext is stored on flask.g for one request only
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta
from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from branchpos.time_utils import utcnow


@dataclass
class SessionContext:
    """Request-scoped identity resolved from a bearer token."""
    user: User
    session: SessionToken
    branch_id: int | None  # Home branch; None for cross-branch users


def generate_token() -> str:
    """Return a 64-character hex token (32 bytes of entropy)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token). The database stores only the
    hash.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()
    ttl = timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 24))

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + ttl,
        user_agent=user_agent[:255] if user_agent else None,
        ip_address=ip_address,
    )

    db.session.add(session)
    db.session.flush()

    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if the token is unknown, expired or revoked, or if the user
    account is deactivated.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        revoked_at=None,
    ).first()

    if not session:
        return None

    if session.expires_at < utcnow():
        return None

    user = session.user
    if not user or not user.is_active:
        return None

    return SessionContext(user=user, session=session, branch_id=user.branch_id)


def revoke_session(token: str) -> bool:
    """Revoke a session token (logout). Returns False if it was not active."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        revoked_at=None,
    ).first()

    if not session:
        return False

    session.revoked_at = utcnow()
    db.session.flush()
    return True
