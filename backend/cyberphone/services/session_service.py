# Overview: Service-layer operations for bearer sessions.

"""
Session Tokens

- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute lifetime of SESSION_TTL_HOURS
- Revocable on logout
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from cyberphone.time_utils import utcnow
from .concurrency import run_in_transaction


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is enough for high-entropy tokens (unlike passwords)."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(user_id: int) -> tuple[SessionToken, str]:
    """Returns (session_record, plaintext_token)."""
    ttl = timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 24))
    plaintext_token = generate_token()

    def _op():
        now = utcnow()
        session = SessionToken(
            user_id=user_id,
            token_hash=hash_token(plaintext_token),
            created_at=now,
            expires_at=now + ttl,
            is_revoked=False,
        )
        db.session.add(session)
        return session

    return run_in_transaction(_op), plaintext_token


def validate_session(token: str) -> User | None:
    """
    User behind a live token, or None when the token is unknown, revoked,
    expired or belongs to a deactivated account.
    """
    if not token:
        return None
    session = (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )
    if not session or session.expires_at < utcnow():
        return None

    user = session.user
    if not user or not user.is_active:
        return None
    return user


def revoke_session(token: str) -> bool:
    def _op():
        session = (
            db.session.query(SessionToken)
            .filter_by(token_hash=hash_token(token), is_revoked=False)
            .first()
        )
        if not session:
            return False
        session.is_revoked = True
        session.revoked_at = utcnow()
        return True

    return run_in_transaction(_op)


def revoke_all_sessions(user_id: int) -> int:
    def _op():
        return (
            db.session.query(SessionToken)
            .filter_by(user_id=user_id, is_revoked=False)
            .update({SessionToken.is_revoked: True, SessionToken.revoked_at: utcnow()}, synchronize_session="fetch")
        )

    return run_in_transaction(_op)
