# Overview: Service-layer operations for accounts: registration, password checks and profiles.

"""
Accounts

- Passwords hashed with bcrypt (cost factor 12).
- Minimum 8 characters with at least one letter and one digit.
- New wallets start at 0; opening balances are credited through the ledger.
- Users are never deleted; is_active=False locks them out.
- Session tokens are managed separately (see session_service.py).
"""

from __future__ import annotations

import re

import bcrypt
from sqlalchemy import or_

from ..errors import AuthError, InvalidStateError, ValidationError
from ..extensions import db
from ..models import User
from ..models.accounts import USER_TYPE_STANDARD, VALID_USER_TYPES
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import lock_for_update, run_in_transaction


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "phone", "profile_picture", "bio", "credentials"},
)


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")
    if not re.search(r"[A-Za-z]", password):
        raise ValidationError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("A valid email is required")
    return email


def register_user(
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    user_type: str = USER_TYPE_STANDARD,
    **profile,
) -> User:
    """
    Create an account with an empty wallet.

    Raises ValidationError for bad input, InvalidStateError when the email
    is already registered.
    """
    email = normalize_email(email)
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    if not first_name or not last_name:
        raise ValidationError("first_name and last_name are required")
    user_type = (user_type or USER_TYPE_STANDARD).upper()
    if user_type not in VALID_USER_TYPES:
        raise ValidationError(f"Invalid user type: {user_type}")
    extra = validate_payload(model=User, payload=profile, policy=PROFILE_POLICY, partial=True)
    password_hash = hash_password(password)

    def _op():
        if db.session.query(User).filter_by(email=email).first():
            raise InvalidStateError("Email is already registered")
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            user_type=user_type,
            balance_cents=0,
            is_active=True,
            **extra,
        )
        db.session.add(user)
        return user

    return run_in_transaction(_op)


def authenticate(email: str, password: str) -> User:
    """Return the user for valid credentials, else raise AuthError (same message either way)."""
    try:
        email = normalize_email(email)
    except ValidationError:
        raise AuthError("Invalid email or password")

    user = db.session.query(User).filter_by(email=email).first()
    if not user or not user.is_active or not verify_password(password or "", user.password_hash):
        raise AuthError("Invalid email or password")
    return user


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def update_profile(user_id: int, payload: dict) -> User | None:
    """Patch the editable profile fields. Returns None when the user does not exist."""
    patch = validate_payload(model=User, payload=payload, policy=PROFILE_POLICY, partial=True)

    def _op():
        user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
        if not user:
            return None
        for k, v in patch.items():
            setattr(user, k, v)
        return user

    return run_in_transaction(_op)


def search_users(text: str, *, limit: int = 20) -> list[User]:
    needle = (text or "").strip()
    if not needle:
        return []
    pattern = f"%{needle}%"
    return (
        db.session.query(User)
        .filter(User.is_active.is_(True))
        .filter(
            or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
            )
        )
        .order_by(User.id.asc())
        .limit(limit)
        .all()
    )
