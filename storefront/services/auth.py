"""
Storefront — Credential store.
User lookup, creation, role changes, verification state and password checks.
"""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.config import get_settings
from storefront.core.exceptions import (
    DuplicateEmailError,
    InternalError,
    UserNotFoundError,
    ValidationError,
)
from storefront.core.security import (
    decrypt_field,
    encrypt_field,
    generate_verification_token,
    hash_password,
    verify_password,
)
from storefront.models.orders import Order
from storefront.models.users import User
from storefront.services.rbac import ROLES

logger = logging.getLogger("storefront.auth")
settings = get_settings()

# Compared against when the email is unknown, so both paths pay the bcrypt cost
_DUMMY_HASH = hash_password(secrets.token_hex(16))


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ─── Lookups ──────────────────────────────────────────────────────────────────


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def find_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.get(User, user_id)


def get_user_or_404(db: Session, user_id: str) -> User:
    user = find_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.created_at.desc()).all()


def find_by_verification_token(db: Session, token: str) -> Optional[User]:
    """Return the user holding a current (unexpired) verification token."""
    if not token:
        return None
    user = db.query(User).filter(User.verification_token == token).first()
    if user is None:
        return None
    if user.verification_expires_at is not None:
        if _as_utc(user.verification_expires_at) <= datetime.now(timezone.utc):
            return None
    return user


# ─── Mutations ────────────────────────────────────────────────────────────────


def create_user(
    db: Session,
    email: str,
    password: str,
    name: str,
    role: str = "user",
    email_verified: bool = False,
    verification_token: Optional[str] = None,
) -> User:
    """
    Insert a new user.
    The unique index on email is the duplicate check: IntegrityError → DuplicateEmailError.
    A verification token, when given, is stored in the same commit as the user.
    """
    if role not in ROLES:
        raise ValidationError(f"Role must be one of {', '.join(ROLES)}", fields=["role"])

    user = User(
        email=normalize_email(email),
        name=name.strip(),
        hashed_password=hash_password(password),
        role=role,
        email_verified=email_verified,
    )
    if verification_token:
        _stamp_verification(user, verification_token)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateEmailError(normalize_email(email)) from None
    db.refresh(user)
    logger.info("Created user %s (%s) with role %s", user.id, user.email, user.role)
    return user


def update_role(db: Session, user_id: str, role: str) -> User:
    if role not in ROLES:
        raise ValidationError("Valid role is required (user or admin)", fields=["role"])
    user = get_user_or_404(db, user_id)
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info("Changed role of user %s to %s", user_id, role)
    return user


def delete_user(db: Session, user_id: str) -> None:
    """Delete a user and, through the relationship cascade, their orders."""
    user = get_user_or_404(db, user_id)
    db.delete(user)
    db.commit()
    logger.info("Deleted user %s", user_id)


def _stamp_verification(user: User, token: str) -> None:
    user.verification_token = token
    user.verification_expires_at = datetime.now(timezone.utc) + timedelta(
        hours=settings.VERIFICATION_TOKEN_HOURS
    )


def set_verification_token(
    db: Session, user: User, token: Optional[str] = None
) -> str:
    """Issue a fresh verification link for an existing user."""
    token = token or generate_verification_token()
    _stamp_verification(user, token)
    db.commit()
    return token


def mark_verified(db: Session, user: User) -> User:
    """Flag the email as verified and burn the single-use token."""
    user.email_verified = True
    user.verification_token = None
    user.verification_expires_at = None
    db.commit()
    db.refresh(user)
    logger.info("Verified email for user %s", user.id)
    return user


# ─── Authentication ───────────────────────────────────────────────────────────


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = find_by_email(db, email)
    if not user:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def authenticate_fixed_admin(identifier: str, password: str) -> bool:
    """
    Check the configured administrator credential.
    Accepts the admin email or username. Disabled when ADMIN_PASSWORD is unset.
    """
    if not settings.fixed_admin_enabled:
        return False
    ident = normalize_email(identifier)
    if ident not in (normalize_email(settings.ADMIN_EMAIL), settings.ADMIN_USERNAME.lower()):
        return False
    return secrets.compare_digest(
        password.encode("utf-8"), settings.ADMIN_PASSWORD.encode("utf-8")
    )


# ─── Shipping address ─────────────────────────────────────────────────────────


def delete_user_data(db: Session, user_id: str) -> None:
    """Erase the user's orders and shipping address, keeping the account."""
    user = get_user_or_404(db, user_id)
    db.query(Order).filter(Order.user_id == user_id).delete(synchronize_session="fetch")
    user.shipping_address_encrypted = None
    db.commit()
    logger.info("Deleted orders and shipping address of user %s", user_id)


def get_shipping_address(db: Session, user_id: str) -> Optional[Dict[str, Any]]:
    user = get_user_or_404(db, user_id)
    if not user.shipping_address_encrypted:
        return None
    try:
        return json.loads(decrypt_field(user.shipping_address_encrypted))
    except ValueError:
        logger.exception("Could not decrypt shipping address for user %s", user_id)
        raise InternalError() from None


def update_shipping_address(
    db: Session, user_id: str, address: Dict[str, Any]
) -> Dict[str, Any]:
    user = get_user_or_404(db, user_id)
    try:
        user.shipping_address_encrypted = encrypt_field(json.dumps(address))
    except ValueError:
        logger.exception("Shipping address encryption is not configured")
        raise InternalError() from None
    db.commit()
    return address
