"""
Storefront — Security Layer
Password hashing, JWT issue/verification, AES-256-GCM encryption of personal data at rest.
"""

from __future__ import annotations

import base64
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from jose import JWTError, jwt

from storefront.config import get_settings
from storefront.core.exceptions import InvalidTokenError, ValidationError

settings = get_settings()

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72

# ─── Password hashing ─────────────────────────────────────────────────────────


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of the given plain-text password."""
    raw = password.encode("utf-8")
    if len(raw) > BCRYPT_MAX_BYTES:
        raise ValidationError(
            f"Password must be at most {BCRYPT_MAX_BYTES} bytes", fields=["password"]
        )
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(raw, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if the plain password matches the hash."""
    if not plain_password or not hashed_password:
        return False
    raw = plain_password.encode("utf-8")
    if len(raw) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(raw, hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


# ─── JWT ──────────────────────────────────────────────────────────────────────


def create_access_token(
    subject: str,
    email: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed session token.

    :param subject: The user id (or the fixed admin id).
    :param email: Email snapshot at issuance time.
    :param role: Role snapshot at issuance time, 'user' or 'admin'.
    :param expires_delta: Override the default lifetime from settings.
    """
    lifetime = expires_delta if expires_delta is not None else timedelta(
        days=settings.TOKEN_LIFETIME_DAYS
    )
    now = datetime.now(tz=timezone.utc)

    payload: Dict[str, Any] = {
        "sub": subject,
        "email": email,
        "role": role,
        "isAdmin": role == "admin",
        "iat": now,
        "exp": now + lifetime,
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a session token.
    Raises InvalidTokenError on any failure, with the same message for every cause.
    """
    if not token:
        raise InvalidTokenError()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise InvalidTokenError() from None

    if not payload.get("sub"):
        raise InvalidTokenError()
    return payload


# ─── Email verification tokens ────────────────────────────────────────────────


def generate_verification_token() -> str:
    """Single-use token mailed to the user; 32 random bytes, hex encoded."""
    return secrets.token_hex(32)


# ─── AES-256-GCM encryption for personal data at rest ────────────────────────


def _get_aes_key() -> bytes:
    """Decode the 32-byte AES key from base64 config."""
    if not settings.AES_KEY:
        raise ValueError("AES_KEY is not configured")
    try:
        key_bytes = base64.b64decode(settings.AES_KEY)
    except ValueError as exc:
        raise ValueError(f"AES_KEY is not valid base64: {exc}") from exc

    if len(key_bytes) != 32:
        raise ValueError(
            f"AES_KEY must decode to exactly 32 bytes (got {len(key_bytes)}). "
            "Generate with: base64.b64encode(secrets.token_bytes(32)).decode()"
        )
    return key_bytes


def encrypt_field(plaintext: str) -> str:
    """
    Encrypt a string using AES-256-GCM.
    Returns a base64-encoded string: nonce(12b) + ciphertext + tag.
    """
    aesgcm = AESGCM(_get_aes_key())
    nonce = os.urandom(12)  # 96-bit, fresh per call
    ciphertext = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(nonce + ciphertext).decode("utf-8")


def decrypt_field(encrypted_b64: str) -> str:
    """
    Decrypt a base64-encoded AES-256-GCM value.
    Raises ValueError on authentication tag failure.
    """
    aesgcm = AESGCM(_get_aes_key())
    raw = base64.b64decode(encrypted_b64)
    nonce = raw[:12]
    ciphertext = raw[12:]

    try:
        plaintext = aesgcm.decrypt(nonce, ciphertext, None)
    except InvalidTag as exc:
        raise ValueError("AES-GCM decryption failed: tag mismatch") from exc

    return plaintext.decode("utf-8")
