"""
Storefront — Identity resolution and the authorization gate.

Every protected endpoint depends on `get_current_user` or `require_role(...)`:

    @router.get("/admin/users")
    def list_users(current_user: CurrentUser = Depends(require_admin)):
        ...

The token is taken from `Authorization: Bearer <token>` when present,
otherwise from the session cookie (AUTH_COOKIE_NAME).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storefront.cache.token_denylist import TokenDenylist, get_redis_client
from storefront.config import get_settings
from storefront.core.exceptions import (
    AuthenticationError,
    InvalidTokenError,
    UserNotFoundError,
)
from storefront.core.security import decode_access_token
from storefront.database import get_db
from storefront.services import auth as credential_store
from storefront.services.rbac import RBACService

logger = logging.getLogger("storefront.auth")
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)
rbac = RBACService()


class CurrentUser:
    """Represents the authenticated identity for one request."""

    def __init__(
        self,
        user_id: str,
        email: str,
        name: str,
        role: str,
        raw_claims: Dict[str, Any],
        is_fixed_admin: bool = False,
    ) -> None:
        self.user_id = user_id
        self.email = email
        self.name = name
        self.role = role
        self.raw_claims = raw_claims
        self.is_fixed_admin = is_fixed_admin

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"CurrentUser(user_id={self.user_id!r}, role={self.role!r})"


# ─── Identity resolver ────────────────────────────────────────────────────────


def fixed_admin_identity(claims: Optional[Dict[str, Any]] = None) -> CurrentUser:
    return CurrentUser(
        user_id=settings.ADMIN_ID,
        email=settings.ADMIN_EMAIL,
        name=settings.ADMIN_NAME,
        role="admin",
        raw_claims=claims or {},
        is_fixed_admin=True,
    )


def resolve_identity(db: Session, claims: Dict[str, Any]) -> CurrentUser:
    """
    Map verified claims to a live identity.

    The fixed administrator is not a stored row and resolves without a lookup.
    For everyone else the role comes from the database, not from the token.
    Raises UserNotFoundError if the subject no longer exists.
    """
    subject = claims.get("sub")
    if subject == settings.ADMIN_ID:
        return fixed_admin_identity(claims)

    user = credential_store.find_by_id(db, subject)
    if user is None:
        raise UserNotFoundError(subject)

    return CurrentUser(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        raw_claims=claims,
    )


# ─── Gate ─────────────────────────────────────────────────────────────────────


def extract_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.AUTH_COOKIE_NAME) or None


def get_token_denylist() -> TokenDenylist:
    return TokenDenylist(get_redis_client())


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    denylist: TokenDenylist = Depends(get_token_denylist),
) -> CurrentUser:
    """
    FastAPI dependency: verifies the token and resolves the current identity.
    Any failure is a 401; the handler is never reached.
    """
    token = extract_token(request, credentials)
    if not token:
        raise AuthenticationError("Authentication required")

    claims = decode_access_token(token)
    if denylist.is_revoked(claims.get("jti")):
        raise InvalidTokenError()

    try:
        return resolve_identity(db, claims)
    except UserNotFoundError:
        logger.info("Rejected token for deleted user %s", claims.get("sub"))
        raise AuthenticationError("User not found") from None


def require_role(role: str) -> Callable[..., CurrentUser]:
    """
    Build a dependency that admits identities whose role satisfies `role`.
    401 when unauthenticated, 403 when authenticated but not allowed.
    """

    def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        rbac.check(current_user.role, role)
        return current_user

    dependency.__name__ = f"require_{role}"
    return dependency


require_user = require_role("user")
require_admin = require_role("admin")
