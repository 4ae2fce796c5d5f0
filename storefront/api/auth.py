"""
Auth router — registration, login, logout, token and email verification.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.orm import Session

from storefront.cache.token_denylist import TokenDenylist
from storefront.config import get_settings
from storefront.core.auth import (
    CurrentUser,
    fixed_admin_identity,
    get_current_user,
    get_token_denylist,
)
from storefront.core.exceptions import AuthenticationError, ValidationError
from storefront.core.security import create_access_token, generate_verification_token
from storefront.database import get_db
from storefront.models.users import User
from storefront.services import auth as credential_store

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger("storefront.api.auth")
settings = get_settings()


# ── Request / Response schemas ────────────────────────────────────────────────


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    role: str
    is_admin: bool = Field(False, alias="isAdmin")
    email_verified: bool = Field(False, alias="emailVerified")
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8)


class LoginRequest(BaseModel):
    # Email, or the configured admin username
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


class RegisterResponse(AuthResponse):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    requires_verification: bool = Field(True, alias="requiresVerification")


class VerifyEmailResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    already_verified: bool = Field(False, alias="alreadyVerified")
    user: Optional[UserResponse] = None
    token: Optional[str] = None


class VerifyResponse(BaseModel):
    user: UserResponse


# ── Helpers ───────────────────────────────────────────────────────────────────


def user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        is_admin=user.role == "admin",
        email_verified=user.email_verified,
        created_at=user.created_at,
    )


def identity_response(db: Session, current_user: CurrentUser) -> UserResponse:
    if current_user.is_fixed_admin:
        return UserResponse(
            id=current_user.user_id,
            name=current_user.name,
            email=current_user.email,
            role="admin",
            is_admin=True,
            email_verified=True,
        )
    return user_response(credential_store.get_user_or_404(db, current_user.user_id))


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.TOKEN_LIFETIME_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def issue_token(user: User) -> str:
    return create_access_token(user.id, user.email, user.role)


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.post("/register", response_model=RegisterResponse)
def register(body: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    """
    Create an unverified account and return a session token.
    A single-use verification link is issued alongside.
    """
    verification_token = generate_verification_token()
    user = credential_store.create_user(
        db, body.email, body.password, body.name, verification_token=verification_token
    )
    # No mail transport is configured; the link is logged for the operator.
    logger.info(
        "Verification link for %s: %s/verify-email?token=%s",
        user.email,
        settings.PUBLIC_BASE_URL.rstrip("/"),
        verification_token,
    )

    token = issue_token(user)
    set_session_cookie(response, token)
    return RegisterResponse(
        message="Registration successful! Please check your email to verify your account.",
        user=user_response(user),
        token=token,
        requires_verification=True,
    )


@router.post("/login", response_model=AuthResponse)
def login(body: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """
    Authenticate with email (or admin username) + password.
    Returns a token valid for TOKEN_LIFETIME_DAYS and sets the session cookie.
    """
    if credential_store.authenticate_fixed_admin(body.email, body.password):
        admin = fixed_admin_identity()
        token = create_access_token(admin.user_id, admin.email, "admin")
        set_session_cookie(response, token)
        logger.info("Fixed administrator signed in")
        return AuthResponse(user=identity_response(db, admin), token=token)

    user = credential_store.authenticate(db, body.email, body.password)
    if not user:
        logger.warning("Failed login attempt for %s", body.email)
        raise AuthenticationError("Invalid credentials")

    token = issue_token(user)
    set_session_cookie(response, token)
    logger.info("User %s signed in", user.id)
    return AuthResponse(user=user_response(user), token=token)


@router.post("/logout")
def logout(
    response: Response,
    current_user: CurrentUser = Depends(get_current_user),
    denylist: TokenDenylist = Depends(get_token_denylist),
):
    """Revoke the presented token until it would have expired and clear the cookie."""
    claims = current_user.raw_claims
    if claims.get("jti") and claims.get("exp"):
        denylist.revoke(claims["jti"], int(claims["exp"]))
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    logger.info("User %s signed out", current_user.user_id)
    return {"success": True}


@router.get("/verify", response_model=VerifyResponse)
def verify(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Validate the presented token and return the identity it resolves to."""
    return VerifyResponse(user=identity_response(db, current_user))


@router.get("/verify-email", response_model=VerifyEmailResponse, response_model_exclude_none=True)
def verify_email(
    response: Response,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Consume a single-use verification token and sign the user in.

    Verifying burns the token, so a user who verified through this endpoint
    cannot reach the already-verified branch. It answers links re-issued with
    `set_verification_token` for accounts that were created verified, such as
    those made by scripts/create_admin.py.
    """
    if not token:
        raise ValidationError("Verification token is required", fields=["token"])

    user = credential_store.find_by_verification_token(db, token)
    if user is None:
        raise ValidationError("Invalid or expired verification token", fields=["token"])

    if user.email_verified:
        return VerifyEmailResponse(message="Email already verified", already_verified=True)

    user = credential_store.mark_verified(db, user)
    auth_token = issue_token(user)
    set_session_cookie(response, auth_token)
    return VerifyEmailResponse(
        message="Email verified successfully",
        user=user_response(user),
        token=auth_token,
    )


@router.get("/me", response_model=UserResponse)
def me(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Return the currently authenticated user's profile."""
    return identity_response(db, current_user)
