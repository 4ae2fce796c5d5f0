"""
Storefront — Custom Exceptions.
Each exception carries: message, error_code, http_status_code, optional detail dict.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

# ─────────────────────────────────────────────────────────────────────────────
# BASE
# ─────────────────────────────────────────────────────────────────────────────


class StorefrontError(Exception):
    """Root exception for all Storefront errors."""

    http_status_code: int = 400
    error_code: str = "STOREFRONT_ERROR"

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.detail = detail or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "detail": self.detail,
        }


# ─────────────────────────────────────────────────────────────────────────────
# REQUEST VALIDATION
# ─────────────────────────────────────────────────────────────────────────────


class ValidationError(StorefrontError):
    http_status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, fields: Optional[List[str]] = None) -> None:
        self.fields = fields or []
        super().__init__(message=message, detail={"fields": self.fields})


# ─────────────────────────────────────────────────────────────────────────────
# AUTHENTICATION / AUTHORIZATION
# ─────────────────────────────────────────────────────────────────────────────


class AuthenticationError(StorefrontError):
    http_status_code = 401
    error_code = "AUTHENTICATION_ERROR"

    def __init__(self, reason: str = "Authentication required") -> None:
        super().__init__(message=reason, detail={"reason": reason})


class InvalidTokenError(AuthenticationError):
    """Every token failure looks the same: malformed, mis-signed or expired."""

    error_code = "INVALID_TOKEN"

    def __init__(self) -> None:
        super().__init__("Invalid or expired token")


class PermissionDeniedError(StorefrontError):
    http_status_code = 403
    error_code = "PERMISSION_DENIED"

    def __init__(self, role: str, required_role: str = "", action: str = "") -> None:
        self.role = role
        self.required_role = required_role
        if action:
            message = f"Role '{role}' is not permitted to {action}"
        else:
            message = f"Role '{role}' does not satisfy required role '{required_role}'"
        super().__init__(
            message=message,
            detail={"role": role, "required_role": required_role, "action": action},
        )


# ─────────────────────────────────────────────────────────────────────────────
# NOT FOUND
# ─────────────────────────────────────────────────────────────────────────────


class NotFoundError(StorefrontError):
    http_status_code = 404
    error_code = "NOT_FOUND"


class UserNotFoundError(NotFoundError):
    error_code = "USER_NOT_FOUND"

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(
            message=f"User {user_id} not found", detail={"user_id": user_id}
        )


class PromoCodeNotFoundError(NotFoundError):
    error_code = "PROMO_CODE_NOT_FOUND"

    def __init__(self, code: Optional[str] = None, promo_id: Optional[str] = None) -> None:
        self.code = code
        self.promo_id = promo_id
        identifier = f"code={code!r}" if code else f"id={promo_id!r}"
        super().__init__(
            message=f"No active promo code found for {identifier}",
            detail={"code": code, "promo_id": promo_id},
        )


# ─────────────────────────────────────────────────────────────────────────────
# CONFLICT
# ─────────────────────────────────────────────────────────────────────────────


class ConflictError(StorefrontError):
    http_status_code = 409
    error_code = "CONFLICT"


class DuplicateEmailError(ConflictError):
    error_code = "DUPLICATE_EMAIL"

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(
            message="User already exists", detail={"email": email}
        )


class DuplicatePromoCodeError(ConflictError):
    error_code = "DUPLICATE_PROMO_CODE"

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(
            message=f"Promo code {code!r} already exists", detail={"code": code}
        )


# ─────────────────────────────────────────────────────────────────────────────
# INTERNAL
# ─────────────────────────────────────────────────────────────────────────────


class InternalError(StorefrontError):
    """Downstream failure. The message is generic; the cause is logged, not returned."""

    http_status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str = "An internal error occurred.") -> None:
        super().__init__(message=message)
