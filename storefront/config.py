"""
Storefront — Application Configuration
All settings loaded from environment variables via pydantic-settings.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Values that have shipped as examples somewhere and must never sign real tokens
_PLACEHOLDER_SECRETS = {
    "your-secret-key",
    "change_me",
    "changeme",
    "secret",
    "CHANGE_ME_JWT_SECRET_256_BIT",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./storefront.db"

    # ── Redis / Token denylist ────────────────────────────────────────────────
    # Empty → in-process denylist (single worker only)
    REDIS_URL: str = ""

    # ── Tokens / Auth ─────────────────────────────────────────────────────────
    JWT_SECRET: str  # required, no fallback
    JWT_ALGORITHM: str = "HS256"
    TOKEN_LIFETIME_DAYS: int = 7
    VERIFICATION_TOKEN_HOURS: int = 24
    BCRYPT_ROUNDS: int = 10
    AUTH_COOKIE_NAME: str = "token"

    # AES_KEY must be 32 bytes, base64-encoded. Needed to store shipping addresses.
    AES_KEY: str = ""

    # ── Fixed administrator (not a stored row) ────────────────────────────────
    ADMIN_ID: str = "admin-system-0001"
    ADMIN_EMAIL: str = "admin@system.local"
    ADMIN_USERNAME: str = "admin"
    ADMIN_NAME: str = "Administrator"
    ADMIN_PASSWORD: Optional[str] = None

    # ── Storefront ────────────────────────────────────────────────────────────
    MAINTENANCE_FLAG_FILE: str = ".maintenance"
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    # ── Application Settings ──────────────────────────────────────────────────
    ENVIRONMENT: str = "development"  # development | staging | production
    LOG_LEVEL: str = "INFO"
    APP_TITLE: str = "Storefront Auth"
    APP_VERSION: str = "1.0.0"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of {allowed}")
        return v

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        v = v.strip()
        if v in _PLACEHOLDER_SECRETS or v.lower() in _PLACEHOLDER_SECRETS:
            raise ValueError("JWT_SECRET is a known placeholder value")
        if len(v) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters")
        return v

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if not 4 <= v <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    @model_validator(mode="after")
    def require_shared_denylist_in_production(self) -> "Settings":
        # Revocations must be visible to every worker
        if self.ENVIRONMENT == "production" and not self.REDIS_URL.strip():
            raise ValueError("REDIS_URL is required when ENVIRONMENT is production")
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def fixed_admin_enabled(self) -> bool:
        return bool(self.ADMIN_PASSWORD)


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton, usable with FastAPI Depends()."""
    return Settings()


# Module-level convenience alias
settings = get_settings()
