"""
Storefront — Shared pytest fixtures.
"""

from __future__ import annotations

import base64
import os
import secrets
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# ─── Environment setup (before any app imports) ───────────────────────────────

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("AES_KEY", base64.b64encode(secrets.token_bytes(32)).decode())
os.environ.setdefault("JWT_SECRET", secrets.token_hex(32))
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ADMIN_EMAIL", "admin@system.local")
os.environ.setdefault("ADMIN_USERNAME", "admin")
os.environ.setdefault("ADMIN_PASSWORD", "Admin-Pass-123")

# ─── App imports (after env is set) ───────────────────────────────────────────

from storefront.cache.token_denylist import InMemoryRedis, TokenDenylist  # noqa: E402
from storefront.config import get_settings  # noqa: E402
from storefront.core.security import create_access_token  # noqa: E402
from storefront.database import init_db  # noqa: E402
from storefront.models.users import User  # noqa: E402
from storefront.services.auth import create_user  # noqa: E402

# ─────────────────────────────────────────────────────────────────────────────
# DATABASE FIXTURES
# ─────────────────────────────────────────────────────────────────────────────


def _make_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def set_pragmas(dbapi_conn, _):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    init_db(bind=engine)
    return engine


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """In-memory SQLite session, tables created and defaults seeded, fresh for every test."""
    engine = _make_engine()
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture(scope="function")
def denylist() -> TokenDenylist:
    return TokenDenylist(InMemoryRedis())


# ─────────────────────────────────────────────────────────────────────────────
# FASTAPI CLIENT FIXTURE
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(scope="function")
def client(db_session: Session, denylist: TokenDenylist) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with overridden DB and denylist dependencies."""
    from storefront.core.auth import get_token_denylist
    from storefront.database import get_db
    from storefront.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_denylist] = lambda: denylist

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# ─────────────────────────────────────────────────────────────────────────────
# USER FIXTURES
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(scope="function")
def shopper(db_session: Session) -> User:
    return create_user(db_session, "shopper@shop.io", "secret123", "Shopper")


@pytest.fixture(scope="function")
def stored_admin(db_session: Session) -> User:
    return create_user(
        db_session, "boss@shop.io", "secret123", "Boss", role="admin", email_verified=True
    )


# ─────────────────────────────────────────────────────────────────────────────
# TOKEN FIXTURES
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(scope="function")
def shopper_token(shopper: User) -> str:
    return create_access_token(shopper.id, shopper.email, shopper.role)


@pytest.fixture(scope="function")
def stored_admin_token(stored_admin: User) -> str:
    return create_access_token(stored_admin.id, stored_admin.email, stored_admin.role)


@pytest.fixture(scope="session")
def fixed_admin_token() -> str:
    settings = get_settings()
    return create_access_token(settings.ADMIN_ID, settings.ADMIN_EMAIL, "admin")
