"""
Storefront — Database Engine & Session Factory
Supports SQLite (local dev) and PostgreSQL (production).
"""

from __future__ import annotations

import logging
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from storefront.config import get_settings

logger = logging.getLogger("storefront.database")


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    pass


def _build_engine(database_url: str) -> Engine:
    """Construct SQLAlchemy engine with appropriate settings for URL type."""
    is_sqlite = database_url.startswith("sqlite")

    if is_sqlite:
        # SQLite: pool_size/max_overflow are not supported
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragmas(dbapi_conn, _connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            # Needed for orders to cascade when a user is deleted
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    else:
        # PostgreSQL / other relational DBs
        engine = create_engine(
            database_url,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            echo=False,
        )

    return engine


# Build the engine once at import time
settings = get_settings()
engine: Engine = _build_engine(settings.DATABASE_URL)

# Session factory
SessionLocal: sessionmaker[Session] = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a SQLAlchemy Session.
    Automatically closes the session after the request.

    Usage:
        @router.get("/example")
        def example(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def import_models() -> None:
    """Import all model modules so their tables are registered on Base.metadata."""
    from storefront.models import (  # noqa: F401
        orders,
        promo_codes,
        site_settings,
        users,
    )


def init_db(bind: Engine | None = None) -> None:
    """
    Create all tables and seed default rows.
    Call this on application startup.
    """
    import_models()
    target = bind or engine
    Base.metadata.create_all(bind=target)
    _seed_defaults(target)


def _seed_defaults(bind: Engine) -> None:
    """Insert the default site settings row and the welcome promo code if absent."""
    from storefront.models.promo_codes import PromoCode
    from storefront.models.site_settings import DEFAULT_SETTINGS_ID, SiteSettings

    with Session(bind=bind) as session:
        if session.get(SiteSettings, DEFAULT_SETTINGS_ID) is None:
            session.add(SiteSettings(id=DEFAULT_SETTINGS_ID))
        if session.query(PromoCode).count() == 0:
            session.add(PromoCode(code="WELCOME10", discount_percentage=10))
            logger.info("Seeded default promo code WELCOME10")
        session.commit()
