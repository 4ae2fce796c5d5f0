"""
Storefront — FastAPI Application Entry Point
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storefront.api import account, admin_users, auth, maintenance, promo_codes
from storefront.config import get_settings
from storefront.core.exceptions import StorefrontError
from storefront.database import import_models

settings = get_settings()
logger = logging.getLogger("storefront.main")

import_models()


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


# ─── Lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and initialize DB tables on startup."""
    from storefront.database import init_db

    configure_logging()
    init_db()
    logger.info("%s %s started (%s)", settings.APP_TITLE, settings.APP_VERSION, settings.ENVIRONMENT)
    yield


# ─── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    description=(
        "Storefront authentication & authorization service: accounts, "
        "admin user management, orders, promo codes and maintenance mode."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# ─── CORS ─────────────────────────────────────────────────────────────────────

origins = settings.ALLOWED_ORIGINS if settings.is_production else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Exception handlers ───────────────────────────────────────────────────────


@app.exception_handler(StorefrontError)
async def storefront_exception_handler(
    request: Request, exc: StorefrontError
) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.http_status_code == 401 else None
    if exc.http_status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.error_code)
    return JSONResponse(
        status_code=exc.http_status_code,
        content=exc.to_dict(),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        fields.append(".".join(loc) or "body")
    return JSONResponse(
        status_code=400,
        content={
            "error_code": "VALIDATION_ERROR",
            "message": "Missing or invalid field(s): " + ", ".join(fields),
            "detail": {"fields": fields},
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Detail goes to the log only
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error_code": "INTERNAL_ERROR",
            "message": "An internal error occurred.",
            "detail": {},
        },
    )


# ─── Health endpoint ──────────────────────────────────────────────────────────


@app.get("/health", tags=["health"])
async def health_check() -> Dict[str, Any]:
    """
    Returns system health including DB and denylist store connectivity.
    Used by load balancer health checks.
    """
    from storefront.cache.token_denylist import get_redis_client
    from storefront.database import engine

    db_ok = False
    cache_ok = False

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable", exc_info=True)

    try:
        cache_ok = bool(get_redis_client().ping())
    except redis.RedisError:
        logger.warning("Health check: denylist store unreachable", exc_info=True)

    return {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "db_connected": db_ok,
        "cache_connected": cache_ok,
    }


# ─── Routers ──────────────────────────────────────────────────────────────────

API_PREFIX = "/api"

app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(admin_users.router, prefix=API_PREFIX)
app.include_router(promo_codes.admin_router, prefix=API_PREFIX)
app.include_router(promo_codes.router, prefix=API_PREFIX)
app.include_router(maintenance.admin_router, prefix=API_PREFIX)
app.include_router(maintenance.router, prefix=API_PREFIX)
app.include_router(account.router, prefix=API_PREFIX)
