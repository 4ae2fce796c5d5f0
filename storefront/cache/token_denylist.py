"""
Storefront — Revoked token denylist backed by Redis.
Uses an in-process thread-safe store when REDIS_URL is not configured.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import redis as redis_lib


class InMemoryRedis:
    """Thread-safe in-memory store mirroring the subset of the Redis API used here."""

    def __init__(self) -> None:
        self._store: Dict[str, str] = {}
        self._expires: Dict[str, float] = {}
        self._lock = threading.RLock()

    def _purge(self, key: str) -> None:
        deadline = self._expires.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self._store.pop(key, None)
            self._expires.pop(key, None)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            self._purge(key)
            return self._store.get(key)

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        with self._lock:
            self._store[key] = value
            if ex is not None:
                self._expires[key] = time.monotonic() + ex
            else:
                self._expires.pop(key, None)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)
            self._expires.pop(key, None)

    def exists(self, key: str) -> int:
        with self._lock:
            self._purge(key)
            return int(key in self._store)

    def ping(self) -> bool:
        return True

    def flush(self) -> None:
        with self._lock:
            self._store.clear()
            self._expires.clear()


def build_redis_client(redis_url: Optional[str] = None):
    """
    Build a Redis client from the given URL.
    Returns an InMemoryRedis if no URL is configured.

    For production with several workers, set REDIS_URL so every worker
    sees the same denylist.
    """
    if not redis_url:
        return InMemoryRedis()
    return redis_lib.from_url(redis_url, decode_responses=True)


# Module-level singleton, shared across all requests
_redis_instance: Optional[Any] = None


def get_redis_client():
    """
    FastAPI dependency: returns the shared Redis client.
    Initialises on first call using REDIS_URL from settings.
    """
    global _redis_instance
    if _redis_instance is None:
        from storefront.config import get_settings

        settings = get_settings()
        _redis_instance = build_redis_client(settings.REDIS_URL)
    return _redis_instance


class TokenDenylist:
    """
    Revoked token ids.
    Key format: "revoked_token:{jti}" → "1", expiring when the token itself would.
    """

    KEY_PREFIX = "revoked_token:"

    def __init__(self, redis_client=None) -> None:
        self._redis = redis_client or get_redis_client()

    def revoke(self, jti: str, expires_at: int) -> None:
        """Deny `jti` until `expires_at` (a Unix timestamp, as in the exp claim)."""
        remaining = int(expires_at - datetime.now(tz=timezone.utc).timestamp())
        if remaining <= 0:
            return
        self._redis.set(f"{self.KEY_PREFIX}{jti}", "1", ex=remaining)

    def is_revoked(self, jti: Optional[str]) -> bool:
        if not jti:
            return False
        return bool(self._redis.exists(f"{self.KEY_PREFIX}{jti}"))
