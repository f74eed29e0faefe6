"""Redis store for the per-client cache backend.

Handles:
- JSON values with TTL
- Key prefixing per client namespace

A Redis instance used here belongs to one client deployment; it is not a
shared cache between clients (cross-client freshness comes from the
modification markers in Postgres).

TTL policies:
- Local cache entries: slightly above the staleness cache TTL (the cache
  decides freshness itself, Redis only garbage-collects)
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

from artdex.settings import get_settings

# TTL constants (in seconds)
TTL_LOCAL_CACHE_GRACE = 60  # added on top of the cache TTL

# Key prefixes
PREFIX_LOCAL_CACHE = "artdex:local:"

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


# ============================================================
# Generic cache operations
# ============================================================


async def cache_get(key: str) -> str | None:
    """Get value from cache.

    Args:
        key: Cache key.

    Returns:
        Cached value or None if not found.
    """
    return await _get_redis().get(key)


async def cache_set(key: str, value: str, ttl: int) -> None:
    """Set value in cache with TTL.

    Args:
        key: Cache key.
        value: Value to cache.
        ttl: Time-to-live in seconds.
    """
    await _get_redis().setex(key, ttl, value)


async def cache_delete(*keys: str) -> None:
    """Delete values from cache.

    Args:
        keys: Cache keys.
    """
    if keys:
        await _get_redis().delete(*keys)


async def cache_get_json(key: str) -> Any | None:
    """Get JSON value from cache.

    Args:
        key: Cache key.

    Returns:
        Parsed JSON value or None if not found.
    """
    value = await cache_get(key)
    if value:
        return json.loads(value)
    return None


async def cache_set_json(key: str, value: Any, ttl: int) -> None:
    """Set JSON value in cache.

    Args:
        key: Cache key.
        value: JSON-compatible value.
        ttl: Time-to-live in seconds.
    """
    await cache_set(key, json.dumps(value), ttl)


async def cache_keys(prefix: str) -> list[str]:
    """List keys under a prefix (SCAN, non-blocking for the server)."""
    return [key async for key in _get_redis().scan_iter(match=f"{prefix}*")]
