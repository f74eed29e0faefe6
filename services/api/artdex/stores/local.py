"""Client-local key-value stores behind the staleness cache.

Values must be JSON-compatible. Two backends:
- MemoryLocalStore: process memory (default, one per API process)
- RedisLocalStore: a Redis instance owned by this client deployment
"""

import copy
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Protocol

from redis.exceptions import RedisError

from artdex.services.errors import LocalStoreError
from artdex.stores.redis import (
    PREFIX_LOCAL_CACHE,
    TTL_LOCAL_CACHE_GRACE,
    cache_delete,
    cache_get_json,
    cache_keys,
    cache_set_json,
)


class LocalStore(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def delete(self, *keys: str) -> None: ...

    async def keys(self) -> list[str]: ...


class MemoryLocalStore:
    """Dict-backed store. Values are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    async def get(self, key: str) -> Any | None:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._data)


@asynccontextmanager
async def _redis_call() -> AsyncGenerator[None, None]:
    try:
        yield
    except (RedisError, OSError, RuntimeError, ValueError) as e:
        raise LocalStoreError(f"Local cache backend error: {e}") from e


class RedisLocalStore:
    """Redis-backed store, namespaced per client."""

    def __init__(self, namespace: str = "default", ttl_seconds: int = 600) -> None:
        self._prefix = f"{PREFIX_LOCAL_CACHE}{namespace}:"
        self._ttl = ttl_seconds + TTL_LOCAL_CACHE_GRACE

    async def get(self, key: str) -> Any | None:
        async with _redis_call():
            return await cache_get_json(f"{self._prefix}{key}")

    async def set(self, key: str, value: Any) -> None:
        async with _redis_call():
            await cache_set_json(f"{self._prefix}{key}", value, self._ttl)

    async def delete(self, *keys: str) -> None:
        async with _redis_call():
            await cache_delete(*(f"{self._prefix}{key}" for key in keys))

    async def keys(self) -> list[str]:
        async with _redis_call():
            return [key[len(self._prefix):] for key in await cache_keys(self._prefix)]
