"""Staleness-bounded client-local cache.

Decision flow for read(domain, fetch_fn):
1. No local entry -> fetch and store
2. Entry older than TTL -> forced refresh
3. Marker polled less than CHECK_INTERVAL ago -> serve local entry
4. Poll the domain marker; refresh if it is newer than the entry
5. Marker poll failed -> the TTL check (step 2) is the only signal

Staleness bound: a foreign write becomes visible to this client after at
most CHECK_INTERVAL (marker path) or TTL (degraded path). The writer's
own client sees it immediately because every write ends with
record_write(), which bumps the marker and drops the local entry.

The cache is an explicit object owned by the caller (one per client
process); time is injected for deterministic tests.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
import time
from typing import Any

from artdex.services.errors import LocalStoreError, RemoteUnavailable
from artdex.services.markers import ModificationMarkerStore
from artdex.stores.local import LocalStore

logger = logging.getLogger("uvicorn.error")

DEFAULT_TTL_SECONDS = 600  # 10 minutes
DEFAULT_CHECK_INTERVAL_SECONDS = 30

# Local keys
ENTRY_PREFIX = "entry:"
LAST_CHECK_KEY = "last_check"


@dataclass
class CacheEntry:
    payload: Any
    fetched_at: float


@dataclass
class CacheStats:
    domains: dict[str, float] = field(default_factory=dict)  # domain -> fetched_at
    last_checked_at: float | None = None


class StalenessCache:
    """Local cache with TTL + marker polling."""

    def __init__(
        self,
        markers: ModificationMarkerStore,
        local_store: LocalStore,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        check_interval_seconds: float = DEFAULT_CHECK_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._markers = markers
        self._local = local_store
        self.ttl_seconds = ttl_seconds
        self.check_interval_seconds = check_interval_seconds
        self._clock = clock

    async def read(self, domain: str, fetch_fn: Callable[[], Awaitable[Any]]) -> Any:
        """Return the domain payload, re-fetching only when it may be stale.

        Raises:
            RemoteUnavailable: fetch failed and there is no local copy to serve.
        """
        now = self._clock()
        entry = await self._get_entry(domain)

        if entry is None:
            logger.info(f"No cached {domain} data, fetching")
            return await self._refresh(domain, fetch_fn, stale=None)

        if now - entry.fetched_at > self.ttl_seconds:
            logger.info(f"Cache expired for {domain}, forcing refresh")
            return await self._refresh(domain, fetch_fn, stale=entry)

        last_checked_at = await self._get_last_checked()
        if last_checked_at is not None and now - last_checked_at < self.check_interval_seconds:
            return entry.payload

        try:
            last_modified = await self._markers.last_modified(domain)
        except RemoteUnavailable:
            # Entry is within TTL (checked above): serve it.
            logger.warning(f"Marker check failed for {domain}, relying on TTL")
            return entry.payload

        await self._set_local(LAST_CHECK_KEY, now)

        if last_modified is not None and last_modified.timestamp() > entry.fetched_at:
            logger.info(f"Server {domain} data newer than cache, refreshing")
            return await self._refresh(domain, fetch_fn, stale=entry)

        logger.info(f"Cache is up to date for {domain}")
        return entry.payload

    async def invalidate(self, domain: str) -> None:
        """Drop the local entry for `domain` (next read re-fetches)."""
        await self._delete_local(f"{ENTRY_PREFIX}{domain}", LAST_CHECK_KEY)
        logger.info(f"Cache cleared for {domain}")

    async def invalidate_all(self) -> None:
        """Drop every local entry."""
        keys = [key for key in await self._local_keys() if key.startswith(ENTRY_PREFIX)]
        await self._delete_local(*keys, LAST_CHECK_KEY)
        logger.info("All cache cleared")

    async def record_write(self, domain: str) -> None:
        """Publish a successful write: bump the domain marker, drop the local entry.

        A marker failure is logged, not raised: the data write already
        happened, other clients just fall back to the TTL bound.
        """
        try:
            await self._markers.touch(domain)
        except RemoteUnavailable:
            logger.exception(f"Failed to update modification marker for {domain}")
        await self.invalidate(domain)

    async def stats(self) -> CacheStats:
        stats = CacheStats(last_checked_at=await self._get_last_checked())
        for key in await self._local_keys():
            if not key.startswith(ENTRY_PREFIX):
                continue
            domain = key[len(ENTRY_PREFIX):]
            entry = await self._get_entry(domain)
            if entry is not None:
                stats.domains[domain] = entry.fetched_at
        return stats

    async def _refresh(
        self,
        domain: str,
        fetch_fn: Callable[[], Awaitable[Any]],
        stale: CacheEntry | None,
    ) -> Any:
        # Stamp before fetching: a write landing mid-fetch still looks newer.
        started_at = self._clock()
        try:
            payload = await fetch_fn()
        except RemoteUnavailable:
            if stale is None:
                raise
            logger.warning(f"Refresh of {domain} failed, serving cached copy")
            return stale.payload

        await self._set_local(f"{ENTRY_PREFIX}{domain}", {"payload": payload, "fetched_at": started_at})
        return payload

    # Local store access: backend failures degrade to "not cached".

    async def _get_entry(self, domain: str) -> CacheEntry | None:
        try:
            raw = await self._local.get(f"{ENTRY_PREFIX}{domain}")
        except LocalStoreError:
            logger.warning(f"Local cache read failed for {domain}")
            return None
        if not isinstance(raw, dict) or "fetched_at" not in raw:
            return None
        try:
            return CacheEntry(payload=raw.get("payload"), fetched_at=float(raw["fetched_at"]))
        except (TypeError, ValueError):
            return None

    async def _get_last_checked(self) -> float | None:
        try:
            raw = await self._local.get(LAST_CHECK_KEY)
        except LocalStoreError:
            return None
        try:
            return float(raw) if raw is not None else None
        except (TypeError, ValueError):
            return None

    async def _set_local(self, key: str, value: Any) -> None:
        try:
            await self._local.set(key, value)
        except LocalStoreError:
            logger.warning(f"Local cache write failed for {key}")

    async def _delete_local(self, *keys: str) -> None:
        try:
            await self._local.delete(*keys)
        except LocalStoreError:
            logger.warning(f"Local cache delete failed for {', '.join(keys)}")

    async def _local_keys(self) -> list[str]:
        try:
            return await self._local.keys()
        except LocalStoreError:
            return []
