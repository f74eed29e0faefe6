"""Staleness cache: TTL, marker polling and the cross-client freshness bound."""

import pytest

from artdex.models import ItemTier
from artdex.services.cache import StalenessCache
from artdex.services.errors import LocalStoreError, RemoteUnavailable
from artdex.services.markers import DOMAIN_CATALOG, ModificationMarkerStore
from artdex.stores.local import MemoryLocalStore


class CountingFetch:
    def __init__(self, payload=None):
        self.calls = 0
        self.payload = payload if payload is not None else ["v1"]
        self.fail = False

    async def __call__(self):
        if self.fail:
            raise RemoteUnavailable("fetch failed")
        self.calls += 1
        return list(self.payload)


class BrokenLocalStore(MemoryLocalStore):
    async def get(self, key):
        raise LocalStoreError("disk full")

    async def set(self, key, value):
        raise LocalStoreError("disk full")


@pytest.fixture
def cache(backend, clock) -> StalenessCache:
    return StalenessCache(
        ModificationMarkerStore(backend.markers),
        MemoryLocalStore(),
        ttl_seconds=600,
        check_interval_seconds=30,
        clock=clock,
    )


@pytest.mark.asyncio
async def test_first_read_fetches_then_serves_local(cache, clock):
    fetch = CountingFetch()
    assert await cache.read(DOMAIN_CATALOG, fetch) == ["v1"]
    clock.advance(1)
    assert await cache.read(DOMAIN_CATALOG, fetch) == ["v1"]
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_marker_polls_are_rate_limited(cache, backend, clock):
    fetch = CountingFetch()
    await cache.read(DOMAIN_CATALOG, fetch)
    clock.advance(1)
    await cache.read(DOMAIN_CATALOG, fetch)  # polls, records last check
    polls = backend.markers.polls

    for _ in range(5):
        clock.advance(5)
        await cache.read(DOMAIN_CATALOG, fetch)

    assert backend.markers.polls == polls
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_newer_marker_triggers_refresh(cache, backend, clock):
    fetch = CountingFetch()
    await cache.read(DOMAIN_CATALOG, fetch)

    clock.advance(5)
    await backend.markers.touch_marker(DOMAIN_CATALOG)
    fetch.payload = ["v2"]
    clock.advance(5)

    assert await cache.read(DOMAIN_CATALOG, fetch) == ["v2"]
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_ttl_forces_refresh_without_marker_change(cache, clock):
    fetch = CountingFetch()
    await cache.read(DOMAIN_CATALOG, fetch)
    clock.advance(601)
    await cache.read(DOMAIN_CATALOG, fetch)
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_marker_failure_falls_back_to_ttl(cache, backend, clock):
    fetch = CountingFetch()
    await cache.read(DOMAIN_CATALOG, fetch)
    backend.markers.fail = True

    clock.advance(60)
    assert await cache.read(DOMAIN_CATALOG, fetch) == ["v1"]
    assert fetch.calls == 1

    clock.advance(600)
    await cache.read(DOMAIN_CATALOG, fetch)
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_failed_refresh_serves_stale_copy(cache, clock):
    fetch = CountingFetch()
    await cache.read(DOMAIN_CATALOG, fetch)
    clock.advance(601)
    fetch.fail = True
    assert await cache.read(DOMAIN_CATALOG, fetch) == ["v1"]


@pytest.mark.asyncio
async def test_failed_first_fetch_raises(cache):
    fetch = CountingFetch()
    fetch.fail = True
    with pytest.raises(RemoteUnavailable):
        await cache.read(DOMAIN_CATALOG, fetch)


@pytest.mark.asyncio
async def test_record_write_bumps_marker_and_drops_entry(cache, backend, clock):
    fetch = CountingFetch()
    await cache.read(DOMAIN_CATALOG, fetch)

    clock.advance(1)
    await cache.record_write(DOMAIN_CATALOG)

    assert backend.markers.markers[DOMAIN_CATALOG] == clock.as_datetime()
    assert DOMAIN_CATALOG not in (await cache.stats()).domains
    await cache.read(DOMAIN_CATALOG, fetch)
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_record_write_survives_marker_failure(cache, backend):
    backend.markers.fail = True
    await cache.record_write(DOMAIN_CATALOG)
    assert backend.markers.markers == {}


@pytest.mark.asyncio
async def test_invalidate_all_and_stats(cache, clock):
    await cache.read("catalog", CountingFetch())
    await cache.read("ratings", CountingFetch({}))
    stats = await cache.stats()
    assert stats.domains == {"catalog": clock(), "ratings": clock()}

    await cache.invalidate_all()
    stats = await cache.stats()
    assert stats.domains == {}
    assert stats.last_checked_at is None


@pytest.mark.asyncio
async def test_broken_local_store_degrades_to_uncached(backend, clock):
    cache = StalenessCache(ModificationMarkerStore(backend.markers), BrokenLocalStore(), clock=clock)
    fetch = CountingFetch()
    assert await cache.read(DOMAIN_CATALOG, fetch) == ["v1"]
    assert await cache.read(DOMAIN_CATALOG, fetch) == ["v1"]
    assert fetch.calls == 2


# ============================================================
# Two clients over one backend
# ============================================================


@pytest.mark.asyncio
async def test_foreign_write_visible_within_check_interval(backend, clock, attrs):
    reader = backend.client()
    writer = backend.client()


    await writer.add_item(ItemTier.REGULAR, attrs("Sparkmouse"))
    clock.advance(1)
    assert [i.name for i in await reader.get_catalog()] == ["Sparkmouse"]
    clock.advance(1)
    await reader.get_catalog()  # marker poll, nothing new

    clock.advance(3)
    await writer.add_item(ItemTier.REGULAR, attrs("Flamepup"))
    # The writer sees its own write immediately
    assert [i.name for i in await writer.get_catalog()] == ["Sparkmouse", "Flamepup"]

    clock.advance(5)
    # Last poll was 8s ago: the reader may still serve its copy
    assert [i.name for i in await reader.get_catalog()] == ["Sparkmouse"]

    clock.advance(23)
    # 30s since the last poll: the reader must see the write
    assert [i.name for i in await reader.get_catalog()] == ["Sparkmouse", "Flamepup"]


@pytest.mark.asyncio
async def test_foreign_write_visible_within_ttl_when_markers_fail(backend, clock, attrs):
    reader = backend.client()
    writer = backend.client()
    await writer.add_item(ItemTier.REGULAR, attrs("Sparkmouse"))
    clock.advance(1)
    await reader.get_catalog()

    backend.markers.fail = True
    clock.advance(10)
    await writer.add_item(ItemTier.REGULAR, attrs("Flamepup"))

    clock.advance(100)
    assert len(await reader.get_catalog()) == 1

    clock.advance(500)
    assert len(await reader.get_catalog()) == 2
