"""Shared fixtures: in-memory document stores and a controllable clock.

The in-memory stores implement the same Protocols as the SQL stores, so
services run against them unchanged. Setting `fail = True` on any store
makes every call raise RemoteUnavailable.
"""

import copy
from datetime import datetime, timezone
from typing import Any

import pytest

from artdex.models import ItemTier
from artdex.services.catalog import CatalogService
from artdex.services.errors import RemoteUnavailable
from artdex.stores.documents import ITEM_ATTRIBUTES, FavoriteRecord, ItemRecord, LedgerRecord
from artdex.stores.local import MemoryLocalStore


class FakeClock:
    """Epoch-seconds clock advanced by hand."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def as_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.now, tz=timezone.utc)


class _FailSwitch:
    fail = False

    def _check(self) -> None:
        if self.fail:
            raise RemoteUnavailable("store offline")


class InMemoryCatalogStore(_FailSwitch):
    def __init__(self, clock: FakeClock):
        self._clock = clock
        self.items: dict[str, ItemRecord] = {}
        self.reads = 0
        self.ordinal_writes: list[tuple[str, int]] = []
        self._seq = 0

    async def list_items(self, tier: ItemTier | None = None) -> list[ItemRecord]:
        self._check()
        self.reads += 1
        items = [copy.deepcopy(i) for i in self.items.values() if tier is None or i.tier == tier]
        return sorted(items, key=lambda i: i.ordinal)

    async def get_item(self, item_id: str) -> ItemRecord | None:
        self._check()
        item = self.items.get(item_id)
        return copy.deepcopy(item) if item else None

    async def create_item(self, ordinal: int, tier: ItemTier, attributes: dict[str, Any]) -> ItemRecord:
        self._check()
        self._seq += 1
        values = {k: v for k, v in attributes.items() if k in ITEM_ATTRIBUTES}
        record = ItemRecord(
            item_id=f"item-{self._seq}",
            ordinal=ordinal,
            tier=tier,
            created_at=self._clock.as_datetime(),
            updated_at=self._clock.as_datetime(),
            **values,
        )
        self.items[record.item_id] = record
        return copy.deepcopy(record)

    async def update_item(self, item_id: str, attributes: dict[str, Any]) -> bool:
        self._check()
        item = self.items.get(item_id)
        if item is None:
            return False
        for key, value in attributes.items():
            if key in ITEM_ATTRIBUTES:
                setattr(item, key, value)
        item.updated_at = self._clock.as_datetime()
        return True

    async def set_ordinal(self, item_id: str, ordinal: int) -> bool:
        self._check()
        item = self.items.get(item_id)
        if item is None:
            return False
        self.ordinal_writes.append((item_id, ordinal))
        item.ordinal = ordinal
        return True

    async def delete_item(self, item_id: str) -> bool:
        self._check()
        return self.items.pop(item_id, None) is not None

    def seed(self, item_id: str, ordinal: int, tier: ItemTier = ItemTier.REGULAR, creator: str = "ash") -> None:
        self.items[item_id] = ItemRecord(
            item_id=item_id,
            ordinal=ordinal,
            tier=tier,
            name=item_id.title(),
            creator=creator,
            image_url=f"https://img.example/{item_id}.png",
        )

    def ordinals(self) -> dict[str, int]:
        return {item_id: item.ordinal for item_id, item in self.items.items()}


class InMemoryLedgerStore(_FailSwitch):
    def __init__(self, clock: FakeClock):
        self._clock = clock
        self.ledgers: dict[int, LedgerRecord] = {}
        self.reads = 0
        self._seq = 0

    async def list_ledgers(self) -> list[LedgerRecord]:
        self._check()
        self.reads += 1
        return [copy.deepcopy(ledger) for _, ledger in sorted(self.ledgers.items())]

    async def find_ledgers(self, item_id: str) -> list[LedgerRecord]:
        self._check()
        return [copy.deepcopy(ledger) for _, ledger in sorted(self.ledgers.items()) if ledger.item_id == item_id]

    async def create_ledger(
        self, item_id: str, votes: dict[str, float], average_score: float, total_points: float, vote_count: int
    ) -> LedgerRecord:
        self._check()
        self._seq += 1
        record = LedgerRecord(
            ledger_id=self._seq,
            item_id=item_id,
            votes=dict(votes),
            average_score=average_score,
            total_points=total_points,
            vote_count=vote_count,
            created_at=self._clock.as_datetime(),
            last_updated=self._clock.as_datetime(),
        )
        self.ledgers[record.ledger_id] = record
        return copy.deepcopy(record)

    async def save_ledger(
        self, ledger_id: int, votes: dict[str, float], average_score: float, total_points: float, vote_count: int
    ) -> bool:
        self._check()
        ledger = self.ledgers.get(ledger_id)
        if ledger is None:
            return False
        ledger.votes = dict(votes)
        ledger.average_score = average_score
        ledger.total_points = total_points
        ledger.vote_count = vote_count
        ledger.last_updated = self._clock.as_datetime()
        return True

    async def delete_ledger(self, ledger_id: int) -> bool:
        self._check()
        return self.ledgers.pop(ledger_id, None) is not None

    def for_item(self, item_id: str) -> list[LedgerRecord]:
        return [ledger for ledger in self.ledgers.values() if ledger.item_id == item_id]


class InMemoryMarkerStore(_FailSwitch):
    """Markers stamped with the fake clock (stands in for the DB clock)."""

    def __init__(self, clock: FakeClock):
        self._clock = clock
        self.markers: dict[str, datetime] = {}
        self.polls = 0

    async def get_marker(self, domain: str) -> datetime | None:
        self._check()
        self.polls += 1
        return self.markers.get(domain)

    async def touch_marker(self, domain: str) -> None:
        self._check()
        self.markers[domain] = self._clock.as_datetime()


class InMemoryFavoriteStore(_FailSwitch):
    def __init__(self) -> None:
        self.favorites: list[FavoriteRecord] = []

    async def list_favorites(self, voter_id: str | None = None) -> list[FavoriteRecord]:
        self._check()
        return [f for f in self.favorites if voter_id is None or f.voter_id == voter_id]

    async def add_favorite(self, item_id: str, voter_id: str) -> bool:
        self._check()
        record = FavoriteRecord(item_id=item_id, voter_id=voter_id)
        if record in self.favorites:
            return False
        self.favorites.append(record)
        return True

    async def remove_favorite(self, item_id: str, voter_id: str) -> bool:
        self._check()
        record = FavoriteRecord(item_id=item_id, voter_id=voter_id)
        if record not in self.favorites:
            return False
        self.favorites.remove(record)
        return True

    async def delete_for_item(self, item_id: str) -> int:
        self._check()
        before = len(self.favorites)
        self.favorites = [f for f in self.favorites if f.item_id != item_id]
        return before - len(self.favorites)

    async def delete_for_voter(self, voter_id: str) -> int:
        self._check()
        before = len(self.favorites)
        self.favorites = [f for f in self.favorites if f.voter_id != voter_id]
        return before - len(self.favorites)


class Backend:
    """One shared "remote" document store used by any number of clients."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.catalog = InMemoryCatalogStore(clock)
        self.ledgers = InMemoryLedgerStore(clock)
        self.markers = InMemoryMarkerStore(clock)
        self.favorites = InMemoryFavoriteStore()

    def go_offline(self) -> None:
        for store in (self.catalog, self.ledgers, self.markers, self.favorites):
            store.fail = True

    def go_online(self) -> None:
        for store in (self.catalog, self.ledgers, self.markers, self.favorites):
            store.fail = False

    def client(self, **kwargs: Any) -> CatalogService:
        """A client process: its own local cache over the shared stores."""
        return CatalogService(
            self.catalog,
            self.ledgers,
            self.markers,
            self.favorites,
            MemoryLocalStore(),
            clock=self.clock,
            **kwargs,
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend(clock: FakeClock) -> Backend:
    return Backend(clock)


@pytest.fixture
def service(backend: Backend) -> CatalogService:
    return backend.client()


@pytest.fixture
def attrs():
    """Factory for item attributes."""

    def _attrs(name: str = "Sparkmouse", creator: str = "ash", **extra: Any) -> dict[str, Any]:
        return {
            "name": name,
            "creator": creator,
            "image_url": f"https://img.example/{name.lower()}.png",
            **extra,
        }

    return _attrs
