"""Favorites service.

A voter may favorite up to `limit` items (default 3). Favorites are an
independent invalidation domain ("favorites").
"""

from dataclasses import dataclass
from enum import Enum
import logging

from artdex.services.cache import StalenessCache
from artdex.services.markers import DOMAIN_FAVORITES
from artdex.stores.documents import FavoriteStore

logger = logging.getLogger("uvicorn.error")

DEFAULT_FAVORITES_PER_VOTER = 3


class FavoriteStatus(Enum):
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"
    LIMIT_REACHED = "limit_reached"


@dataclass(frozen=True)
class FavoriteResult:
    status: FavoriteStatus
    favorites: tuple[str, ...]  # voter's favorites after the call


class FavoriteService:
    """Per-voter favorites with a bounded count."""

    def __init__(self, store: FavoriteStore, cache: StalenessCache, limit: int = DEFAULT_FAVORITES_PER_VOTER):
        self._store = store
        self._cache = cache
        self.limit = limit

    async def voter_favorites(self, voter_id: str) -> list[str]:
        return [f.item_id for f in await self._store.list_favorites(voter_id=voter_id)]

    async def set_favorite(self, item_id: str, voter_id: str, favorite: bool) -> FavoriteResult:
        """Add or remove a favorite. Adding beyond the limit is refused."""
        current = await self.voter_favorites(voter_id)

        if favorite:
            if item_id in current:
                return FavoriteResult(FavoriteStatus.UNCHANGED, tuple(current))
            if len(current) >= self.limit:
                logger.info(f"Voter {voter_id} already has {len(current)} favorites (limit {self.limit})")
                return FavoriteResult(FavoriteStatus.LIMIT_REACHED, tuple(current))
            added = await self._store.add_favorite(item_id, voter_id)
            after = [*current, item_id] if added else current
            status = FavoriteStatus.ADDED if added else FavoriteStatus.UNCHANGED
        else:
            if item_id not in current:
                return FavoriteResult(FavoriteStatus.UNCHANGED, tuple(current))
            await self._store.remove_favorite(item_id, voter_id)
            after = [i for i in current if i != item_id]
            status = FavoriteStatus.REMOVED

        await self._cache.record_write(DOMAIN_FAVORITES)
        return FavoriteResult(status, tuple(after))

    async def remove_voter(self, voter_id: str) -> int:
        removed = await self._store.delete_for_voter(voter_id)
        if removed:
            await self._cache.record_write(DOMAIN_FAVORITES)
        return removed

    async def remove_item(self, item_id: str) -> int:
        removed = await self._store.delete_for_item(item_id)
        if removed:
            await self._cache.record_write(DOMAIN_FAVORITES)
        return removed
