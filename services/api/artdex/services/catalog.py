"""Catalog service: the public boundary used by routes and scripts.

Wires the core pieces together:
- OrdinalAllocator for item creation/deletion and repair
- RatingAggregator for votes and leaderboards
- FavoriteService for bounded per-voter favorites
- StalenessCache for every read of catalog/ratings/favorites data

Failure policy:
- RemoteUnavailable never crosses this boundary. Reads degrade to an empty
  (or cached) result, writes return False/None. Details are logged.
- Caller mistakes (ItemNotFound, ConfirmationRequired) are raised so the
  HTTP layer can answer 4xx. An invalid score is logged and returns False.
- A failed write means "no state change guaranteed"; there is no retry.
"""

from collections.abc import Callable
from dataclasses import dataclass
import logging
import time
from typing import Any

from artdex.models import ItemTier
from artdex.schemas import CatalogItemOut, LeaderboardEntry, LedgerOut
from artdex.services.cache import CacheStats, StalenessCache
from artdex.services.errors import InvalidScore, InvariantViolation, ItemNotFound, RemoteUnavailable
from artdex.services.favorites import DEFAULT_FAVORITES_PER_VOTER, FavoriteResult, FavoriteService
from artdex.services.markers import DOMAIN_CATALOG, DOMAIN_FAVORITES, DOMAIN_RATINGS, ModificationMarkerStore
from artdex.services.ordinals import OrdinalAllocator, ReorganizeResult, find_ordering_violations
from artdex.services.ratings import (
    LedgerStats,
    LowVoteReport,
    RatingAggregator,
    VoterStats,
    compute_ledger_stats,
    merge_vote_maps,
    rank_entries,
    summarize_voter,
)
from artdex.stores.documents import (
    CatalogStore,
    FavoriteRecord,
    FavoriteStore,
    ItemRecord,
    LedgerRecord,
    LedgerStore,
    MarkerStore,
)
from artdex.stores.local import LocalStore

logger = logging.getLogger("uvicorn.error")


def item_out(record: ItemRecord) -> CatalogItemOut:
    return CatalogItemOut(
        item_id=record.item_id,
        ordinal=record.ordinal,
        tier=record.tier,
        name=record.name,
        creator=record.creator,
        image_url=record.image_url,
        additional_images=record.additional_images,
        types=record.types,
        evolution_stage=record.evolution_stage,
        description=record.description,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def ledgers_by_item(ledgers: list[LedgerRecord]) -> dict[str, LedgerOut]:
    """One LedgerOut per item; duplicate ledgers are merged for display."""
    grouped: dict[str, list[LedgerRecord]] = {}
    for ledger in ledgers:
        grouped.setdefault(ledger.item_id, []).append(ledger)

    out: dict[str, LedgerOut] = {}
    for item_id, group in grouped.items():
        votes = merge_vote_maps(group)
        stats = compute_ledger_stats(votes)
        updated = [g.last_updated for g in group if g.last_updated is not None]
        out[item_id] = LedgerOut(
            item_id=item_id,
            votes=votes,
            average_score=stats.average_score,
            total_points=stats.total_points,
            vote_count=stats.vote_count,
            last_updated=max(updated) if updated else None,
        )
    return out


@dataclass
class VoterRemoval:
    ledgers_updated: int
    ledgers_deleted: int
    favorites_removed: int


class CatalogService:
    """Catalog, ratings and favorites behind one fail-soft facade."""

    def __init__(
        self,
        catalog: CatalogStore,
        ledgers: LedgerStore,
        markers: MarkerStore,
        favorites: FavoriteStore,
        local_store: LocalStore,
        *,
        cache_ttl_seconds: float = 600,
        cache_check_interval_seconds: float = 30,
        favorites_per_voter: int = DEFAULT_FAVORITES_PER_VOTER,
        clock: Callable[[], float] = time.time,
    ):
        self._catalog = catalog
        self._ledgers = ledgers
        self._favorite_store = favorites
        self.markers = ModificationMarkerStore(markers)
        self.cache = StalenessCache(
            self.markers,
            local_store,
            ttl_seconds=cache_ttl_seconds,
            check_interval_seconds=cache_check_interval_seconds,
            clock=clock,
        )
        self.allocator = OrdinalAllocator(catalog)
        self.ratings = RatingAggregator(ledgers, self.cache)
        self.favorites = FavoriteService(favorites, self.cache, limit=favorites_per_voter)

    # ============================================================
    # Catalog
    # ============================================================

    async def add_item(self, tier: ItemTier, attributes: dict[str, Any]) -> ItemRecord | None:
        """Create an item at the next ordinal for its tier.

        When the regular block is full up to the first elevated item, the
        new item takes the boundary ordinal and a reorganize pass moves the
        elevated block up.
        """
        try:
            ordinal = await self.allocator.next_ordinal(tier)
            collides = await self.allocator.requires_reorganize(tier, ordinal)
            record = await self._catalog.create_item(ordinal, tier, attributes)
            logger.info(f"Added item {record.item_id} ({tier.value}) at #{ordinal}")

            if collides:
                result = await self.allocator.reorganize()
                if not result.ok:
                    logger.warning(f"Reorganize after insert left {len(result.failed)} items unmoved")
                record = await self._catalog.get_item(record.item_id) or record

            await self.cache.record_write(DOMAIN_CATALOG)
            return record
        except RemoteUnavailable:
            logger.exception("Error adding catalog item")
            return None

    async def update_item(self, item_id: str, attributes: dict[str, Any]) -> bool:
        """Update display attributes (ordinal and tier are not editable here).

        Raises:
            ItemNotFound: no such item.
        """
        try:
            updated = await self._catalog.update_item(item_id, attributes)
        except RemoteUnavailable:
            logger.exception(f"Error updating item {item_id}")
            return False
        if not updated:
            raise ItemNotFound(item_id)
        await self.cache.record_write(DOMAIN_CATALOG)
        return True

    async def delete_item(self, item_id: str) -> bool:
        """Delete an item, its ratings and favorites, then close the ordinal gap.

        Raises:
            ItemNotFound: no such item.
        """
        try:
            deleted = await self._catalog.delete_item(item_id)
            if not deleted:
                raise ItemNotFound(item_id)
            await self.cache.record_write(DOMAIN_CATALOG)

            ledgers = await self._ledgers.find_ledgers(item_id)
            for ledger in ledgers:
                await self._ledgers.delete_ledger(ledger.ledger_id)
            if ledgers:
                await self.cache.record_write(DOMAIN_RATINGS)
            await self.favorites.remove_item(item_id)

            result = await self.allocator.reorganize()
            if result.updated:
                await self.cache.record_write(DOMAIN_CATALOG)
            return result.ok
        except RemoteUnavailable:
            logger.exception(f"Error deleting item {item_id}")
            return False

    async def get_catalog(self) -> list[CatalogItemOut]:
        """All items ordered by ordinal (cached)."""
        try:
            payload = await self.cache.read(DOMAIN_CATALOG, self._fetch_catalog)
        except RemoteUnavailable:
            logger.exception("Error fetching catalog")
            return []
        return [CatalogItemOut.model_validate(item) for item in payload]

    async def force_reorganize(self) -> ReorganizeResult | None:
        try:
            result = await self.allocator.reorganize()
        except RemoteUnavailable:
            logger.exception("Error reorganizing catalog")
            return None
        if result.updated:
            await self.cache.record_write(DOMAIN_CATALOG)
        return result

    # ============================================================
    # Ratings
    # ============================================================

    async def cast_vote(self, item_id: str, voter_id: str, score: float) -> bool:
        """Record (or overwrite) a voter's score.

        Returns False for an invalid score or a store failure.

        Raises:
            ItemNotFound: no such item.
        """
        try:
            if await self._catalog.get_item(item_id) is None:
                raise ItemNotFound(item_id)
            await self.ratings.record_vote(item_id, voter_id, score)
            return True
        except InvalidScore as e:
            logger.warning(f"Rejected vote for {item_id}: {e}")
            return False
        except RemoteUnavailable:
            logger.exception(f"Error saving vote for {item_id}")
            return False

    async def withdraw_vote(self, item_id: str, voter_id: str) -> bool | None:
        """Withdraw a vote. False if the voter had not rated the item, None on store failure."""
        try:
            return await self.ratings.withdraw_vote(item_id, voter_id)
        except RemoteUnavailable:
            logger.exception(f"Error withdrawing vote for {item_id}")
            return None

    async def get_ratings(self) -> dict[str, LedgerOut]:
        """item id -> ledger (cached)."""
        try:
            payload = await self.cache.read(DOMAIN_RATINGS, self._fetch_ratings)
        except RemoteUnavailable:
            logger.exception("Error fetching ratings")
            return {}
        return {item_id: LedgerOut.model_validate(ledger) for item_id, ledger in payload.items()}

    async def get_leaderboard(self, creator: str | None = None) -> list[LeaderboardEntry]:
        """Ranked rated items; with `creator`, ranked only against each other."""
        items = await self.get_catalog()
        ledgers = await self.get_ratings()
        return self._leaderboard(items, ledgers, creator)

    async def get_creator_leaderboards(self) -> dict[str, list[LeaderboardEntry]]:
        items = await self.get_catalog()
        ledgers = await self.get_ratings()
        creators = sorted({item.creator for item in items})
        return {creator: self._leaderboard(items, ledgers, creator) for creator in creators}

    async def voter_stats(self, voter_id: str) -> VoterStats:
        items = await self.get_catalog()
        ledgers = await self.get_ratings()
        records = [
            LedgerRecord(ledger_id=0, item_id=item_id, votes=ledger.votes) for item_id, ledger in ledgers.items()
        ]
        return summarize_voter(voter_id, records, [item.item_id for item in items])

    async def analyze_low_vote_voters(self, max_votes: int) -> LowVoteReport | None:
        try:
            return await self.ratings.analyze_low_vote_voters(max_votes)
        except RemoteUnavailable:
            logger.exception("Error analyzing low-vote voters")
            return None

    async def cleanup_low_vote_voters(self, max_votes: int, confirmation: str | None) -> int | None:
        """Remove low-activity voters' votes.

        Raises:
            ConfirmationRequired: token mismatch (nothing was written).
        """
        try:
            return await self.ratings.cleanup_low_vote_voters(max_votes, confirmation)
        except RemoteUnavailable:
            logger.exception("Error cleaning up low-vote voters")
            return None

    # ============================================================
    # Favorites
    # ============================================================

    async def set_favorite(self, item_id: str, voter_id: str, favorite: bool) -> FavoriteResult | None:
        """Add/remove a favorite.

        Raises:
            ItemNotFound: adding a favorite for an unknown item.
        """
        try:
            if favorite and await self._catalog.get_item(item_id) is None:
                raise ItemNotFound(item_id)
            return await self.favorites.set_favorite(item_id, voter_id, favorite)
        except RemoteUnavailable:
            logger.exception(f"Error saving favorite for {item_id}")
            return None

    async def get_favorite_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for fav in await self._cached_favorites():
            counts[fav.item_id] = counts.get(fav.item_id, 0) + 1
        return counts

    async def get_voter_favorites(self, voter_id: str) -> list[str]:
        return [fav.item_id for fav in await self._cached_favorites() if fav.voter_id == voter_id]

    # ============================================================
    # Voters
    # ============================================================

    async def delete_voter_data(self, voter_id: str) -> VoterRemoval | None:
        """Withdraw every vote and favorite of a voter (data-removal request)."""
        try:
            result = await self.ratings.withdraw_voter(voter_id)
            favorites_removed = await self.favorites.remove_voter(voter_id)
        except RemoteUnavailable:
            logger.exception(f"Error deleting data for voter {voter_id}")
            return None
        if not result.ok:
            logger.error(f"Voter {voter_id} removal incomplete: {result.failed} ledger writes failed")
            return None
        return VoterRemoval(
            ledgers_updated=result.updated,
            ledgers_deleted=result.deleted,
            favorites_removed=favorites_removed,
        )

    # ============================================================
    # Diagnostics / cache
    # ============================================================

    async def check_integrity(self) -> list[InvariantViolation] | None:
        """Tolerated inconsistencies in remote state (uncached reads)."""
        try:
            items = await self._catalog.list_items()
            ledgers = await self._ledgers.list_ledgers()
            violations = find_ordering_violations(items)
            violations.extend(await self.ratings.find_duplicate_ledgers())
        except RemoteUnavailable:
            logger.exception("Error checking catalog integrity")
            return None

        existing = {item.item_id for item in items}
        orphans = sorted({ledger.item_id for ledger in ledgers if ledger.item_id not in existing})
        violations.extend(
            InvariantViolation(
                kind="ORPHAN_LEDGER",
                message=f"Ledger for missing item {item_id}",
                item_ids=(item_id,),
            )
            for item_id in orphans
        )
        return violations

    async def clear_cache(self) -> None:
        await self.cache.invalidate_all()

    async def cache_stats(self) -> CacheStats:
        return await self.cache.stats()

    # ============================================================
    # Internals
    # ============================================================

    async def _fetch_catalog(self) -> list[dict[str, Any]]:
        records = await self._catalog.list_items()
        return [item_out(r).model_dump(mode="json") for r in records]

    async def _fetch_ratings(self) -> dict[str, dict[str, Any]]:
        ledgers = await self._ledgers.list_ledgers()
        return {item_id: out.model_dump(mode="json") for item_id, out in ledgers_by_item(ledgers).items()}

    async def _fetch_favorites(self) -> list[dict[str, str]]:
        return [{"item_id": f.item_id, "voter_id": f.voter_id} for f in await self._favorite_store.list_favorites()]

    async def _cached_favorites(self) -> list[FavoriteRecord]:
        try:
            payload = await self.cache.read(DOMAIN_FAVORITES, self._fetch_favorites)
        except RemoteUnavailable:
            logger.exception("Error fetching favorites")
            return []
        return [FavoriteRecord(item_id=f["item_id"], voter_id=f["voter_id"]) for f in payload]

    @staticmethod
    def _leaderboard(
        items: list[CatalogItemOut],
        ledgers: dict[str, LedgerOut],
        creator: str | None,
    ) -> list[LeaderboardEntry]:
        scoped = [item for item in items if creator is None or item.creator == creator]
        by_id = {item.item_id: item for item in scoped}
        entries = [
            (
                item.item_id,
                LedgerStats(
                    average_score=ledgers[item.item_id].average_score,
                    total_points=ledgers[item.item_id].total_points,
                    vote_count=ledgers[item.item_id].vote_count,
                ),
            )
            for item in scoped
            if item.item_id in ledgers and ledgers[item.item_id].vote_count > 0
        ]
        return [
            LeaderboardEntry(
                item_id=ranked.item_id,
                rank=ranked.rank,
                name=by_id[ranked.item_id].name,
                creator=by_id[ranked.item_id].creator,
                average_score=ranked.average_score,
                total_points=ranked.total_points,
                vote_count=ranked.vote_count,
                tier=ranked.tier,
            )
            for ranked in rank_entries(entries)
        ]
