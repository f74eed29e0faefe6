"""Document repositories over PostgreSQL.

Each repository maps one collection (items, ledgers, markers, favorites)
to plain records so services never hold live ORM objects. Services depend
on the Protocols below; the Sql* classes are the production
implementations.

All database/network failures surface as RemoteUnavailable.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from artdex.models import CatalogItem, Favorite, ItemTier, ModificationMarker, RatingLedger
from artdex.services.errors import RemoteUnavailable
from artdex.stores.postgres import get_session

# Item attributes a caller may set (ordinal/tier are owned by the allocator)
ITEM_ATTRIBUTES = (
    "name",
    "creator",
    "image_url",
    "additional_images",
    "types",
    "evolution_stage",
    "description",
)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize DB datetimes (SQLite returns naive UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================
# Records
# ============================================================


@dataclass
class ItemRecord:
    item_id: str
    ordinal: int
    tier: ItemTier
    name: str
    creator: str
    image_url: str
    additional_images: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    evolution_stage: int | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class LedgerRecord:
    ledger_id: int
    item_id: str
    votes: dict[str, float]
    average_score: float = 0.0
    total_points: float = 0.0
    vote_count: int = 0
    created_at: datetime | None = None
    last_updated: datetime | None = None


@dataclass(frozen=True)
class FavoriteRecord:
    item_id: str
    voter_id: str


# ============================================================
# Protocols (what services depend on)
# ============================================================


class CatalogStore(Protocol):
    async def list_items(self, tier: ItemTier | None = None) -> list[ItemRecord]: ...

    async def get_item(self, item_id: str) -> ItemRecord | None: ...

    async def create_item(self, ordinal: int, tier: ItemTier, attributes: dict[str, Any]) -> ItemRecord: ...

    async def update_item(self, item_id: str, attributes: dict[str, Any]) -> bool: ...

    async def set_ordinal(self, item_id: str, ordinal: int) -> bool: ...

    async def delete_item(self, item_id: str) -> bool: ...


class LedgerStore(Protocol):
    async def list_ledgers(self) -> list[LedgerRecord]: ...

    async def find_ledgers(self, item_id: str) -> list[LedgerRecord]: ...

    async def create_ledger(
        self, item_id: str, votes: dict[str, float], average_score: float, total_points: float, vote_count: int
    ) -> LedgerRecord: ...

    async def save_ledger(
        self, ledger_id: int, votes: dict[str, float], average_score: float, total_points: float, vote_count: int
    ) -> bool: ...

    async def delete_ledger(self, ledger_id: int) -> bool: ...


class MarkerStore(Protocol):
    async def get_marker(self, domain: str) -> datetime | None: ...

    async def touch_marker(self, domain: str) -> None: ...


class FavoriteStore(Protocol):
    async def list_favorites(self, voter_id: str | None = None) -> list[FavoriteRecord]: ...

    async def add_favorite(self, item_id: str, voter_id: str) -> bool: ...

    async def remove_favorite(self, item_id: str, voter_id: str) -> bool: ...

    async def delete_for_item(self, item_id: str) -> int: ...

    async def delete_for_voter(self, voter_id: str) -> int: ...


# ============================================================
# SQL implementations
# ============================================================


@asynccontextmanager
async def _remote_session() -> AsyncGenerator[AsyncSession, None]:
    """get_session() with failures translated to RemoteUnavailable."""
    try:
        async with get_session() as session:
            yield session
    except RemoteUnavailable:
        raise
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        raise RemoteUnavailable(f"Document store error: {e}") from e


def _item_record(row: CatalogItem) -> ItemRecord:
    return ItemRecord(
        item_id=row.item_id,
        ordinal=row.ordinal,
        tier=row.tier,
        name=row.name,
        creator=row.creator,
        image_url=row.image_url,
        additional_images=list(row.additional_images or []),
        types=list(row.types or []),
        evolution_stage=row.evolution_stage,
        description=row.description,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def _ledger_record(row: RatingLedger) -> LedgerRecord:
    return LedgerRecord(
        ledger_id=row.id,
        item_id=row.item_id,
        votes={str(k): float(v) for k, v in (row.votes or {}).items()},
        average_score=float(row.average_score or 0),
        total_points=float(row.total_points or 0),
        vote_count=int(row.vote_count or 0),
        created_at=as_utc(row.created_at),
        last_updated=as_utc(row.last_updated),
    )


class SqlCatalogStore:
    """catalog_items repository."""

    async def list_items(self, tier: ItemTier | None = None) -> list[ItemRecord]:
        query = select(CatalogItem).order_by(CatalogItem.ordinal.asc(), CatalogItem.id.asc())
        if tier is not None:
            query = query.where(CatalogItem.tier == tier)
        async with _remote_session() as session:
            result = await session.execute(query)
            return [_item_record(row) for row in result.scalars().all()]

    async def get_item(self, item_id: str) -> ItemRecord | None:
        async with _remote_session() as session:
            result = await session.execute(select(CatalogItem).where(CatalogItem.item_id == item_id))
            row = result.scalar_one_or_none()
            return _item_record(row) if row else None

    async def create_item(self, ordinal: int, tier: ItemTier, attributes: dict[str, Any]) -> ItemRecord:
        values = {k: v for k, v in attributes.items() if k in ITEM_ATTRIBUTES}
        async with _remote_session() as session:
            row = CatalogItem(ordinal=ordinal, tier=tier, **values)
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return _item_record(row)

    async def update_item(self, item_id: str, attributes: dict[str, Any]) -> bool:
        values = {k: v for k, v in attributes.items() if k in ITEM_ATTRIBUTES}
        if not values:
            return await self.get_item(item_id) is not None
        async with _remote_session() as session:
            result = await session.execute(
                update(CatalogItem).where(CatalogItem.item_id == item_id).values(**values)
            )
            return result.rowcount > 0

    async def set_ordinal(self, item_id: str, ordinal: int) -> bool:
        async with _remote_session() as session:
            result = await session.execute(
                update(CatalogItem).where(CatalogItem.item_id == item_id).values(ordinal=ordinal)
            )
            return result.rowcount > 0

    async def delete_item(self, item_id: str) -> bool:
        async with _remote_session() as session:
            result = await session.execute(delete(CatalogItem).where(CatalogItem.item_id == item_id))
            return result.rowcount > 0


class SqlLedgerStore:
    """rating_ledgers repository."""

    async def list_ledgers(self) -> list[LedgerRecord]:
        async with _remote_session() as session:
            result = await session.execute(select(RatingLedger).order_by(RatingLedger.id.asc()))
            return [_ledger_record(row) for row in result.scalars().all()]

    async def find_ledgers(self, item_id: str) -> list[LedgerRecord]:
        async with _remote_session() as session:
            result = await session.execute(
                select(RatingLedger).where(RatingLedger.item_id == item_id).order_by(RatingLedger.id.asc())
            )
            return [_ledger_record(row) for row in result.scalars().all()]

    async def create_ledger(
        self, item_id: str, votes: dict[str, float], average_score: float, total_points: float, vote_count: int
    ) -> LedgerRecord:
        async with _remote_session() as session:
            row = RatingLedger(
                item_id=item_id,
                votes=dict(votes),
                average_score=average_score,
                total_points=total_points,
                vote_count=vote_count,
            )
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return _ledger_record(row)

    async def save_ledger(
        self, ledger_id: int, votes: dict[str, float], average_score: float, total_points: float, vote_count: int
    ) -> bool:
        async with _remote_session() as session:
            result = await session.execute(
                update(RatingLedger)
                .where(RatingLedger.id == ledger_id)
                .values(
                    votes=dict(votes),
                    average_score=average_score,
                    total_points=total_points,
                    vote_count=vote_count,
                )
            )
            return result.rowcount > 0

    async def delete_ledger(self, ledger_id: int) -> bool:
        async with _remote_session() as session:
            result = await session.execute(delete(RatingLedger).where(RatingLedger.id == ledger_id))
            return result.rowcount > 0


class SqlMarkerStore:
    """modification_markers repository (server-assigned timestamps)."""

    async def get_marker(self, domain: str) -> datetime | None:
        async with _remote_session() as session:
            result = await session.execute(
                select(ModificationMarker.last_modified_at).where(ModificationMarker.domain == domain)
            )
            return as_utc(result.scalar_one_or_none())

    async def touch_marker(self, domain: str) -> None:
        if await self._bump(domain):
            return
        try:
            async with _remote_session() as session:
                session.add(ModificationMarker(domain=domain))
        except RemoteUnavailable as e:
            if not isinstance(e.__cause__, IntegrityError):
                raise
            # Another client created the marker first.
            await self._bump(domain)

    async def _bump(self, domain: str) -> bool:
        async with _remote_session() as session:
            result = await session.execute(
                update(ModificationMarker)
                .where(ModificationMarker.domain == domain)
                .values(last_modified_at=func.now())
            )
            return result.rowcount > 0


class SqlFavoriteStore:
    """favorites repository."""

    async def list_favorites(self, voter_id: str | None = None) -> list[FavoriteRecord]:
        query = select(Favorite).order_by(Favorite.id.asc())
        if voter_id is not None:
            query = query.where(Favorite.voter_id == voter_id)
        async with _remote_session() as session:
            result = await session.execute(query)
            return [FavoriteRecord(item_id=row.item_id, voter_id=row.voter_id) for row in result.scalars().all()]

    async def add_favorite(self, item_id: str, voter_id: str) -> bool:
        async with _remote_session() as session:
            existing = await session.execute(
                select(Favorite.id).where(Favorite.item_id == item_id, Favorite.voter_id == voter_id)
            )
            if existing.scalar_one_or_none() is not None:
                return False
            session.add(Favorite(item_id=item_id, voter_id=voter_id))
            return True

    async def remove_favorite(self, item_id: str, voter_id: str) -> bool:
        async with _remote_session() as session:
            result = await session.execute(
                delete(Favorite).where(Favorite.item_id == item_id, Favorite.voter_id == voter_id)
            )
            return result.rowcount > 0

    async def delete_for_item(self, item_id: str) -> int:
        async with _remote_session() as session:
            result = await session.execute(delete(Favorite).where(Favorite.item_id == item_id))
            return result.rowcount or 0

    async def delete_for_voter(self, voter_id: str) -> int:
        async with _remote_session() as session:
            result = await session.execute(delete(Favorite).where(Favorite.voter_id == voter_id))
            return result.rowcount or 0
