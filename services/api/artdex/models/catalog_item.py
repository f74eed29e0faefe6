"""Catalog item model.

A catalog item is one fan-art entry with a display ordinal.
Ordinals are dense and tiered: every regular item sorts before every
elevated item (legendary-class entries).

Ordinal uniqueness is NOT a DB constraint: concurrent writers may briefly
produce duplicates, which the reorganize pass repairs.
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Enum, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from artdex.stores.postgres import Base


class ItemTier(PyEnum):
    """Ordering tier of a catalog item."""

    REGULAR = "regular"
    ELEVATED = "elevated"  # always after every regular item


def generate_item_id() -> str:
    """Generate unique public item ID."""
    return str(uuid4())


class CatalogItem(Base):
    """Fan-art catalog entry."""

    __tablename__ = "catalog_items"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Public item ID (used in URLs and as the ledger key)
    item_id: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        default=generate_item_id,
    )

    # Ordering
    ordinal: Mapped[int] = mapped_column(index=True)
    tier: Mapped[ItemTier] = mapped_column(
        Enum(ItemTier),
        default=ItemTier.REGULAR,
        index=True,
    )

    # Display
    name: Mapped[str] = mapped_column(String(200))
    creator: Mapped[str] = mapped_column(String(200), index=True)
    image_url: Mapped[str] = mapped_column(Text)
    additional_images: Mapped[list[str]] = mapped_column(JSON, default=list)  # up to 3 URLs
    types: Mapped[list[str]] = mapped_column(JSON, default=list)
    evolution_stage: Mapped[int | None] = mapped_column()  # 0=base ... 4=legendary
    description: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<CatalogItem #{self.ordinal} {self.name} ({self.tier.value})>"
