"""Favorite model.

A voter marks an item as a favorite; a voter holds a small bounded
number of favorites (see settings.favorites_per_voter).
"""

from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from artdex.stores.postgres import Base


class Favorite(Base):
    """Voter -> item favorite."""

    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("item_id", "voter_id", name="uq_favorites_item_voter"),)

    id: Mapped[int] = mapped_column(primary_key=True)

    item_id: Mapped[str] = mapped_column(String(100), index=True)
    voter_id: Mapped[str] = mapped_column(String(200), index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Favorite {self.voter_id} -> {self.item_id}>"
