"""Modification marker model.

One row per invalidation domain ("catalog", "ratings", "favorites").
`last_modified_at` is always assigned by the database clock so that
markers written by different clients are comparable.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from artdex.stores.postgres import Base


class ModificationMarker(Base):
    """Domain-level last-modified signal."""

    __tablename__ = "modification_markers"

    id: Mapped[int] = mapped_column(primary_key=True)

    domain: Mapped[str] = mapped_column(String(50), unique=True, index=True)

    last_modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<ModificationMarker {self.domain} @ {self.last_modified_at}>"
