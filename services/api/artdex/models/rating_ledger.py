"""Rating ledger model.

One ledger per catalog item, holding every voter's score.
Derived fields (average_score, total_points, vote_count) are always
recomputed from `votes`; they are stored only for cheap reads.

`item_id` is indexed but not unique: two clients casting the first vote
at the same time can both create a ledger. Duplicates are merged on the
next vote for that item.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from artdex.stores.postgres import Base


class RatingLedger(Base):
    """Per-item vote ledger."""

    __tablename__ = "rating_ledgers"

    id: Mapped[int] = mapped_column(primary_key=True)

    item_id: Mapped[str] = mapped_column(String(100), index=True)

    # voter id -> half-step score in [0.5, 10]
    votes: Mapped[dict[str, float]] = mapped_column(JSON, default=dict)

    # Derived
    average_score: Mapped[float] = mapped_column(default=0)
    total_points: Mapped[float] = mapped_column(default=0)
    vote_count: Mapped[int] = mapped_column(default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<RatingLedger {self.item_id} avg={self.average_score:.2f} n={self.vote_count}>"
