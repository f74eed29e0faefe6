"""SQLAlchemy ORM models.

Models represent database tables:
- catalog_items: Fan-art entries with tiered display ordinals
- rating_ledgers: Per-item vote maps with derived statistics
- modification_markers: Per-domain server-timestamped change signals
- favorites: Voter favorites (bounded per voter)
"""

from artdex.models.catalog_item import CatalogItem, ItemTier
from artdex.models.favorite import Favorite
from artdex.models.modification_marker import ModificationMarker
from artdex.models.rating_ledger import RatingLedger

__all__ = ["CatalogItem", "Favorite", "ItemTier", "ModificationMarker", "RatingLedger"]
