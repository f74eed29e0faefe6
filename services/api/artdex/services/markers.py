"""Modification markers: per-domain last-modified signals.

Every write to a domain bumps its marker to the database's current time.
Readers compare the marker with the age of their local copy to detect
writes made by other clients.
"""

from datetime import datetime

from artdex.stores.documents import MarkerStore

# Invalidation domains
DOMAIN_CATALOG = "catalog"
DOMAIN_RATINGS = "ratings"
DOMAIN_FAVORITES = "favorites"

ALL_DOMAINS = (DOMAIN_CATALOG, DOMAIN_RATINGS, DOMAIN_FAVORITES)


class ModificationMarkerStore:
    """Read/write access to domain markers."""

    def __init__(self, store: MarkerStore):
        self._store = store

    async def last_modified(self, domain: str) -> datetime | None:
        """Server time of the last write to `domain` (None if never written)."""
        return await self._store.get_marker(domain)

    async def touch(self, domain: str) -> None:
        """Set the marker to the current server time."""
        await self._store.touch_marker(domain)
