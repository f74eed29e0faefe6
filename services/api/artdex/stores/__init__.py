"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: DB session, document repositories (items, ledgers, markers, favorites)
- Redis / memory: the client-local key-value store behind the staleness cache

No business/ordering/rating logic in stores - that belongs in services.
"""
