"""API routes."""

from fastapi import APIRouter

from artdex.routes import admin, catalog, favorites, ratings, voters

api_router = APIRouter()

# Catalog (ordered items)
api_router.include_router(catalog.router, prefix="/v1/catalog", tags=["catalog"])

# Votes and leaderboards
api_router.include_router(ratings.router, prefix="/v1/ratings", tags=["ratings"])

api_router.include_router(favorites.router, prefix="/v1/favorites", tags=["favorites"])

# Voter data removal
api_router.include_router(voters.router, prefix="/v1/voters", tags=["voters"])

# Admin endpoints (reorganize, cache, integrity, cleanup)
api_router.include_router(admin.router, prefix="/v1/admin", tags=["admin"])
