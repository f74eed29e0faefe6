"""Favorites endpoints.

PUT    /v1/favorites/{item_id}/{voter_id}  - favorite an item (limited per voter)
DELETE /v1/favorites/{item_id}/{voter_id}  - unfavorite
GET    /v1/favorites                       - favorite counts per item
GET    /v1/favorites/{voter_id}            - a voter's favorites
"""

from fastapi import APIRouter, Depends, Path

from artdex.routes.deps import api_error, get_catalog_service, item_not_found, store_unavailable
from artdex.schemas import FavoriteCountsResponse, FavoriteOut, VoterFavoritesResponse
from artdex.services.catalog import CatalogService
from artdex.services.errors import ItemNotFound
from artdex.services.favorites import FavoriteStatus

router = APIRouter()

ITEM_ID = Path(description="Catalog item ID", min_length=1, max_length=100)
VOTER_ID = Path(description="Voter (device) ID", min_length=1, max_length=200)


@router.put("/{item_id}/{voter_id}", response_model=FavoriteOut)
async def add_favorite(
    item_id: str = ITEM_ID,
    voter_id: str = VOTER_ID,
    service: CatalogService = Depends(get_catalog_service),
) -> FavoriteOut:
    """Favorite an item.

    Raises:
        HTTPException 409: voter already has the maximum number of favorites.
    """
    try:
        result = await service.set_favorite(item_id, voter_id, True)
    except ItemNotFound:
        raise item_not_found(item_id)
    if result is None:
        raise store_unavailable("save favorite")

    limit = service.favorites.limit
    if result.status == FavoriteStatus.LIMIT_REACHED:
        raise api_error(
            409,
            "FAVORITE_LIMIT_REACHED",
            f"A voter can have at most {limit} favorites",
            {"limit": limit, "favorites": list(result.favorites)},
        )
    return FavoriteOut(status=result.status.value, favorites=list(result.favorites), limit=limit)


@router.delete("/{item_id}/{voter_id}", response_model=FavoriteOut)
async def remove_favorite(
    item_id: str = ITEM_ID,
    voter_id: str = VOTER_ID,
    service: CatalogService = Depends(get_catalog_service),
) -> FavoriteOut:
    result = await service.set_favorite(item_id, voter_id, False)
    if result is None:
        raise store_unavailable("remove favorite")
    return FavoriteOut(status=result.status.value, favorites=list(result.favorites), limit=service.favorites.limit)


@router.get("", response_model=FavoriteCountsResponse)
async def get_favorite_counts(service: CatalogService = Depends(get_catalog_service)) -> FavoriteCountsResponse:
    return FavoriteCountsResponse(counts=await service.get_favorite_counts())


@router.get("/{voter_id}", response_model=VoterFavoritesResponse)
async def get_voter_favorites(
    voter_id: str = VOTER_ID,
    service: CatalogService = Depends(get_catalog_service),
) -> VoterFavoritesResponse:
    return VoterFavoritesResponse(
        voter_id=voter_id,
        favorites=await service.get_voter_favorites(voter_id),
        limit=service.favorites.limit,
    )
