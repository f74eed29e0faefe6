"""Catalog endpoints.

GET    /v1/catalog                  - all items ordered by ordinal (cached)
POST   /v1/catalog/items            - add an item (ordinal assigned by tier)
PATCH  /v1/catalog/items/{item_id}  - edit display attributes
DELETE /v1/catalog/items/{item_id}  - delete item, its ratings and favorites

Routers are thin: call CatalogService for business logic.
"""

from fastapi import APIRouter, Depends, Path

from artdex.routes.deps import get_catalog_service, item_not_found, store_unavailable
from artdex.schemas import CatalogResponse, ItemCreate, ItemCreated, ItemUpdate, OkResponse
from artdex.services.catalog import CatalogService
from artdex.services.errors import ItemNotFound

router = APIRouter()

ITEM_ID = Path(description="Catalog item ID", min_length=1, max_length=100, pattern=r"^[a-zA-Z0-9_-]+$")


@router.get("", response_model=CatalogResponse)
async def get_catalog(service: CatalogService = Depends(get_catalog_service)) -> CatalogResponse:
    """Get the catalog.

    Returns an empty list (not an error) when the store is unreachable and
    nothing is cached locally.
    """
    items = await service.get_catalog()
    return CatalogResponse(items=items, total=len(items))


@router.post("/items", response_model=ItemCreated, status_code=201)
async def add_item(
    body: ItemCreate,
    service: CatalogService = Depends(get_catalog_service),
) -> ItemCreated:
    """Add an item. Regular items fill the first gap, elevated items go last."""
    attributes = body.model_dump(exclude={"tier"})
    record = await service.add_item(body.tier, attributes)
    if record is None:
        raise store_unavailable("add item")
    return ItemCreated(item_id=record.item_id, ordinal=record.ordinal, tier=record.tier)


@router.patch("/items/{item_id}", response_model=OkResponse)
async def update_item(
    body: ItemUpdate,
    item_id: str = ITEM_ID,
    service: CatalogService = Depends(get_catalog_service),
) -> OkResponse:
    try:
        ok = await service.update_item(item_id, body.model_dump(exclude_unset=True, exclude_none=True))
    except ItemNotFound:
        raise item_not_found(item_id)
    if not ok:
        raise store_unavailable("update item")
    return OkResponse(ok=True)


@router.delete("/items/{item_id}", response_model=OkResponse)
async def delete_item(
    item_id: str = ITEM_ID,
    service: CatalogService = Depends(get_catalog_service),
) -> OkResponse:
    """Delete an item. Remaining items are renumbered to close the gap."""
    try:
        ok = await service.delete_item(item_id)
    except ItemNotFound:
        raise item_not_found(item_id)
    return OkResponse(ok=ok)
