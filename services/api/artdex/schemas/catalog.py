"""Schemas for catalog endpoints (/v1/catalog)."""

from datetime import datetime

from pydantic import BaseModel, Field

from artdex.models import ItemTier


class ItemAttributes(BaseModel):
    """Editable catalog item attributes."""

    name: str = Field(min_length=1, max_length=200)
    creator: str = Field(min_length=1, max_length=200)
    image_url: str = Field(alias="imageUrl", min_length=1)
    additional_images: list[str] = Field(alias="additionalImages", default_factory=list, max_length=3)
    types: list[str] = Field(default_factory=list, max_length=2)
    evolution_stage: int | None = Field(alias="evolutionStage", default=None, ge=0, le=5)
    description: str | None = None

    model_config = {"populate_by_name": True}


class ItemCreate(ItemAttributes):
    """Request body for POST /v1/catalog/items."""

    tier: ItemTier = ItemTier.REGULAR


class ItemUpdate(BaseModel):
    """Request body for PATCH /v1/catalog/items/{item_id} (partial)."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    creator: str | None = Field(default=None, min_length=1, max_length=200)
    image_url: str | None = Field(alias="imageUrl", default=None, min_length=1)
    additional_images: list[str] | None = Field(alias="additionalImages", default=None, max_length=3)
    types: list[str] | None = Field(default=None, max_length=2)
    evolution_stage: int | None = Field(alias="evolutionStage", default=None, ge=0, le=5)
    description: str | None = None

    model_config = {"populate_by_name": True}


class CatalogItemOut(BaseModel):
    """A catalog item as served to clients."""

    item_id: str = Field(alias="itemId")
    ordinal: int = Field(ge=1)
    tier: ItemTier
    name: str
    creator: str
    image_url: str = Field(alias="imageUrl")
    additional_images: list[str] = Field(alias="additionalImages", default_factory=list)
    types: list[str] = Field(default_factory=list)
    evolution_stage: int | None = Field(alias="evolutionStage", default=None)
    description: str | None = None
    created_at: datetime | None = Field(alias="createdAt", default=None)
    updated_at: datetime | None = Field(alias="updatedAt", default=None)

    model_config = {"populate_by_name": True}


class CatalogResponse(BaseModel):
    """Response payload for GET /v1/catalog."""

    items: list[CatalogItemOut]
    total: int = Field(ge=0)

    model_config = {"populate_by_name": True}


class ItemCreated(BaseModel):
    """Response payload for POST /v1/catalog/items."""

    item_id: str = Field(alias="itemId")
    ordinal: int = Field(ge=1)
    tier: ItemTier

    model_config = {"populate_by_name": True}
