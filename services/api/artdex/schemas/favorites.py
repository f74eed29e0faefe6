"""Schemas for favorites endpoints (/v1/favorites)."""

from pydantic import BaseModel, Field


class FavoriteOut(BaseModel):
    """Result of adding/removing a favorite."""

    status: str
    favorites: list[str]
    limit: int = Field(ge=1)

    model_config = {"populate_by_name": True}


class FavoriteCountsResponse(BaseModel):
    """item id -> number of voters who favorited it."""

    counts: dict[str, int]

    model_config = {"populate_by_name": True}


class VoterFavoritesResponse(BaseModel):
    voter_id: str = Field(alias="voterId")
    favorites: list[str]
    limit: int = Field(ge=1)

    model_config = {"populate_by_name": True}
