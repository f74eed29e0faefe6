"""Voter data endpoints.

DELETE /v1/voters/{voter_id} - remove every vote and favorite of a voter
"""

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field

from artdex.routes.deps import get_catalog_service, store_unavailable
from artdex.services.catalog import CatalogService

router = APIRouter()


class VoterDeletionResponse(BaseModel):
    """Response from voter data deletion."""

    ok: bool
    ledgers_updated: int = Field(alias="ledgersUpdated", ge=0)
    ledgers_deleted: int = Field(alias="ledgersDeleted", ge=0)
    favorites_removed: int = Field(alias="favoritesRemoved", ge=0)

    model_config = {"populate_by_name": True}


@router.delete("/{voter_id}", response_model=VoterDeletionResponse)
async def delete_voter_data(
    voter_id: str = Path(description="Voter (device) ID", min_length=1, max_length=200),
    service: CatalogService = Depends(get_catalog_service),
) -> VoterDeletionResponse:
    """Delete all data of a voter.

    Ledgers left without votes are deleted; the rest are recomputed.
    """
    removal = await service.delete_voter_data(voter_id)
    if removal is None:
        raise store_unavailable("delete voter data")
    return VoterDeletionResponse(
        ok=True,
        ledgers_updated=removal.ledgers_updated,
        ledgers_deleted=removal.ledgers_deleted,
        favorites_removed=removal.favorites_removed,
    )
