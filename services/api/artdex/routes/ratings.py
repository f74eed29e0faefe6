"""Rating endpoints.

POST   /v1/ratings/votes                       - cast or overwrite a vote
DELETE /v1/ratings/votes/{item_id}/{voter_id}  - withdraw a vote
GET    /v1/ratings                             - all ledgers (cached)
GET    /v1/ratings/leaderboard?creator=        - ranked items
GET    /v1/ratings/leaderboard/creators        - one leaderboard per creator
GET    /v1/ratings/voters/{voter_id}           - a voter's rating summary
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Path, Query

from artdex.routes.deps import get_catalog_service, item_not_found, store_unavailable
from artdex.schemas import LeaderboardResponse, OkResponse, RatingsResponse, VoteRequest, VoterStatsOut
from artdex.services.catalog import CatalogService
from artdex.services.errors import ItemNotFound

router = APIRouter()


@router.post("/votes", response_model=OkResponse)
async def cast_vote(
    body: VoteRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> OkResponse:
    """Cast a vote. Voting again on the same item replaces the previous score."""
    try:
        ok = await service.cast_vote(body.item_id, body.voter_id, body.score)
    except ItemNotFound:
        raise item_not_found(body.item_id)
    if not ok:
        raise store_unavailable("save vote")
    return OkResponse(ok=True)


@router.delete("/votes/{item_id}/{voter_id}", response_model=OkResponse)
async def withdraw_vote(
    item_id: str = Path(min_length=1, max_length=100),
    voter_id: str = Path(min_length=1, max_length=200),
    service: CatalogService = Depends(get_catalog_service),
) -> OkResponse:
    """Withdraw a vote. ok=false when the voter had not rated the item."""
    withdrawn = await service.withdraw_vote(item_id, voter_id)
    if withdrawn is None:
        raise store_unavailable("withdraw vote")
    return OkResponse(ok=withdrawn)


@router.get("", response_model=RatingsResponse)
async def get_ratings(service: CatalogService = Depends(get_catalog_service)) -> RatingsResponse:
    return RatingsResponse(ledgers=await service.get_ratings())


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    creator: str | None = Query(
        default=None,
        description="Rank only this creator's items",
        min_length=1,
        max_length=200,
    ),
    limit: int | None = Query(default=None, ge=1, le=500),
    service: CatalogService = Depends(get_catalog_service),
) -> LeaderboardResponse:
    """Ranked leaderboard: average score DESC, then total points DESC."""
    entries = await service.get_leaderboard(creator=creator)
    if limit is not None:
        entries = entries[:limit]
    return LeaderboardResponse(
        creator=creator,
        entries=entries,
        last_updated_at=datetime.now(timezone.utc),
    )


@router.get("/leaderboard/creators", response_model=dict[str, LeaderboardResponse])
async def get_creator_leaderboards(
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, LeaderboardResponse]:
    now = datetime.now(timezone.utc)
    boards = await service.get_creator_leaderboards()
    return {
        creator: LeaderboardResponse(creator=creator, entries=entries, last_updated_at=now)
        for creator, entries in boards.items()
    }


@router.get("/voters/{voter_id}", response_model=VoterStatsOut)
async def get_voter_stats(
    voter_id: str = Path(min_length=1, max_length=200),
    service: CatalogService = Depends(get_catalog_service),
) -> VoterStatsOut:
    stats = await service.voter_stats(voter_id)
    return VoterStatsOut(
        voter_id=stats.voter_id,
        average_score=stats.average_score,
        total_ratings=stats.total_ratings,
        total_unrated=stats.total_unrated,
        distribution=stats.distribution,
    )
