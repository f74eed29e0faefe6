"""Admin endpoints for catalog maintenance.

These endpoints are intended for manual repair and admin operations.
In production, consider adding authentication (API key or admin token).
"""

import logging

from fastapi import APIRouter, Depends, Query

from artdex.routes.deps import api_error, get_catalog_service, store_unavailable
from artdex.schemas import (
    CacheStatsResponse,
    IntegrityResponse,
    LowVoteCleanupRequest,
    LowVoteCleanupResponse,
    LowVoteReportResponse,
    OkResponse,
    ReorganizeResponse,
    ViolationOut,
)
from artdex.services.catalog import CatalogService
from artdex.services.errors import ConfirmationRequired

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.post("/reorganize", response_model=ReorganizeResponse)
async def reorganize(service: CatalogService = Depends(get_catalog_service)) -> ReorganizeResponse:
    """Renumber all items densely (regular first, elevated last).

    Safe to re-run: a second call on a consistent catalog writes nothing.
    """
    result = await service.force_reorganize()
    if result is None:
        raise store_unavailable("reorganize catalog")
    return ReorganizeResponse(
        ok=result.ok,
        updated=result.updated,
        unchanged=result.unchanged,
        failed=result.failed,
    )


@router.post("/cache/clear", response_model=OkResponse)
async def clear_cache(service: CatalogService = Depends(get_catalog_service)) -> OkResponse:
    """Drop this process's cached catalog, ratings and favorites."""
    await service.clear_cache()
    return OkResponse(ok=True)


@router.get("/cache", response_model=CacheStatsResponse)
async def get_cache_stats(service: CatalogService = Depends(get_catalog_service)) -> CacheStatsResponse:
    stats = await service.cache_stats()
    return CacheStatsResponse(domains=stats.domains, last_checked_at=stats.last_checked_at)


@router.get("/integrity", response_model=IntegrityResponse)
async def check_integrity(service: CatalogService = Depends(get_catalog_service)) -> IntegrityResponse:
    """Report duplicate ordinals, tier-order breaks and duplicate/orphan ledgers."""
    violations = await service.check_integrity()
    if violations is None:
        raise store_unavailable("check integrity")
    return IntegrityResponse(
        ok=not violations,
        violations=[
            ViolationOut(kind=v.kind, message=v.message, item_ids=list(v.item_ids), detail=v.detail)
            for v in violations
        ],
    )


@router.get("/voters/low-vote", response_model=LowVoteReportResponse)
async def analyze_low_vote_voters(
    max_votes: int = Query(default=1, alias="maxVotes", ge=0, le=1000),
    service: CatalogService = Depends(get_catalog_service),
) -> LowVoteReportResponse:
    """Voters with at most `maxVotes` votes, plus the confirmation token for cleanup."""
    report = await service.analyze_low_vote_voters(max_votes)
    if report is None:
        raise store_unavailable("analyze voters")
    return LowVoteReportResponse(
        max_votes=report.max_votes,
        voter_count=len(report.voters),
        total_votes=report.total_votes,
        voters=report.voters,
        confirmation=report.confirmation,
    )


@router.post("/voters/low-vote/cleanup", response_model=LowVoteCleanupResponse)
async def cleanup_low_vote_voters(
    body: LowVoteCleanupRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> LowVoteCleanupResponse:
    """Remove every vote of low-activity voters.

    Raises:
        HTTPException 400: confirmation does not match the current analysis.
    """
    try:
        removed = await service.cleanup_low_vote_voters(body.max_votes, body.confirmation)
    except ConfirmationRequired as e:
        logger.warning(f"Low-vote cleanup refused: {e}")
        raise api_error(
            400,
            "CONFIRMATION_REQUIRED",
            "Confirmation text does not match",
            {"expected": e.expected},
        )
    if removed is None:
        raise store_unavailable("clean up voters")
    return LowVoteCleanupResponse(removed_voters=removed)
