"""Pydantic schemas for API request/response validation."""

from artdex.schemas.admin import (
    CacheStatsResponse,
    IntegrityResponse,
    LowVoteCleanupRequest,
    LowVoteCleanupResponse,
    LowVoteReportResponse,
    ReorganizeResponse,
    ViolationOut,
)
from artdex.schemas.catalog import (
    CatalogItemOut,
    CatalogResponse,
    ItemAttributes,
    ItemCreate,
    ItemCreated,
    ItemUpdate,
)
from artdex.schemas.common import ErrorDetail, ErrorResponse, OkResponse
from artdex.schemas.favorites import FavoriteCountsResponse, FavoriteOut, VoterFavoritesResponse
from artdex.schemas.ratings import (
    LeaderboardEntry,
    LeaderboardResponse,
    LedgerOut,
    RatingsResponse,
    VoteRequest,
    VoterStatsOut,
)

__all__ = [
    "CacheStatsResponse",
    "CatalogItemOut",
    "CatalogResponse",
    "ErrorDetail",
    "ErrorResponse",
    "FavoriteCountsResponse",
    "FavoriteOut",
    "IntegrityResponse",
    "ItemAttributes",
    "ItemCreate",
    "ItemCreated",
    "ItemUpdate",
    "LeaderboardEntry",
    "LeaderboardResponse",
    "LedgerOut",
    "LowVoteCleanupRequest",
    "LowVoteCleanupResponse",
    "LowVoteReportResponse",
    "OkResponse",
    "RatingsResponse",
    "ReorganizeResponse",
    "ViolationOut",
    "VoteRequest",
    "VoterFavoritesResponse",
    "VoterStatsOut",
]
