"""Schemas for rating endpoints (/v1/ratings)."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from artdex.services.ratings import is_valid_score


class VoteRequest(BaseModel):
    """Request body for POST /v1/ratings/votes."""

    item_id: str = Field(alias="itemId", min_length=1, max_length=100)
    voter_id: str = Field(alias="voterId", min_length=1, max_length=200)
    score: float

    model_config = {"populate_by_name": True}

    @field_validator("score")
    @classmethod
    def _half_step(cls, v: float) -> float:
        if not is_valid_score(v):
            raise ValueError("score must be a half step between 0.5 and 10")
        return v


class LedgerOut(BaseModel):
    """Rating ledger for one item."""

    item_id: str = Field(alias="itemId")
    votes: dict[str, float] = Field(default_factory=dict)
    average_score: float = Field(alias="averageScore", ge=0)
    total_points: float = Field(alias="totalPoints", ge=0)
    vote_count: int = Field(alias="voteCount", ge=0)
    last_updated: datetime | None = Field(alias="lastUpdated", default=None)

    model_config = {"populate_by_name": True}


class RatingsResponse(BaseModel):
    """Response payload for GET /v1/ratings."""

    ledgers: dict[str, LedgerOut]

    model_config = {"populate_by_name": True}


class LeaderboardEntry(BaseModel):
    """A single ranked item."""

    item_id: str = Field(alias="itemId")
    rank: int = Field(ge=1)
    name: str
    creator: str
    average_score: float = Field(alias="averageScore")
    total_points: float = Field(alias="totalPoints")
    vote_count: int = Field(alias="voteCount", ge=0)
    tier: str

    model_config = {"populate_by_name": True}


class LeaderboardResponse(BaseModel):
    """Response payload for GET /v1/ratings/leaderboard."""

    creator: str | None = None
    entries: list[LeaderboardEntry]
    last_updated_at: datetime = Field(alias="lastUpdatedAt")

    model_config = {"populate_by_name": True}


class VoterStatsOut(BaseModel):
    """A voter's rating summary over existing items."""

    voter_id: str = Field(alias="voterId")
    average_score: float = Field(alias="averageScore")
    total_ratings: int = Field(alias="totalRatings", ge=0)
    total_unrated: int = Field(alias="totalUnrated", ge=0)
    distribution: dict[str, int]

    model_config = {"populate_by_name": True}
