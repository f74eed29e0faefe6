"""Schemas for admin endpoints (/v1/admin)."""

from typing import Any

from pydantic import BaseModel, Field


class ReorganizeResponse(BaseModel):
    ok: bool
    updated: list[str]
    unchanged: int = Field(ge=0)
    failed: list[str]

    model_config = {"populate_by_name": True}


class CacheStatsResponse(BaseModel):
    domains: dict[str, float]  # domain -> fetched_at (epoch seconds)
    last_checked_at: float | None = Field(alias="lastCheckedAt", default=None)

    model_config = {"populate_by_name": True}


class ViolationOut(BaseModel):
    kind: str
    message: str
    item_ids: list[str] = Field(alias="itemIds", default_factory=list)
    detail: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


class IntegrityResponse(BaseModel):
    ok: bool
    violations: list[ViolationOut]

    model_config = {"populate_by_name": True}


class LowVoteReportResponse(BaseModel):
    max_votes: int = Field(alias="maxVotes", ge=0)
    voter_count: int = Field(alias="voterCount", ge=0)
    total_votes: int = Field(alias="totalVotes", ge=0)
    voters: dict[str, int]
    confirmation: str  # token to echo back to the cleanup endpoint

    model_config = {"populate_by_name": True}


class LowVoteCleanupRequest(BaseModel):
    max_votes: int = Field(alias="maxVotes", ge=0, le=1000)
    confirmation: str

    model_config = {"populate_by_name": True}


class LowVoteCleanupResponse(BaseModel):
    removed_voters: int = Field(alias="removedVoters", ge=0)

    model_config = {"populate_by_name": True}
