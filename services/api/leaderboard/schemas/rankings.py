"""Schemas for the ranking endpoints (/v1/rankings)."""

from datetime import datetime

from pydantic import BaseModel, Field


class ScoreIncrement(BaseModel):
    """Request body for POST /v1/rankings/{namespace}/scores."""

    identity: str = Field(min_length=1, max_length=256)
    delta: float = 1


class ScoreResult(BaseModel):
    """New score of an identity in today's partition."""

    namespace: str
    identity: str
    day: str = Field(description="YYYYMMDD partition the score was written to")
    score: float


class RankingEntry(BaseModel):
    """A single row of a ranking."""

    rank: int = Field(ge=1)
    identity: str
    score: float


class RankingResponse(BaseModel):
    """Top-K of one day or one window.

    An empty `entries` list is a valid answer (no writes in that window).
    """

    namespace: str
    window: str
    entries: list[RankingEntry]
    generated_at: datetime = Field(alias="generatedAt")

    model_config = {"populate_by_name": True}
