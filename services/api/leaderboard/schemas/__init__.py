"""Pydantic schemas for API request/response validation."""

from leaderboard.schemas.common import ErrorDetail, ErrorResponse
from leaderboard.schemas.rankings import (
    RankingEntry,
    RankingResponse,
    ScoreIncrement,
    ScoreResult,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "RankingEntry",
    "RankingResponse",
    "ScoreIncrement",
    "ScoreResult",
]
