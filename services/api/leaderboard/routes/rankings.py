"""Ranking endpoints.

POST /v1/rankings/{namespace}/scores          - increment today's score
GET  /v1/rankings/{namespace}/today           - today's Top-N
GET  /v1/rankings/{namespace}/yesterday       - yesterday's Top-N
GET  /v1/rankings/{namespace}/week            - current week Top-10
GET  /v1/rankings/{namespace}/month           - current month Top-10
GET  /v1/rankings/{namespace}/last-days/{n}   - trailing n days Top-N
GET  /v1/rankings/{namespace}/days/{day}      - ranks [start, stop] of one day

Routers are thin: call services for business logic.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Path, Query

from leaderboard.errors import InvalidArgumentError
from leaderboard.schemas import (
    ErrorResponse,
    RankingEntry,
    RankingResponse,
    ScoreIncrement,
    ScoreResult,
)
from leaderboard.routes.deps import get_aggregator
from leaderboard.services.partitions import format_day, parse_day
from leaderboard.services.ranking import RankedEntry, RankingAggregator
from leaderboard.settings import Settings, get_settings

router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


def _limit_query(default: int = 10):
    return Query(default=default, ge=1, description="Number of entries to return")


def _check_limit(limit: int, settings: Settings) -> int:
    if limit > settings.max_page_size:
        raise InvalidArgumentError(f"limit must be <= {settings.max_page_size}, got {limit}")
    return limit


def _response(
    aggregator: RankingAggregator,
    window: str,
    rows: list[RankedEntry],
    first_rank: int = 1,
) -> RankingResponse:
    return RankingResponse(
        namespace=aggregator.namespace,
        window=window,
        entries=[
            RankingEntry(rank=rank, identity=row.identity, score=row.score)
            for rank, row in enumerate(rows, start=first_rank)
        ],
        generated_at=datetime.now(timezone.utc),
    )


@router.post("/{namespace}/scores", response_model=ScoreResult)
async def add_score(
    body: ScoreIncrement,
    aggregator: RankingAggregator = Depends(get_aggregator),
) -> ScoreResult:
    """Add `delta` to an identity's score for today."""
    written = await aggregator.record_score(body.identity, body.delta)
    return ScoreResult(
        namespace=aggregator.namespace,
        identity=body.identity,
        day=format_day(written.day),
        score=written.score,
    )


@router.get("/{namespace}/today", response_model=RankingResponse)
async def get_today_top(
    limit: int = _limit_query(),
    aggregator: RankingAggregator = Depends(get_aggregator),
    settings: Settings = Depends(get_settings),
) -> RankingResponse:
    rows = await aggregator.today_top(_check_limit(limit, settings))
    return _response(aggregator, "today", rows)


@router.get("/{namespace}/yesterday", response_model=RankingResponse)
async def get_yesterday_top(
    limit: int = _limit_query(),
    aggregator: RankingAggregator = Depends(get_aggregator),
    settings: Settings = Depends(get_settings),
) -> RankingResponse:
    rows = await aggregator.yesterday_top(_check_limit(limit, settings))
    return _response(aggregator, "yesterday", rows)


@router.get("/{namespace}/week", response_model=RankingResponse)
async def get_current_week_top10(
    aggregator: RankingAggregator = Depends(get_aggregator),
) -> RankingResponse:
    rows = await aggregator.current_week_top10()
    return _response(aggregator, "current_week", rows)


@router.get("/{namespace}/month", response_model=RankingResponse)
async def get_current_month_top10(
    aggregator: RankingAggregator = Depends(get_aggregator),
) -> RankingResponse:
    rows = await aggregator.current_month_top10()
    return _response(aggregator, "current_month", rows)


@router.get("/{namespace}/last-days/{days}", response_model=RankingResponse)
async def get_last_n_days_top(
    days: int = Path(ge=1, le=366, description="Trailing window length, today included"),
    limit: int = _limit_query(),
    aggregator: RankingAggregator = Depends(get_aggregator),
    settings: Settings = Depends(get_settings),
) -> RankingResponse:
    rows = await aggregator.last_n_days_top(days, _check_limit(limit, settings))
    return _response(aggregator, f"last_{days}_days", rows)


@router.get("/{namespace}/days/{day}", response_model=RankingResponse)
async def get_one_day_rankings(
    day: str = Path(
        description="Partition day (YYYYMMDD)",
        pattern=r"^\d{8}$",
        examples=["20240301"],
    ),
    start: int = Query(default=0, ge=0, description="First rank (0-based, inclusive)"),
    stop: int = Query(default=9, ge=0, description="Last rank (0-based, inclusive)"),
    aggregator: RankingAggregator = Depends(get_aggregator),
    settings: Settings = Depends(get_settings),
) -> RankingResponse:
    """Ranks [start, stop] of a single day. Days without writes return no entries."""
    if stop >= start:
        _check_limit(stop - start + 1, settings)
    parsed = parse_day(day)
    rows = await aggregator.top_k_one_day(parsed, start, stop)
    return _response(aggregator, format_day(parsed), rows, first_rank=start + 1)
