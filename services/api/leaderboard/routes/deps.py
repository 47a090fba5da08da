"""Route dependencies: store handle, clock and aggregator wiring."""

from fastapi import Depends, Path, Request
import redis.asyncio as redis

from leaderboard.errors import StoreUnavailableError
from leaderboard.services.partitions import week_start_from_name
from leaderboard.services.ranking import Clock, RankingAggregator, make_clock
from leaderboard.settings import Settings, get_settings


def get_store(request: Request) -> redis.Redis:
    """Redis client opened by the app lifespan."""
    store = getattr(request.app.state, "redis", None)
    if store is None:
        raise StoreUnavailableError("CONNECT", "*", "Redis not initialized")
    return store


def get_clock(settings: Settings = Depends(get_settings)) -> Clock:
    """Today in the configured ranking timezone."""
    return make_clock(settings.tzinfo)


def get_aggregator(
    namespace: str = Path(
        description="Ranking namespace, e.g. 'articles'",
        min_length=1,
        max_length=100,
        pattern=r"^[A-Za-z0-9_.:-]+$",
    ),
    store: redis.Redis = Depends(get_store),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> RankingAggregator:
    return RankingAggregator(
        namespace,
        store,
        clock=clock,
        week_start=week_start_from_name(settings.week_start),
        allow_negative_scores=settings.allow_negative_scores,
        window_isolation=settings.window_isolation,
    )
