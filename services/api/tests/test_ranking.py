"""Tests for the ranking aggregator against an in-memory Redis."""

import asyncio
from datetime import date, timedelta
from fractions import Fraction

import fakeredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import DataError

from leaderboard.errors import InvalidArgumentError, StoreUnavailableError
from leaderboard.services.partitions import SUNDAY
from leaderboard.services.ranking import RankedEntry, RankingAggregator

TODAY = date(2024, 3, 1)  # Friday


class MovableClock:
    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today


class UntouchableStore:
    """Fails the test if any store command is issued."""

    def __getattr__(self, name: str):
        raise AssertionError(f"store.{name} called")


@pytest.fixture
def clock() -> MovableClock:
    return MovableClock(TODAY)


@pytest.fixture
def ranking(store, clock) -> RankingAggregator:
    return RankingAggregator("articles", store, clock=clock)


async def _write(ranking: RankingAggregator, clock: MovableClock, day: date, scores: dict[str, float]) -> None:
    clock.today = day
    for identity, score in scores.items():
        await ranking.add_score(identity, score)
    clock.today = TODAY


@pytest.mark.asyncio
async def test_add_score_accumulates_within_a_day(ranking: RankingAggregator, store) -> None:
    assert await ranking.add_score("post42", 5) == 5.0
    assert await ranking.add_score("post42", 3) == 8.0

    assert await ranking.top_k_one_day(TODAY, 0, 0) == [("post42", 8.0)]
    assert await store.zscore("articles:20240301", "post42") == 8.0


@pytest.mark.asyncio
async def test_add_score_defaults_to_one_and_accepts_int_identity(ranking: RankingAggregator) -> None:
    await ranking.add_score(42)
    await ranking.add_score(42)
    assert await ranking.today_top() == [RankedEntry("42", 2.0)]


@pytest.mark.asyncio
@pytest.mark.parametrize("delta", [-1, float("nan"), float("inf"), True, "3", Fraction(1, 2)])
async def test_add_score_rejects_bad_delta_without_store_call(delta: object) -> None:
    ranking = RankingAggregator("articles", UntouchableStore(), clock=lambda: TODAY)
    with pytest.raises(InvalidArgumentError):
        await ranking.add_score("post42", delta)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_negative_delta_allowed_when_configured(store) -> None:
    ranking = RankingAggregator("articles", store, clock=lambda: TODAY, allow_negative_scores=True)
    await ranking.add_score("post42", 2)
    assert await ranking.add_score("post42", -5) == -3.0


@pytest.mark.asyncio
async def test_one_day_without_writes_is_empty(ranking: RankingAggregator) -> None:
    assert await ranking.top_k_one_day(date(2020, 1, 1), 0, 9) == []
    assert await ranking.yesterday_top10() == []


@pytest.mark.asyncio
async def test_one_day_range_is_descending_and_bounded(ranking: RankingAggregator) -> None:
    for identity, score in {"a": 1, "b": 4, "c": 3, "d": 2}.items():
        await ranking.add_score(identity, score)

    assert await ranking.top_k_one_day("20240301", 0, 1) == [("b", 4.0), ("c", 3.0)]
    assert await ranking.top_k_one_day("20240301", 1, 2) == [("c", 3.0), ("d", 2.0)]
    assert await ranking.today_top(3) == [("b", 4.0), ("c", 3.0), ("d", 2.0)]


@pytest.mark.asyncio
@pytest.mark.parametrize("start,stop", [(-1, 3), (3, 2)])
async def test_one_day_rejects_bad_range(start: int, stop: int) -> None:
    ranking = RankingAggregator("articles", UntouchableStore(), clock=lambda: TODAY)
    with pytest.raises(InvalidArgumentError):
        await ranking.top_k_one_day(TODAY, start, stop)


@pytest.mark.asyncio
async def test_window_sums_days_and_ties_use_reverse_member_order(
    ranking: RankingAggregator, clock: MovableClock
) -> None:
    day1, day2 = date(2024, 2, 27), date(2024, 2, 28)
    await _write(ranking, clock, day1, {"a": 3})
    await _write(ranking, clock, day2, {"a": 2, "b": 5})

    rows = await ranking.top_k_window([day1, day2], "win", 0, 9)

    # Equal scores: Redis ZREVRANGE returns members in reverse lexicographic order
    assert rows == [("b", 5.0), ("a", 5.0)]


@pytest.mark.asyncio
async def test_window_overwrites_derived_key(ranking: RankingAggregator, clock: MovableClock, store) -> None:
    day1, day2 = date(2024, 2, 27), date(2024, 2, 28)
    await _write(ranking, clock, day1, {"a": 3})
    await _write(ranking, clock, day2, {"b": 1})

    await ranking.top_k_window([day1, day2], "win", 0, 9)
    assert await ranking.top_k_window([day2], "win", 0, 9) == [("b", 1.0)]
    assert await store.zcard("articles:win") == 1


@pytest.mark.asyncio
async def test_window_counts_repeated_days_once(ranking: RankingAggregator, clock: MovableClock) -> None:
    day1 = date(2024, 2, 27)
    await _write(ranking, clock, day1, {"a": 3})
    assert await ranking.top_k_window([day1, "20240227", day1], "win", 0, 9) == [("a", 3.0)]


@pytest.mark.asyncio
async def test_window_over_missing_days_is_empty(ranking: RankingAggregator) -> None:
    assert await ranking.top_k_window([date(2020, 1, 1), date(2020, 1, 2)], "win", 0, 9) == []


@pytest.mark.asyncio
async def test_empty_window_rejected_before_store_call() -> None:
    ranking = RankingAggregator("articles", UntouchableStore(), clock=lambda: TODAY)
    with pytest.raises(InvalidArgumentError):
        await ranking.top_k_window([], "win", 0, 9)


@pytest.mark.asyncio
async def test_window_read_is_idempotent(ranking: RankingAggregator, clock: MovableClock) -> None:
    await _write(ranking, clock, date(2024, 2, 26), {"a": 1.5, "b": 2})
    await _write(ranking, clock, TODAY, {"a": 1, "c": 7})

    first = await ranking.last_7_days_top(10)
    second = await ranking.last_7_days_top(10)
    assert first == second == [("c", 7.0), ("a", 2.5), ("b", 2.0)]


@pytest.mark.asyncio
async def test_named_windows_use_fixed_derived_keys(ranking: RankingAggregator, store) -> None:
    await ranking.add_score("post1", 2)

    assert await ranking.current_week_top10() == [("post1", 2.0)]
    assert await ranking.current_month_top10() == [("post1", 2.0)]
    assert await ranking.last_7_days_top(5) == [("post1", 2.0)]
    assert await ranking.last_30_days_top(5) == [("post1", 2.0)]
    assert await ranking.last_n_days_top(14, 5) == [("post1", 2.0)]

    for key in (
        "articles:rank:current_week",
        "articles:rank:current_month",
        "articles:rank:last_7Days",
        "articles:rank:last_30Days",
        "articles:rank:last_14Days",
    ):
        assert await store.exists(key) == 1


@pytest.mark.asyncio
async def test_window_membership(ranking: RankingAggregator, clock: MovableClock) -> None:
    # Monday-start week of 2024-03-01 is 2024-02-26 .. 2024-03-03
    await _write(ranking, clock, date(2024, 2, 25), {"outside_week": 1})
    await _write(ranking, clock, date(2024, 2, 26), {"week_start": 1})
    await _write(ranking, clock, date(2024, 1, 31), {"last_month": 1})

    week = {row.identity for row in await ranking.current_week_top10()}
    month = {row.identity for row in await ranking.current_month_top10()}
    last_30 = {row.identity for row in await ranking.last_30_days_top(10)}

    assert week == {"week_start"}
    assert month == set()
    assert last_30 == {"outside_week", "week_start"}


@pytest.mark.asyncio
async def test_sunday_week_start(store, clock: MovableClock) -> None:
    ranking = RankingAggregator("articles", store, clock=clock, week_start=SUNDAY)
    await _write(ranking, clock, date(2024, 2, 25), {"sunday": 1})
    assert await ranking.current_week_top10() == [("sunday", 1.0)]


@pytest.mark.asyncio
async def test_yesterday_top(ranking: RankingAggregator, clock: MovableClock) -> None:
    await _write(ranking, clock, TODAY - timedelta(days=1), {"a": 1, "b": 2, "c": 3})
    assert await ranking.yesterday_top(2) == [("c", 3.0), ("b", 2.0)]


@pytest.mark.asyncio
@pytest.mark.parametrize("num", [0, -3])
async def test_top_n_rejects_non_positive(num: int) -> None:
    ranking = RankingAggregator("articles", UntouchableStore(), clock=lambda: TODAY)
    with pytest.raises(InvalidArgumentError):
        await ranking.today_top(num)
    with pytest.raises(InvalidArgumentError):
        await ranking.last_7_days_top(num)


@pytest.mark.asyncio
async def test_namespaces_are_isolated(store) -> None:
    articles = RankingAggregator("articles", store, clock=lambda: TODAY)
    users = RankingAggregator("users", store, clock=lambda: TODAY)
    await articles.add_score("x", 1)
    await users.add_score("x", 10)

    assert await articles.current_week_top10() == [("x", 1.0)]
    assert await users.current_week_top10() == [("x", 10.0)]


@pytest.mark.asyncio
async def test_per_request_isolation_leaves_no_scratch_key(store) -> None:
    ranking = RankingAggregator("articles", store, clock=lambda: TODAY, window_isolation="per_request")
    await ranking.add_score("a", 4)

    assert await ranking.current_week_top10() == [("a", 4.0)]
    assert await store.keys("articles:rank:*") == []


def test_rejects_empty_namespace(store) -> None:
    with pytest.raises(InvalidArgumentError):
        RankingAggregator("", store)


@pytest.mark.asyncio
async def test_store_failure_surfaces_as_store_unavailable(
    ranking: RankingAggregator, store, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def broken(*args, **kwargs):
        raise RedisConnectionError("connection refused")

    monkeypatch.setattr(store, "zincrby", broken)
    monkeypatch.setattr(store, "zunionstore", broken)

    with pytest.raises(StoreUnavailableError) as excinfo:
        await ranking.add_score("a")
    assert excinfo.value.operation == "ZINCRBY"
    assert isinstance(excinfo.value.__cause__, RedisConnectionError)

    with pytest.raises(StoreUnavailableError):
        await ranking.current_week_top10()


@pytest.mark.asyncio
async def test_data_error_is_an_invalid_argument(
    ranking: RankingAggregator, store, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def unencodable(*args, **kwargs):
        raise DataError("Invalid input of type: 'object'")

    monkeypatch.setattr(store, "zincrby", unencodable)

    with pytest.raises(InvalidArgumentError):
        await ranking.add_score("post42", 1)


@pytest.mark.asyncio
async def test_bytes_responses_are_decoded() -> None:
    raw = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())
    try:
        ranking = RankingAggregator("articles", raw, clock=lambda: TODAY)
        await ranking.add_score("post42", 5)
        await ranking.add_score("post7", 2)

        assert await ranking.top_k_one_day(TODAY, 0, 0) == [("post42", 5.0)]
        assert await ranking.current_week_top10() == [("post42", 5.0), ("post7", 2.0)]
    finally:
        await raw.aclose()


@pytest.mark.asyncio
async def test_record_score_reports_partition_day(ranking: RankingAggregator, store) -> None:
    written = await ranking.record_score("post42", 4)
    assert written.day == TODAY
    assert written.score == 4.0
    assert await store.zscore("articles:20240301", "post42") == 4.0


@pytest.mark.asyncio
async def test_concurrent_increments_of_one_identity_all_land(ranking: RankingAggregator) -> None:
    await asyncio.gather(*(ranking.add_score("post42") for _ in range(50)))
    assert await ranking.today_top(1) == [("post42", 50.0)]


@pytest.mark.asyncio
async def test_store_failure_is_logged_once(
    ranking: RankingAggregator, store, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    async def broken(*args, **kwargs):
        raise RedisConnectionError("connection refused")

    monkeypatch.setattr(store, "zrevrange", broken)

    with caplog.at_level("WARNING", logger="uvicorn.error"):
        with pytest.raises(StoreUnavailableError):
            await ranking.today_top()
    assert len([r for r in caplog.records if "ZREVRANGE" in r.getMessage()]) == 1
