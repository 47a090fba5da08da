"""Ranking service: daily score partitions and windowed Top-K reads.

Write path:
- ZINCRBY into today's partition "<ns>:<YYYYMMDD>" (atomic per member)

Read path:
- One day: ZREVRANGE <day key> start stop WITHSCORES
- Window: ZUNIONSTORE <ns>:<label> with weight 1 per day key, then ZREVRANGE
  on that derived key

Ordering:
- Scores DESC. Equal scores come back in descending lexicographic order of the
  identity, which is how Redis orders ties under ZREVRANGE. No tie-break is
  added here.

Consistency:
- In "shared" isolation the derived key is one fixed key per window. Two
  concurrent readers of the same window overwrite and read the same key with
  separate commands, so a reader may see another reader's union. Known gap,
  kept for key-name compatibility.
- "per_request" isolation suffixes the derived key and runs union + read +
  delete in one MULTI/EXEC.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone, tzinfo
import logging
import math
from typing import Literal, NamedTuple
from uuid import uuid4

import redis.asyncio as redis
from redis.exceptions import DataError, RedisError

from leaderboard.errors import InvalidArgumentError, StoreUnavailableError
from leaderboard.services.partitions import (
    LABEL_CURRENT_MONTH,
    LABEL_CURRENT_WEEK,
    LABEL_LAST_30_DAYS,
    LABEL_LAST_7_DAYS,
    MONDAY,
    dates_for_current_month,
    dates_for_current_week,
    dates_for_last_n_days,
    dates_for_yesterday,
    day_key,
    last_n_days_label,
    parse_day,
    validate_namespace,
    window_key,
)

logger = logging.getLogger("uvicorn.error")

Clock = Callable[[], date]
WindowIsolation = Literal["shared", "per_request"]

DEFAULT_TOP_N = 10


class RankedEntry(NamedTuple):
    """One (identity, score) row of a ranking, highest score first."""

    identity: str
    score: float


def make_clock(tz: tzinfo = timezone.utc) -> Clock:
    """Clock returning the current calendar day in `tz`."""

    def _today() -> date:
        return datetime.now(tz).date()

    return _today


@asynccontextmanager
async def _store_call(operation: str, key: str) -> AsyncIterator[None]:
    """Surface Redis failures as StoreUnavailableError, without retrying.

    DataError is raised client-side when an argument cannot be encoded, so it
    is the caller's mistake rather than a store outage.
    """
    try:
        yield
    except DataError as e:
        raise InvalidArgumentError(f"{operation} on {key!r} rejected: {e}") from e
    except RedisError as e:
        logger.warning(f"Redis {operation} failed for {key}: {e!r}")
        raise StoreUnavailableError(operation, key, str(e)) from e


def _check_range(start: int, stop: int) -> None:
    for name, value in (("start", start), ("stop", stop)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    if start < 0:
        raise InvalidArgumentError(f"start must be >= 0, got {start}")
    if stop < start:
        raise InvalidArgumentError(f"stop must be >= start, got start={start} stop={stop}")


def _stop_for(num: int) -> int:
    if isinstance(num, bool) or not isinstance(num, int) or num < 1:
        raise InvalidArgumentError(f"num must be a positive integer, got {num!r}")
    return num - 1


def _member_text(member: str | bytes) -> str:
    # Clients opened without decode_responses hand back raw bytes
    if isinstance(member, bytes):
        return member.decode("utf-8")
    return str(member)


def _to_entries(rows: list[tuple[str | bytes, float]]) -> list[RankedEntry]:
    return [RankedEntry(_member_text(identity), float(score)) for identity, score in rows]


class ScoreWrite(NamedTuple):
    """Result of add_score: the partition day written to and the new score."""

    day: date
    score: float


class RankingAggregator:
    """Read/write access to one ranking namespace in Redis.

    Args:
        namespace: Leaderboard family, e.g. "articles". Immutable.
        store: Open Redis client. Its lifecycle belongs to the caller.
        clock: Returns "today". Defaults to the current UTC day.
        week_start: Weekday current-week windows start on (MONDAY by default).
        allow_negative_scores: Accept negative deltas in add_score.
        window_isolation: "shared" or "per_request" derived keys.
    """

    def __init__(
        self,
        namespace: str,
        store: redis.Redis,
        *,
        clock: Clock | None = None,
        week_start: int = MONDAY,
        allow_negative_scores: bool = False,
        window_isolation: WindowIsolation = "shared",
    ) -> None:
        if window_isolation not in ("shared", "per_request"):
            raise InvalidArgumentError(f"Unknown window isolation: {window_isolation!r}")
        self._namespace = validate_namespace(namespace)
        self._store = store
        self._clock = clock or make_clock()
        self._week_start = week_start
        self._allow_negative_scores = allow_negative_scores
        self._window_isolation = window_isolation

    @property
    def namespace(self) -> str:
        return self._namespace

    def today(self) -> date:
        return self._clock()

    # ============================================================
    # Write path
    # ============================================================

    async def add_score(self, identity: str | int, delta: float = 1) -> float:
        """Increment an identity's score in today's partition.

        Args:
            identity: Content/user identifier.
            delta: Increment. Negative only when allow_negative_scores is set.

        Returns:
            The identity's new score for today.
        """
        return (await self.record_score(identity, delta)).score

    async def record_score(self, identity: str | int, delta: float = 1) -> ScoreWrite:
        """Same as add_score, also reporting which day's partition was written."""
        member = self._validate_identity(identity)
        if isinstance(delta, bool) or not isinstance(delta, (int, float)) or not math.isfinite(delta):
            raise InvalidArgumentError(f"delta must be a finite int or float, got {delta!r}")
        if delta < 0 and not self._allow_negative_scores:
            raise InvalidArgumentError(f"Negative delta {delta} not allowed for {self._namespace}")

        day = self.today()
        key = day_key(self._namespace, day)
        async with _store_call("ZINCRBY", key):
            score = await self._store.zincrby(key, delta, member)
        logger.debug(f"Score {key} {member} += {delta} -> {score}")
        return ScoreWrite(day, float(score))

    # ============================================================
    # Read path
    # ============================================================

    async def top_k_one_day(self, day: date | str, start: int, stop: int) -> list[RankedEntry]:
        """Ranks [start, stop] (0-based, inclusive) of one day's partition.

        A day without writes has no key and reads as [].
        """
        _check_range(start, stop)
        key = day_key(self._namespace, day)
        return await self._range(key, start, stop)

    async def top_k_window(
        self,
        days: Iterable[date | str],
        derived_label: str,
        start: int,
        stop: int,
    ) -> list[RankedEntry]:
        """Union the given days' partitions into `<ns>:<derived_label>` and read it.

        Every day has weight 1, so an identity's window score is the sum of its
        daily scores. Missing partitions count as empty sets.

        Raises:
            InvalidArgumentError: If `days` is empty (before any store call).
        """
        # Repeated days would be counted twice by ZUNIONSTORE
        keys = list(dict.fromkeys(day_key(self._namespace, parse_day(d)) for d in days))
        if not keys:
            raise InvalidArgumentError("A window needs at least one day")
        if not derived_label:
            raise InvalidArgumentError("derived_label must be a non-empty string")
        _check_range(start, stop)

        weights = {key: 1 for key in keys}
        dest = window_key(self._namespace, derived_label)
        if self._window_isolation == "per_request":
            return await self._isolated_window(f"{dest}:{uuid4().hex}", weights, start, stop)

        async with _store_call("ZUNIONSTORE", dest):
            size = await self._store.zunionstore(dest, weights)
        logger.debug(f"Window {dest} rebuilt from {len(keys)} day keys ({size} members)")
        return await self._range(dest, start, stop)

    async def _isolated_window(
        self,
        dest: str,
        weights: dict[str, int],
        start: int,
        stop: int,
    ) -> list[RankedEntry]:
        async with _store_call("ZUNIONSTORE", dest):
            async with self._store.pipeline(transaction=True) as pipe:
                pipe.zunionstore(dest, weights)
                pipe.zrevrange(dest, start, stop, withscores=True)
                pipe.delete(dest)
                _, rows, _ = await pipe.execute()
        return _to_entries(rows)

    async def _range(self, key: str, start: int, stop: int) -> list[RankedEntry]:
        async with _store_call("ZREVRANGE", key):
            rows = await self._store.zrevrange(key, start, stop, withscores=True)
        return _to_entries(rows)

    # ============================================================
    # Named windows
    # ============================================================

    async def today_top(self, num: int = DEFAULT_TOP_N) -> list[RankedEntry]:
        return await self.top_k_one_day(self.today(), 0, _stop_for(num))

    async def yesterday_top(self, num: int = DEFAULT_TOP_N) -> list[RankedEntry]:
        (yesterday,) = dates_for_yesterday(self.today())
        return await self.top_k_one_day(yesterday, 0, _stop_for(num))

    async def yesterday_top10(self) -> list[RankedEntry]:
        return await self.yesterday_top(10)

    async def current_week_top10(self) -> list[RankedEntry]:
        days = dates_for_current_week(self.today(), self._week_start)
        return await self.top_k_window(days, LABEL_CURRENT_WEEK, 0, 9)

    async def current_month_top10(self) -> list[RankedEntry]:
        days = dates_for_current_month(self.today())
        return await self.top_k_window(days, LABEL_CURRENT_MONTH, 0, 9)

    async def last_7_days_top(self, num: int = DEFAULT_TOP_N) -> list[RankedEntry]:
        return await self.last_n_days_top(7, num)

    async def last_30_days_top(self, num: int = DEFAULT_TOP_N) -> list[RankedEntry]:
        return await self.last_n_days_top(30, num)

    async def last_n_days_top(self, days: int, num: int = DEFAULT_TOP_N) -> list[RankedEntry]:
        """Top `num` over the trailing `days` days, today included.

        Labels: rank:last_7Days, rank:last_30Days, rank:last_<days>Days otherwise.
        """
        stop = _stop_for(num)
        window = dates_for_last_n_days(self.today(), days)
        label = {7: LABEL_LAST_7_DAYS, 30: LABEL_LAST_30_DAYS}.get(days) or last_n_days_label(days)
        return await self.top_k_window(window, label, 0, stop)

    def _validate_identity(self, identity: str | int) -> str:
        if isinstance(identity, bool) or not isinstance(identity, (str, int)):
            raise InvalidArgumentError(f"identity must be a str or int, got {identity!r}")
        member = str(identity)
        if not member:
            raise InvalidArgumentError("identity must not be empty")
        return member
