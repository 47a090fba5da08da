#!/usr/bin/env python3
"""Seed demo scores into daily partitions and print the window leaderboards.

Behavior:
- For each of the last SEED_DAYS days (today included), write deterministic
  scores for SEED_IDENTITIES identities into "<namespace>:<YYYYMMDD>"
- Read back current week / current month / last 7 days Top-10

Run (local):
  cd services/api
  python -m scripts.seed_scores

Optional env vars:
  SEED_NAMESPACE="articles"
  SEED_DAYS=30
  SEED_IDENTITIES="post1,post2,post3,post4,post5"
"""

import asyncio
from datetime import timedelta
import os
import sys


# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from leaderboard.services.partitions import (  # noqa: E402
    dates_for_last_n_days,
    format_day,
    week_start_from_name,
)
from leaderboard.services.ranking import RankingAggregator, make_clock  # noqa: E402
from leaderboard.settings import get_settings  # noqa: E402
from leaderboard.stores.redis import close_redis, create_redis  # noqa: E402


def _parse_csv_env(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    return [p.strip() for p in raw.split(",") if p.strip()]


def _demo_score(day_index: int, identity_index: int) -> int:
    # Rotating popularity so weekly and monthly winners differ
    return (day_index * 7 + identity_index * 3) % 11 + 1


async def main() -> None:
    settings = get_settings()
    namespace = os.getenv("SEED_NAMESPACE", "articles")
    days = int(os.getenv("SEED_DAYS", "30"))
    identities = _parse_csv_env("SEED_IDENTITIES", [f"post{i}" for i in range(1, 6)])

    store = await create_redis()
    try:
        today = make_clock(settings.tzinfo)()
        written = 0
        for day_index, day in enumerate(dates_for_last_n_days(today, days)):
            # Drive the normal write path with a clock pinned to the seeded day
            seeder = RankingAggregator(namespace, store, clock=lambda d=day: d)
            for identity_index, identity in enumerate(identities):
                await seeder.add_score(identity, _demo_score(day_index, identity_index))
                written += 1

        aggregator = RankingAggregator(
            namespace,
            store,
            clock=lambda: today,
            week_start=week_start_from_name(settings.week_start),
            window_isolation=settings.window_isolation,
        )
        print(
            {
                "ok": True,
                "namespace": namespace,
                "from": format_day(today - timedelta(days=days - 1)),
                "to": format_day(today),
                "writes": written,
                "current_week": await aggregator.current_week_top10(),
                "current_month": await aggregator.current_month_top10(),
                "last_7_days": await aggregator.last_7_days_top(10),
            }
        )
    finally:
        await close_redis(store)


if __name__ == "__main__":
    asyncio.run(main())
