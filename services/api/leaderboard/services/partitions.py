"""Partition key naming and window date lists.

Key scheme (kept bit-exact for existing data):
- Day partitions: "<namespace>:<YYYYMMDD>"
- Derived windows: "<namespace>:<label>", e.g. "articles:rank:current_week"

The day suffix is always ":" + 8 digits, so day keys stay unambiguous even when
the namespace itself contains ":".

Everything here is pure: callers pass "now" in, nothing reads the clock.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from leaderboard.errors import InvalidArgumentError

KEY_DELIMITER = ":"
DAY_FORMAT = "%Y%m%d"

MONDAY = 0
SUNDAY = 6

# Derived window labels
LABEL_CURRENT_WEEK = "rank:current_week"
LABEL_CURRENT_MONTH = "rank:current_month"
LABEL_LAST_7_DAYS = "rank:last_7Days"
LABEL_LAST_30_DAYS = "rank:last_30Days"


def format_day(day: date) -> str:
    """Format a date as YYYYMMDD."""
    return day.strftime(DAY_FORMAT)


def parse_day(value: date | str) -> date:
    """Accept a date or a YYYYMMDD string.

    Raises:
        InvalidArgumentError: If the value is not a valid calendar day.
    """
    # datetime is a date subclass; keep only the calendar part
    if isinstance(value, date):
        return date(value.year, value.month, value.day)
    if not isinstance(value, str) or len(value) != 8 or not value.isdigit():
        raise InvalidArgumentError(f"Expected a YYYYMMDD day, got {value!r}")
    try:
        return date(int(value[:4]), int(value[4:6]), int(value[6:]))
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid calendar day: {value!r}") from e


def validate_namespace(namespace: str) -> str:
    if not isinstance(namespace, str) or not namespace:
        raise InvalidArgumentError("Ranking namespace must be a non-empty string")
    return namespace


def day_key(namespace: str, day: date | str) -> str:
    """Key of the sorted set holding one namespace's scores for one day."""
    return f"{namespace}{KEY_DELIMITER}{format_day(parse_day(day))}"


def window_key(namespace: str, label: str) -> str:
    """Key of the scratch sorted set a window union is stored into."""
    return f"{namespace}{KEY_DELIMITER}{label}"


def last_n_days_label(n: int) -> str:
    """Derived label for a trailing window ("rank:last_7Days" for n=7)."""
    return f"rank:last_{n}Days"


def dates_for_yesterday(now: date) -> list[date]:
    return [now - timedelta(days=1)]


def dates_for_last_n_days(now: date, n: int) -> list[date]:
    """The n days ending at `now` inclusive, oldest first.

    Raises:
        InvalidArgumentError: If n < 1 (an empty window).
    """
    if isinstance(n, bool) or not isinstance(n, int) or n < 1:
        raise InvalidArgumentError(f"Window length must be a positive integer, got {n!r}")
    first = now - timedelta(days=n - 1)
    return [first + timedelta(days=offset) for offset in range(n)]


def dates_for_current_week(now: date, week_start: int = MONDAY) -> list[date]:
    """All 7 days of the week containing `now`, future days included.

    Args:
        now: Reference day.
        week_start: Weekday the week starts on (MONDAY=0 .. SUNDAY=6).
    """
    if week_start not in range(7):
        raise InvalidArgumentError(f"week_start must be 0..6, got {week_start!r}")
    start = now - timedelta(days=(now.weekday() - week_start) % 7)
    return [start + timedelta(days=offset) for offset in range(7)]


def dates_for_current_month(now: date) -> list[date]:
    """Day 1 through the last day of `now`'s month, future days included."""
    _, days_in_month = calendar.monthrange(now.year, now.month)
    return [date(now.year, now.month, day) for day in range(1, days_in_month + 1)]


def week_start_from_name(name: str) -> int:
    """Map the `week_start` setting ("monday" / "sunday") to a weekday number."""
    starts = {"monday": MONDAY, "sunday": SUNDAY}
    try:
        return starts[name.lower()]
    except KeyError as e:
        raise InvalidArgumentError(f"Unsupported week start: {name!r}") from e
