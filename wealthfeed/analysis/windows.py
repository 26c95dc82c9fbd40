"""Lookback tables and calendar windows.

Ranges are calendar days, not trading days; the first trading date at or
after the window start is what the series actually begins with.
"""

from __future__ import annotations

from datetime import datetime, timezone

from wealthfeed.utils import days_ago, iso_day, utc_now

RANGE_DAYS: dict[str, int] = {"1M": 30, "3M": 90, "6M": 180, "1Y": 365, "2Y": 730, "Max": 1095}
DEFAULT_RANGE_DAYS = 365

PERF_DAYS: dict[str, int] = {"1D": 1, "7D": 7, "1M": 30, "3M": 90, "6M": 180, "1Y": 365, "2Y": 730}
# 2Y plus slack for weekends and holidays.
PERF_FETCH_DAYS = 740


def range_days(label: str, default: int = DEFAULT_RANGE_DAYS) -> int:
    return RANGE_DAYS.get(label, default)


def window(days: int, *, now: datetime | None = None) -> tuple[str, str]:
    """``(from_date, to_date)`` covering the last ``days`` calendar days."""
    now = now or utc_now()
    return days_ago(days, now=now), iso_day(now)


def ytd_days(*, now: datetime | None = None) -> int:
    now = now or utc_now()
    jan1 = datetime(now.year, 1, 1, tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return int((now - jan1).total_seconds() // 86400)
