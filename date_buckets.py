"""Date-range helpers for the field history endpoints.

All ranges are inclusive ``(start, end)`` pairs of naive local datetimes,
matching how ``created_at`` is stored. Every function takes ``now``
explicitly so callers (and tests) control the clock.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from typing import Optional, Tuple

from errors import ValidationError

DateRange = Tuple[datetime, datetime]

ROLLING_PERIODS = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}

MONTH_NAMES = {name.lower(): index for index, name in enumerate(calendar.month_abbr) if name}

WEEKS_PER_MONTH = 5


def _start_of_day(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day)


def _end_of_day(year: int, month: int, day: int) -> datetime:
    # Millisecond precision, matching what clients get back in JSON
    return datetime(year, month, day, 23, 59, 59, 999000)


def rolling_window(period: str, now: datetime) -> DateRange:
    """Return ``[now - duration, now]`` for day/week/month/year."""

    try:
        duration = ROLLING_PERIODS[period]
    except KeyError:
        raise ValidationError(
            f"Invalid period '{period}', expected one of: {', '.join(ROLLING_PERIODS)}"
        )
    return now - duration, now


def month_week_range(week_number: int, now: datetime) -> Optional[DateRange]:
    """
    Week ``week_number`` (1-5) of the month containing ``now``.

    Weeks are fixed 7-day slices starting on day 1. Week 5 takes whatever
    is left, so in a 31-day month it covers days 29-31. In a 28-day
    February nothing is left and the result is ``None``.
    """

    if not 1 <= week_number <= WEEKS_PER_MONTH:
        raise ValidationError(f"weekNumber must be between 1 and {WEEKS_PER_MONTH}")

    last_day = calendar.monthrange(now.year, now.month)[1]
    start_day = (week_number - 1) * 7 + 1
    if start_day > last_day:
        return None
    end_day = last_day if week_number == WEEKS_PER_MONTH else week_number * 7

    return (
        _start_of_day(now.year, now.month, start_day),
        _end_of_day(now.year, now.month, end_day),
    )


def year_month_range(month_name: str, now: datetime) -> DateRange:
    """First to last day of the named month (``jan``..``dec``) in the current year."""

    month = MONTH_NAMES.get(month_name.lower())
    if month is None:
        raise ValidationError(
            f"Invalid month '{month_name}', expected a three-letter name like 'jan'"
        )
    last_day = calendar.monthrange(now.year, month)[1]
    return _start_of_day(now.year, month, 1), _end_of_day(now.year, month, last_day)
