"""Tests for the rolling and calendar-aligned date ranges."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from date_buckets import month_week_range, rolling_window, year_month_range
from errors import ValidationError

NOW = datetime(2026, 10, 17, 14, 30, 0)


@pytest.mark.parametrize(
    "period, days",
    [("day", 1), ("week", 7), ("month", 30), ("year", 365)],
)
def test_rolling_windows_end_now(period: str, days: int) -> None:
    start, end = rolling_window(period, NOW)
    assert end == NOW
    assert start == NOW - timedelta(days=days)


def test_rolling_window_rejects_unknown_period() -> None:
    with pytest.raises(ValidationError, match="decade"):
        rolling_window("decade", NOW)


def test_first_week_of_month() -> None:
    start, end = month_week_range(1, NOW)
    assert start == datetime(2026, 10, 1, 0, 0, 0)
    assert end == datetime(2026, 10, 7, 23, 59, 59, 999000)


def test_fourth_week_ends_on_day_28() -> None:
    start, end = month_week_range(4, NOW)
    assert start.day == 22
    assert end == datetime(2026, 10, 28, 23, 59, 59, 999000)


def test_week_five_absorbs_rest_of_31_day_month() -> None:
    """October has 31 days, so week 5 is days 29-31."""

    start, end = month_week_range(5, NOW)
    assert start == datetime(2026, 10, 29)
    assert end == datetime(2026, 10, 31, 23, 59, 59, 999000)


def test_week_five_in_30_day_month() -> None:
    _, end = month_week_range(5, datetime(2026, 11, 3))
    assert end == datetime(2026, 11, 30, 23, 59, 59, 999000)


def test_week_five_in_leap_february_is_one_day() -> None:
    start, end = month_week_range(5, datetime(2028, 2, 10))
    assert start == datetime(2028, 2, 29)
    assert end == datetime(2028, 2, 29, 23, 59, 59, 999000)


def test_week_five_is_empty_in_short_february() -> None:
    """Nothing is left after day 28, so there is no range to query."""

    assert month_week_range(5, datetime(2026, 2, 10)) is None
    assert month_week_range(4, datetime(2026, 2, 10))[1] == datetime(2026, 2, 28, 23, 59, 59, 999000)


@pytest.mark.parametrize("week", [0, 6, -1])
def test_week_number_out_of_range(week: int) -> None:
    with pytest.raises(ValidationError):
        month_week_range(week, NOW)


def test_named_month_in_current_year() -> None:
    start, end = year_month_range("feb", NOW)
    assert start == datetime(2026, 2, 1)
    assert end == datetime(2026, 2, 28, 23, 59, 59, 999000)


def test_month_name_is_case_insensitive() -> None:
    assert year_month_range("DEC", NOW) == year_month_range("dec", NOW)
    assert year_month_range("Dec", NOW)[1].day == 31


@pytest.mark.parametrize("name", ["sept", "xyz", "", "january"])
def test_unknown_month_name(name: str) -> None:
    with pytest.raises(ValidationError):
        year_month_range(name, NOW)
