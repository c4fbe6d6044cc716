"""Tests for the change-significance filter."""

from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from errors import ValidationError
from ingest_filter import Reading, Skip, Store, ThresholdConfig, decide

THRESHOLDS = ThresholdConfig(soil_threshold=3, temp_threshold=3, hum_threshold=3)
LAST = Reading(user_id="9876543210", soilmoisture=30, temperature=20, humidity=50)


def _candidate(**overrides) -> Reading:
    values = dict(user_id="9876543210", soilmoisture=30, temperature=20, humidity=50)
    values.update(overrides)
    return Reading(**values)


def test_first_reading_is_always_stored() -> None:
    """No previous reading means the candidate is kept, whatever its values."""

    candidate = _candidate()
    decision = decide(candidate, None, THRESHOLDS)
    assert decision == Store(candidate)


@pytest.mark.parametrize("field", ["soilmoisture", "temperature", "humidity"])
def test_delta_equal_to_threshold_is_stored(field: str) -> None:
    """The boundary is inclusive for every measured field."""

    candidate = _candidate(**{field: getattr(LAST, field) + 3})
    assert isinstance(decide(candidate, LAST, THRESHOLDS), Store)


def test_negative_delta_counts_by_absolute_value() -> None:
    candidate = _candidate(humidity=46.5)
    assert isinstance(decide(candidate, LAST, THRESHOLDS), Store)


def test_small_changes_are_skipped() -> None:
    """Every field below its threshold means nothing new to store."""

    candidate = _candidate(soilmoisture=32, temperature=21.5, humidity=47.1)
    decision = decide(candidate, LAST, THRESHOLDS)
    assert isinstance(decision, Skip)
    assert decision.deltas == pytest.approx(
        {"soilmoisture": 2, "temperature": 1.5, "humidity": 2.9}
    )


def test_documented_example() -> None:
    assert isinstance(decide(_candidate(soilmoisture=33), LAST, THRESHOLDS), Store)
    assert isinstance(decide(_candidate(soilmoisture=32), LAST, THRESHOLDS), Skip)


def test_thresholds_are_checked_per_field() -> None:
    """A 2 degree change is significant when only temperature is tight."""

    thresholds = ThresholdConfig(soil_threshold=10, temp_threshold=1, hum_threshold=10)
    assert isinstance(decide(_candidate(temperature=22), LAST, thresholds), Store)
    assert isinstance(decide(_candidate(soilmoisture=39), LAST, thresholds), Skip)


def test_zero_threshold_stores_identical_readings() -> None:
    thresholds = ThresholdConfig(soil_threshold=0, temp_threshold=0, hum_threshold=0)
    assert isinstance(decide(_candidate(), LAST, thresholds), Store)


def test_gps_and_user_do_not_affect_decision() -> None:
    """Moving the device or changing its id is not a significant change."""

    candidate = _candidate(user_id="other", latitude=18.52, longitude=73.85)
    assert isinstance(decide(candidate, LAST, THRESHOLDS), Skip)


def test_store_carries_gps_through_unchanged() -> None:
    candidate = _candidate(soilmoisture=40, latitude=18.52, longitude=-73.85)
    decision = decide(candidate, LAST, THRESHOLDS)
    assert decision.record.latitude == 18.52
    assert decision.record.longitude == -73.85


def test_missing_gps_stays_unset() -> None:
    decision = decide(_candidate(), None, THRESHOLDS)
    assert decision.record.latitude is None
    assert decision.record.longitude is None


def test_missing_user_uses_configured_fallback() -> None:
    """With a fallback configured, anonymous readings are stored under it."""

    candidate = _candidate(user_id=None)
    decision = decide(candidate, None, THRESHOLDS, fallback_user_id="anonymous")
    assert isinstance(decision, Store)
    assert decision.record.user_id == "anonymous"
    assert decision.record.latitude is None
    assert candidate.user_id is None


@pytest.mark.parametrize("user_id", [None, ""])
def test_missing_user_without_fallback_is_rejected(user_id) -> None:
    with pytest.raises(ValidationError, match="userId"):
        decide(_candidate(user_id=user_id), None, THRESHOLDS)


@pytest.mark.parametrize(
    "overrides",
    [
        {"soilmoisture": "wet"},
        {"temperature": None},
        {"humidity": float("nan")},
        {"soilmoisture": float("inf")},
        {"temperature": True},
        {"latitude": "north"},
        {"longitude": float("nan")},
        {"user_id": 12345},
    ],
)
def test_invalid_values_raise_validation_error(overrides) -> None:
    """Malformed input is an error, not a skip, even with no previous reading."""

    with pytest.raises(ValidationError):
        decide(_candidate(**overrides), None, THRESHOLDS)


def test_validation_happens_before_comparison() -> None:
    candidate = _candidate(soilmoisture="wet")
    with pytest.raises(ValidationError, match="soilmoisture"):
        decide(candidate, LAST, THRESHOLDS)


def test_decide_is_pure() -> None:
    """Same inputs give the same answer and nothing is modified."""

    candidate = _candidate(soilmoisture=33, user_id=None)
    last = replace(LAST)
    first = decide(candidate, last, THRESHOLDS, fallback_user_id="anonymous")
    second = decide(candidate, last, THRESHOLDS, fallback_user_id="anonymous")
    assert first == second
    assert candidate == _candidate(soilmoisture=33, user_id=None)
    assert last == LAST


@pytest.mark.parametrize("value", [-1, float("nan"), "3"])
def test_threshold_config_rejects_bad_values(value) -> None:
    with pytest.raises(ValidationError):
        ThresholdConfig(soil_threshold=value, temp_threshold=1, hum_threshold=1)
