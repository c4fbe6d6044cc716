#!/usr/bin/env python3
"""
Change-Significance Filter
==========================

Field devices poll every few seconds, but soil moisture, temperature and
humidity change slowly. Storing every sample wastes space and makes the read
endpoints slower without telling us anything new.

This module decides whether an incoming reading is worth keeping.

HOW THE DECISION WORKS:
-----------------------
1. Validate the three measured fields (finite numbers only).
2. No previous reading for this user?  -> Store (first reading always kept).
3. Any field moved by at least its threshold?  -> Store.
4. Otherwise  -> Skip.

The comparison is inclusive: a delta exactly equal to the threshold counts.
GPS coordinates and the user id are carried along but never compared.

``decide()`` is a pure function. It reads nothing from the database and
changes none of its arguments, so it is easy to test and safe to call twice.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Optional, Union

from errors import ValidationError

# Measured fields paired with the ThresholdConfig attribute that guards them.
MEASURED_FIELDS = (
    ("soilmoisture", "soil_threshold"),
    ("temperature", "temp_threshold"),
    ("humidity", "hum_threshold"),
)


@dataclass(frozen=True)
class Reading:
    """One sensor sample. ``None`` GPS values mean "unset", never 0."""

    user_id: Optional[str]
    soilmoisture: float
    temperature: float
    humidity: float
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ThresholdConfig:
    """Minimum per-field change needed before a new reading is stored."""

    soil_threshold: float
    temp_threshold: float
    hum_threshold: float

    def __post_init__(self) -> None:
        for name in ("soil_threshold", "temp_threshold", "hum_threshold"):
            value = getattr(self, name)
            if not _is_number(value) or not math.isfinite(value) or value < 0:
                raise ValidationError(f"{name} must be a non-negative number")


@dataclass(frozen=True)
class Store:
    """Persist ``record``. The store assigns ``created_at``."""

    record: Reading


@dataclass(frozen=True)
class Skip:
    """Candidate did not move far enough from the last stored reading."""

    deltas: Dict[str, float]


Decision = Union[Store, Skip]


def _is_number(value) -> bool:
    # bool is an int subclass, but True is not a soil moisture reading
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_reading(candidate: Reading, fallback_user_id: Optional[str] = None) -> Reading:
    """Return a normalised copy of ``candidate`` or raise ``ValidationError``."""

    for field, _ in MEASURED_FIELDS:
        value = getattr(candidate, field)
        if not _is_number(value) or not math.isfinite(value):
            raise ValidationError(f"{field} must be a finite number")

    for field in ("latitude", "longitude"):
        value = getattr(candidate, field)
        if value is not None and (not _is_number(value) or not math.isfinite(value)):
            raise ValidationError(f"{field} must be a finite number when provided")

    user_id = candidate.user_id
    if user_id is not None and not isinstance(user_id, str):
        raise ValidationError("userId must be a string")
    if not user_id:
        if not fallback_user_id:
            raise ValidationError("userId is required")
        user_id = fallback_user_id

    if user_id == candidate.user_id:
        return candidate
    return replace(candidate, user_id=user_id)


def decide(
    candidate: Reading,
    last_for_user: Optional[Reading],
    thresholds: ThresholdConfig,
    fallback_user_id: Optional[str] = None,
) -> Decision:
    """Return ``Store(record)`` or ``Skip`` for ``candidate``.

    Raises ``ValidationError`` before any comparison if the candidate is
    malformed; the caller must reject the request rather than skip it.
    """

    record = validate_reading(candidate, fallback_user_id)

    if last_for_user is None:
        return Store(record)

    deltas = {}
    for field, threshold_name in MEASURED_FIELDS:
        delta = abs(getattr(record, field) - getattr(last_for_user, field))
        if delta >= getattr(thresholds, threshold_name):
            return Store(record)
        deltas[field] = delta

    return Skip(deltas)
