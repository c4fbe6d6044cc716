#!/usr/bin/env python3
"""
Pydantic Models for the Soil Sensor API
=======================================

This file defines the shape of the JSON going in and out of the API.

WHY camelCase ALIASES?
----------------------
The field devices (and the mobile app reading this API) speak camelCase:
"userId", "createdAt", "soilThreshold". Python code uses snake_case.
Each model declares the camelCase name as an alias and sets
populate_by_name so both spellings work when building a model in Python.
FastAPI serialises responses by alias, so clients always see camelCase.

WHY strict=True ON THE MEASUREMENTS?
------------------------------------
Pydantic would happily turn the string "30" into 30.0. A device sending
strings is broken, and we want the request rejected with a 400 instead of
guessing. allow_inf_nan=False rejects NaN / Infinity, which Python's JSON
parser accepts.

HOW THESE ARE USED:
-------------------
- ReadingIn:      POST /api/sensor-data body
- ReadingOut:     every endpoint that returns a stored reading
- FieldValueOut:  the per-field history endpoints
- ThresholdIn/Out: POST and GET /api/threshold
- MessageOut:     simple {"message": ...} acknowledgements
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field

from ingest_filter import Reading, ThresholdConfig

Measurement = Annotated[float, Field(strict=True, allow_inf_nan=False)]
Threshold = Annotated[float, Field(strict=True, ge=0, allow_inf_nan=False)]


class ReadingIn(BaseModel):
    """
    Incoming reading from a field device.

    userId is optional here so the server can apply FALLBACK_USER_ID;
    the ingest filter rejects it if no fallback is configured.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    soilmoisture: Measurement
    temperature: Measurement
    humidity: Measurement
    latitude: Optional[Measurement] = None
    longitude: Optional[Measurement] = None

    def to_reading(self) -> Reading:
        return Reading(
            user_id=self.user_id,
            soilmoisture=self.soilmoisture,
            temperature=self.temperature,
            humidity=self.humidity,
            latitude=self.latitude,
            longitude=self.longitude,
        )


class ReadingOut(BaseModel):
    """A stored reading as returned by the API."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    user_id: str = Field(..., alias="userId")
    soilmoisture: float
    temperature: float
    humidity: float
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_row(cls, row) -> "ReadingOut":
        """Build from a SensorReadingModel row."""
        return cls(
            id=row.id,
            user_id=row.user_id,
            soilmoisture=row.soilmoisture,
            temperature=row.temperature,
            humidity=row.humidity,
            latitude=row.latitude,
            longitude=row.longitude,
            created_at=row.created_at,
        )


class FieldValueOut(BaseModel):
    """One point of a single field's history."""

    model_config = ConfigDict(populate_by_name=True)

    value: float
    created_at: datetime = Field(..., alias="createdAt")


class CurrentValueOut(FieldValueOut):
    field: str


class ThresholdIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    soil_threshold: Threshold = Field(..., alias="soilThreshold")
    temp_threshold: Threshold = Field(..., alias="tempThreshold")
    hum_threshold: Threshold = Field(..., alias="humThreshold")

    def to_config(self) -> ThresholdConfig:
        return ThresholdConfig(
            soil_threshold=self.soil_threshold,
            temp_threshold=self.temp_threshold,
            hum_threshold=self.hum_threshold,
        )


class ThresholdOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    soil_threshold: float = Field(..., alias="soilThreshold")
    temp_threshold: float = Field(..., alias="tempThreshold")
    hum_threshold: float = Field(..., alias="humThreshold")
    version: int

    @classmethod
    def from_config(cls, config: ThresholdConfig, version: int) -> "ThresholdOut":
        return cls(
            soil_threshold=config.soil_threshold,
            temp_threshold=config.temp_threshold,
            hum_threshold=config.hum_threshold,
            version=version,
        )


class ThresholdUpdateOut(BaseModel):
    message: str
    threshold: ThresholdOut


class MessageOut(BaseModel):
    message: str
