#!/usr/bin/env python3
"""
SQLAlchemy ORM Models
=====================

Database tables for the soil sensor service.

THE SensorReadingModel CLASS:
-----------------------------
One row per stored reading. Rows are only ever inserted, never updated:
the change-significance filter decides which readings make it here.

- user_id: device / farmer identifier (usually a phone number)
- soilmoisture, temperature, humidity: the measured values
- latitude, longitude: optional GPS, NULL when the device has no fix
- created_at: set by the server when the reading is accepted

Both user_id and created_at are indexed because every read endpoint
filters or sorts on one of them.

THE ThresholdSettingsModel CLASS:
---------------------------------
A single-row table (id is always 1) holding the thresholds an operator set
through POST /api/threshold, so they survive a restart.
"""

from sqlalchemy import Column, DateTime, Float, Integer, String

from database import Base

THRESHOLD_SETTINGS_ID = 1


class SensorReadingModel(Base):
    """Database model for one stored soil sensor reading."""

    __tablename__ = "sensor_readings"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(String, nullable=False, index=True)

    soilmoisture = Column(Float, nullable=False)
    temperature = Column(Float, nullable=False)
    humidity = Column(Float, nullable=False)

    # NULL means "no GPS fix", not 0,0
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    created_at = Column(DateTime, nullable=False, index=True)


class ThresholdSettingsModel(Base):
    """Singleton row with the operator-configured thresholds."""

    __tablename__ = "threshold_settings"

    id = Column(Integer, primary_key=True, default=THRESHOLD_SETTINGS_ID)
    soil_threshold = Column(Float, nullable=False)
    temp_threshold = Column(Float, nullable=False)
    hum_threshold = Column(Float, nullable=False)
    updated_at = Column(DateTime, nullable=False)
