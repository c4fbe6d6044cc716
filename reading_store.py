"""Persistence for sensor readings and the threshold settings row.

``ReadingStore`` is the only code that talks to the database. It wraps one
SQLAlchemy session (one request) and turns every ``SQLAlchemyError`` into an
``InfrastructureError`` after rolling back, so the API layer only has to deal
with the errors in ``errors.py``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import InfrastructureError, ValidationError
from ingest_filter import Decision, Reading, Store, ThresholdConfig, decide, validate_reading
from models import THRESHOLD_SETTINGS_ID, SensorReadingModel, ThresholdSettingsModel

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000

# Largest OFFSET the database driver can bind (signed 64-bit)
MAX_OFFSET = 2 ** 63 - 1

# URL field name -> column. "temp" is what the dashboards have always used.
FIELD_COLUMNS = {
    "soilmoisture": SensorReadingModel.soilmoisture,
    "temp": SensorReadingModel.temperature,
    "temperature": SensorReadingModel.temperature,
    "humidity": SensorReadingModel.humidity,
}


def resolve_field(field: str):
    try:
        return FIELD_COLUMNS[field]
    except KeyError:
        raise ValidationError(
            f"Invalid field '{field}', expected one of: soilmoisture, temp, humidity"
        )


def to_reading(row: SensorReadingModel) -> Reading:
    return Reading(
        user_id=row.user_id,
        soilmoisture=row.soilmoisture,
        temperature=row.temperature,
        humidity=row.humidity,
        latitude=row.latitude,
        longitude=row.longitude,
        created_at=row.created_at,
    )


@dataclass(frozen=True)
class IngestResult:
    decision: Decision
    row: Optional[SensorReadingModel] = None

    @property
    def stored(self) -> bool:
        return isinstance(self.decision, Store)


class ReadingStore:
    """Reading Store and Query Service over one database session."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock

    def _fail(self, action: str, exc: SQLAlchemyError):
        self.db.rollback()
        logger.exception("Database error while trying to %s", action)
        raise InfrastructureError(f"Failed to {action}") from exc

    # -------------------------------------------------
    # WRITES
    # -------------------------------------------------

    def insert(self, reading: Reading, not_before: Optional[datetime] = None) -> SensorReadingModel:
        """
        Insert ``reading`` with a server-assigned ``created_at``.

        ``not_before`` keeps a user's readings in order if the wall clock
        steps backwards between two ingests.
        """
        created_at = self.clock()
        if not_before is not None and created_at < not_before:
            created_at = not_before
        # Millisecond precision, so nothing lands after a bucket's 23:59:59.999 end
        created_at = created_at.replace(microsecond=created_at.microsecond // 1000 * 1000)

        row = SensorReadingModel(
            user_id=reading.user_id,
            soilmoisture=reading.soilmoisture,
            temperature=reading.temperature,
            humidity=reading.humidity,
            latitude=reading.latitude,
            longitude=reading.longitude,
            created_at=created_at,
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as exc:
            self._fail("save sensor data", exc)
        return row

    def ingest(
        self,
        candidate: Reading,
        thresholds: ThresholdConfig,
        fallback_user_id: Optional[str] = None,
    ) -> IngestResult:
        """
        Run the change-significance filter and store the reading if it passes.

        Read-latest and insert are two separate statements. Two concurrent
        ingests for one user can both store; that is acceptable for telemetry.
        """
        record = validate_reading(candidate, fallback_user_id)
        last_row = self.latest_row_for_user(record.user_id)
        last = to_reading(last_row) if last_row is not None else None

        decision = decide(record, last, thresholds)
        if not isinstance(decision, Store):
            return IngestResult(decision)

        row = self.insert(decision.record, not_before=last.created_at if last else None)
        return IngestResult(decision, row)

    # -------------------------------------------------
    # READS
    # -------------------------------------------------

    def latest_row_for_user(self, user_id: str) -> Optional[SensorReadingModel]:
        try:
            return (
                self.db.query(SensorReadingModel)
                .filter(SensorReadingModel.user_id == user_id)
                .order_by(SensorReadingModel.created_at.desc(), SensorReadingModel.id.desc())
                .first()
            )
        except SQLAlchemyError as exc:
            self._fail("fetch latest reading for user", exc)

    def latest_for_user(self, user_id: str) -> Optional[Reading]:
        row = self.latest_row_for_user(user_id)
        return to_reading(row) if row is not None else None

    def latest(self) -> Optional[SensorReadingModel]:
        try:
            return (
                self.db.query(SensorReadingModel)
                .order_by(SensorReadingModel.created_at.desc(), SensorReadingModel.id.desc())
                .first()
            )
        except SQLAlchemyError as exc:
            self._fail("fetch latest data", exc)

    def latest_value(self, field: str) -> Optional[Tuple[float, datetime]]:
        column = resolve_field(field)
        try:
            return (
                self.db.query(column, SensorReadingModel.created_at)
                .order_by(SensorReadingModel.created_at.desc(), SensorReadingModel.id.desc())
                .first()
            )
        except SQLAlchemyError as exc:
            self._fail("fetch current value", exc)

    def find_in_range(self, field: str, start: datetime, end: datetime) -> List[Tuple[float, datetime]]:
        """``(value, created_at)`` pairs with ``start <= created_at <= end``, oldest first."""
        column = resolve_field(field)
        try:
            rows = (
                self.db.query(column, SensorReadingModel.created_at)
                .filter(SensorReadingModel.created_at >= start)
                .filter(SensorReadingModel.created_at <= end)
                .order_by(SensorReadingModel.created_at.asc(), SensorReadingModel.id.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            self._fail("fetch data for period", exc)
        return [(value, created_at) for value, created_at in rows]

    def paginate(self, page: int = 1, limit: int = 100) -> List[SensorReadingModel]:
        """Newest first, ``offset = (page - 1) * limit``."""
        if page < 1:
            raise ValidationError("page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        offset = (page - 1) * limit
        if offset > MAX_OFFSET:
            raise ValidationError("page is too large")
        try:
            return (
                self.db.query(SensorReadingModel)
                .order_by(SensorReadingModel.created_at.desc(), SensorReadingModel.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            self._fail("fetch data", exc)

    # -------------------------------------------------
    # THRESHOLD SETTINGS
    # -------------------------------------------------

    def load_thresholds(self) -> Optional[ThresholdConfig]:
        try:
            row = self.db.get(ThresholdSettingsModel, THRESHOLD_SETTINGS_ID)
        except SQLAlchemyError as exc:
            self._fail("load thresholds", exc)
        if row is None:
            return None
        return ThresholdConfig(
            soil_threshold=row.soil_threshold,
            temp_threshold=row.temp_threshold,
            hum_threshold=row.hum_threshold,
        )

    def save_thresholds(self, config: ThresholdConfig) -> None:
        try:
            row = self.db.get(ThresholdSettingsModel, THRESHOLD_SETTINGS_ID)
            if row is None:
                row = ThresholdSettingsModel(id=THRESHOLD_SETTINGS_ID)
                self.db.add(row)
            row.soil_threshold = config.soil_threshold
            row.temp_threshold = config.temp_threshold
            row.hum_threshold = config.hum_threshold
            row.updated_at = self.clock()
            self.db.commit()
        except SQLAlchemyError as exc:
            self._fail("save thresholds", exc)
