#!/usr/bin/env python3
"""
Soil Sensor API Server
======================

FastAPI server that receives soil moisture / temperature / humidity
readings from field devices and serves them back to dashboards.

HOW TO RUN:
-----------
    python3 api_server.py

The server listens on PORT (default 3000). Interactive docs live at
http://localhost:3000/docs

WHAT THIS FILE DOES:
--------------------
- POST /api/sensor-data runs every reading through the change-significance
  filter (ingest_filter.py) and only stores readings that moved enough
- GET endpoints return the latest reading, a user's latest reading, a
  paginated list, or one field's history over a day/week/month/year,
  a week of the current month, or a named month of the current year
- POST/GET /api/threshold change and read the filter thresholds at runtime

ERRORS:
-------
Every error comes back as {"error": "..."}:
- 400 for bad input (including Pydantic request validation)
- 404 when nothing matches
- 500 when the database fails
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, List

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import config
from database import SessionLocal, engine
from date_buckets import month_week_range, rolling_window, year_month_range
from errors import NotFoundError, SensorApiError
from models import Base
from reading_store import MAX_PAGE_SIZE, ReadingStore, resolve_field
from schemas import (
    CurrentValueOut,
    FieldValueOut,
    MessageOut,
    ReadingIn,
    ReadingOut,
    ThresholdIn,
    ThresholdOut,
    ThresholdUpdateOut,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create tables and seed the live thresholds once at startup.

    A thresholds row saved by an operator wins over the environment
    defaults, so POST /api/threshold survives a restart.
    """
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        saved = ReadingStore(db).load_thresholds()
    finally:
        db.close()
    if saved is not None:
        config.thresholds.set(saved)
        logger.info("Loaded saved thresholds: %s", saved)
    else:
        logger.info("Using default thresholds: %s", config.thresholds.current)
    yield


app = FastAPI(
    title="Soil Sensor API",
    description="Ingest and query field sensor readings",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------------------------
# ERROR MAPPING
# -------------------------------------------------

@app.exception_handler(SensorApiError)
async def sensor_api_error_handler(request: Request, exc: SensorApiError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report Pydantic failures as 400 {"error": ...} like every other bad input."""
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    message = "; ".join(problems) or "Invalid request"
    logger.info("Rejected request to %s: %s", request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Anything unexpected still answers with a JSON 500."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# -------------------------------------------------
# DEPENDENCIES
# -------------------------------------------------

def get_db():
    """
    Creates a new database session for each request.
    The session is automatically closed when the request finishes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> Callable[[], datetime]:
    """Server clock for created_at and date ranges. Overridden in tests."""
    return datetime.now


def get_store(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ReadingStore:
    return ReadingStore(db, clock=clock)


def _field_values(rows) -> List[FieldValueOut]:
    return [FieldValueOut(value=value, created_at=created_at) for value, created_at in rows]


# -------------------------------------------------
# BASIC ENDPOINTS
# -------------------------------------------------

@app.get("/health")
def health_check():
    """Simple health check endpoint to verify the API is running."""
    return {"status": "ok"}


# -------------------------------------------------
# INGEST
# -------------------------------------------------

@app.post("/api/sensor-data", response_model=MessageOut, status_code=201)
def create_sensor_data(payload: ReadingIn, store: ReadingStore = Depends(get_store)):
    """
    Accept a reading and store it only if it changed enough.

    Returns 201 when stored and 200 when skipped. A skipped reading is
    not an error: the device did its job, there was just nothing new.
    """
    result = store.ingest(
        payload.to_reading(),
        config.thresholds.current,
        fallback_user_id=config.FALLBACK_USER_ID,
    )

    if result.stored:
        logger.info("Stored reading %s for user %s", result.row.id, result.row.user_id)
        return MessageOut(message="Data saved successfully")

    logger.debug("Skipped reading for user %s, deltas %s", payload.user_id, result.decision.deltas)
    return JSONResponse(
        status_code=200,
        content={"message": "No significant change, data not saved"},
    )


# -------------------------------------------------
# READ ENDPOINTS
# -------------------------------------------------

@app.get("/api/sensor-data", response_model=List[ReadingOut])
def list_sensor_data(
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=MAX_PAGE_SIZE),
    store: ReadingStore = Depends(get_store),
):
    """Stored readings, newest first, one page at a time."""
    return [ReadingOut.from_row(row) for row in store.paginate(page, limit)]


@app.get("/api/sensor-data/latest", response_model=ReadingOut)
def get_latest(store: ReadingStore = Depends(get_store)):
    latest = store.latest()
    if latest is None:
        raise NotFoundError("No sensor data found")
    return ReadingOut.from_row(latest)


@app.get("/api/sensor-data/user/{user_id}", response_model=ReadingOut)
def get_latest_for_user(user_id: str, store: ReadingStore = Depends(get_store)):
    latest = store.latest_row_for_user(user_id)
    if latest is None:
        raise NotFoundError(f"No sensor data found for user {user_id}")
    return ReadingOut.from_row(latest)


@app.get("/api/sensor-data/{field}/current", response_model=CurrentValueOut)
def get_current_value(field: str, store: ReadingStore = Depends(get_store)):
    current = store.latest_value(field)
    if current is None:
        raise NotFoundError(f"No {field} data found")
    value, created_at = current
    return CurrentValueOut(field=field, value=value, created_at=created_at)


@app.get("/api/sensor-data/{field}/month/week/{week_number}", response_model=List[FieldValueOut])
def get_month_week(
    field: str,
    week_number: int,
    store: ReadingStore = Depends(get_store),
):
    """One 7-day slice of the current month. Week 5 runs to month end."""
    resolve_field(field)
    window = month_week_range(week_number, store.clock())
    if window is None:
        return []
    start, end = window
    return _field_values(store.find_in_range(field, start, end))


@app.get("/api/sensor-data/{field}/year/{month}", response_model=List[FieldValueOut])
def get_year_month(field: str, month: str, store: ReadingStore = Depends(get_store)):
    """A named month ("jan".."dec") of the current year."""
    resolve_field(field)
    start, end = year_month_range(month, store.clock())
    return _field_values(store.find_in_range(field, start, end))


@app.get("/api/sensor-data/{field}/{period}", response_model=List[FieldValueOut])
def get_rolling_period(field: str, period: str, store: ReadingStore = Depends(get_store)):
    """The last day / week / month (30 days) / year (365 days) of one field."""
    resolve_field(field)
    start, end = rolling_window(period, store.clock())
    return _field_values(store.find_in_range(field, start, end))


# -------------------------------------------------
# THRESHOLD SETTINGS
# -------------------------------------------------

@app.post("/api/threshold", response_model=ThresholdUpdateOut)
def set_threshold(payload: ThresholdIn, store: ReadingStore = Depends(get_store)):
    """
    Replace the live thresholds.

    The row is saved before the in-memory value changes, so a failed
    write leaves the old thresholds in place.
    """
    new_config = payload.to_config()
    store.save_thresholds(new_config)
    version = config.thresholds.set(new_config)
    logger.info("Thresholds updated to %s (version %s)", new_config, version)
    return ThresholdUpdateOut(
        message="Threshold updated successfully",
        threshold=ThresholdOut.from_config(new_config, version),
    )


@app.get("/api/threshold", response_model=ThresholdOut)
def get_threshold():
    current, version = config.thresholds.get()
    return ThresholdOut.from_config(current, version)


# Run the server when this file is executed directly
if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "api_server:app",
        host="0.0.0.0",  # Listen on all network interfaces
        port=config.PORT,
        reload=False
    )
