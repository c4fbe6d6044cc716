"""Environment-driven settings and the live threshold configuration."""

from __future__ import annotations

import os
import threading
from typing import Optional, Tuple

from errors import ValidationError
from ingest_filter import ThresholdConfig


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be a number, got {raw!r}.")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}.")


# ---------------------------------------------------------------------------
# Settings (read once at import)
# ---------------------------------------------------------------------------
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./sensor_data.db")
PORT = _env_int("PORT", 3000)
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Opt-in sentinel for devices that do not send a userId. Unset means reject.
FALLBACK_USER_ID: Optional[str] = os.environ.get("FALLBACK_USER_ID") or None

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("ALLOWED_ORIGINS", "*").split(",")
    if origin.strip()
] or ["*"]

try:
    DEFAULT_THRESHOLDS = ThresholdConfig(
        soil_threshold=_env_float("SOIL_THRESHOLD", 3.0),
        temp_threshold=_env_float("TEMP_THRESHOLD", 1.0),
        hum_threshold=_env_float("HUM_THRESHOLD", 3.0),
    )
except ValidationError as exc:
    raise RuntimeError(f"Invalid threshold environment: {exc.message}")


class ThresholdCell:
    """
    Process-wide holder for the active ThresholdConfig.

    The config itself is frozen, so a reader either sees the old value or
    the new one. The lock keeps the value and its version in step.
    """

    def __init__(self, initial: ThresholdConfig):
        self._lock = threading.Lock()
        self._config = initial
        self._version = 0

    def get(self) -> Tuple[ThresholdConfig, int]:
        with self._lock:
            return self._config, self._version

    @property
    def current(self) -> ThresholdConfig:
        return self.get()[0]

    def set(self, config: ThresholdConfig) -> int:
        """Publish ``config`` and return its version number."""
        with self._lock:
            self._config = config
            self._version += 1
            return self._version


thresholds = ThresholdCell(DEFAULT_THRESHOLDS)
