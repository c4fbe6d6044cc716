#!/usr/bin/env python3
"""
Field device simulator.
POSTs one soil reading per interval to the sensor API.

WHAT THIS DOES:
- Generates smooth sine-wave soil moisture, temperature and humidity
- Sends each reading to POST /api/sensor-data
- Reports whether the server stored it (201) or skipped it (200)
- Keeps going when the server is down; Ctrl-C to stop

HOW TO RUN:
    python3 sensor_sim.py --user-id 9876543210

    Send ten readings, two seconds apart, with a GPS fix:
    python3 sensor_sim.py --count 10 --interval 2 --latitude 18.52 --longitude 73.85

Small changes between readings are filtered out by the server, so most
readings at a short interval come back "skipped". That is expected.
"""

from __future__ import annotations

import argparse
import math
import sys
import time
from datetime import datetime, timezone
from typing import Dict, Optional

import requests

DEFAULT_URL = "http://localhost:3000/api/sensor-data"
LOG_PREFIX_SIM = "SIM"
LOG_PREFIX_WARN = "WARN"


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Send simulated soil sensor readings to the API",
    )
    parser.add_argument("--url", default=DEFAULT_URL, help="Ingest endpoint URL.")
    parser.add_argument("--user-id", default="sim-device", help="userId sent with every reading.")
    parser.add_argument(
        "--interval",
        type=float,
        default=5.0,
        help="Seconds between readings (default: 5).",
    )
    parser.add_argument(
        "--count",
        type=int,
        metavar="COUNT",
        help="Send COUNT readings then exit (default: run until Ctrl-C).",
    )
    parser.add_argument("--latitude", type=float, help="Optional GPS latitude.")
    parser.add_argument("--longitude", type=float, help="Optional GPS longitude.")
    return parser.parse_args(argv)


def log(prefix: str, message: str) -> None:
    """Print structured log messages so tests can verify behaviour."""

    timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
    print(f"[{prefix.upper()}][{timestamp}] {message}")


def generate_fake_reading(tick: Optional[float] = None) -> Dict[str, float]:
    """Return a fake soil reading using slow sine waves."""

    if tick is None:
        tick = time.time()

    # Soil dries out over hours, temperature follows the day
    return {
        "soilmoisture": round(40 + 15 * math.sin(tick / 600), 1),
        "temperature": round(24 + 6 * math.sin(tick / 900), 1),
        "humidity": round(60 + 20 * math.sin(tick / 750), 1),
    }


def build_payload(args: argparse.Namespace, tick: Optional[float] = None) -> Dict[str, object]:
    payload: Dict[str, object] = {"userId": args.user_id}
    payload.update(generate_fake_reading(tick))
    # Omit GPS entirely when unknown; the server stores it as unset
    if args.latitude is not None:
        payload["latitude"] = args.latitude
    if args.longitude is not None:
        payload["longitude"] = args.longitude
    return payload


def send_reading(url: str, payload: Dict[str, object], session=requests) -> Optional[bool]:
    """
    POST one reading. Returns True if stored, False if skipped,
    None if the request failed.
    """
    try:
        response = session.post(url, json=payload, timeout=5)
        response.raise_for_status()
    except requests.exceptions.RequestException as exc:
        log(LOG_PREFIX_WARN, f"Failed to send reading: {exc}")
        return None
    return response.status_code == 201


def run(args: argparse.Namespace, session=requests, sleep=time.sleep) -> Dict[str, int]:
    counts = {"stored": 0, "skipped": 0, "failed": 0}
    sent = 0
    while args.count is None or sent < args.count:
        payload = build_payload(args)
        outcome = send_reading(args.url, payload, session=session)
        sent += 1
        if outcome is None:
            counts["failed"] += 1
        elif outcome:
            counts["stored"] += 1
            log(LOG_PREFIX_SIM, f"stored {payload}")
        else:
            counts["skipped"] += 1
            log(LOG_PREFIX_SIM, f"skipped {payload}")
        if args.count is None or sent < args.count:
            sleep(args.interval)
    return counts


def main(argv=None) -> int:
    args = parse_args(argv)
    log(LOG_PREFIX_SIM, f"Sending readings for {args.user_id} to {args.url}")
    try:
        counts = run(args)
    except KeyboardInterrupt:
        print('', file=sys.stderr)
        log(LOG_PREFIX_SIM, "Shutting down...")
        return 0
    log(
        LOG_PREFIX_SIM,
        f"Done: {counts['stored']} stored, {counts['skipped']} skipped, {counts['failed']} failed",
    )
    return 0


if __name__ == '__main__':
    sys.exit(main())
