"""Synthetic fallback payloads served when an upstream feed is unavailable.

Shapes match the live payloads so the dashboard renders either transparently;
``source.status`` is "synthetic" for everything built here.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

import numpy as np

from constants import STATION_CODES
from time_contract import fmt_day_hour, fmt_hm, iso_z, utc_now

RX_STATES = ("low", "moderate", "high")


def _rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def synthetic_source(provider: str, reason: Optional[str] = None, **extra) -> dict:
    src = {"provider": provider, "status": "synthetic"}
    if reason:
        src["reason"] = reason
    src.update(extra)
    return src


def mock_solarwind(
    *,
    points: int = 60,
    now: Optional[datetime] = None,
    rng: Optional[np.random.Generator] = None,
    reason: Optional[str] = None,
) -> dict:
    """Last `points` minutes of sinusoid-plus-noise plasma and field values."""
    now = now or utc_now()
    rng = _rng(rng)
    i = np.arange(points - 1, -1, -1, dtype=float)  # minutes before now
    stamps = [now - timedelta(minutes=int(k)) for k in i]

    base_speed = 450.0 + rng.random() * 50.0  # km/s
    base_density = 6.0 + rng.random() * 3.0  # p/cc
    speed = base_speed + np.sin(i / 8.0) * 15.0 + (rng.random(points) - 0.5) * 8.0
    density = base_density + np.cos(i / 10.0) * 1.0 + (rng.random(points) - 0.5) * 0.6
    speed = np.maximum(250.0, np.round(speed, 1))
    density = np.maximum(0.1, np.round(density, 2))

    bz_now = round(-5.0 + rng.random() * 10.0, 1)  # nT
    bt_now = round(7.0 + rng.random() * 6.0, 1)  # nT
    bz = np.round(bz_now + np.sin(i / 6.0) * 1.5, 1)
    bt = np.round(np.maximum(np.abs(bz), bt_now + np.cos(i / 9.0) * 1.0), 1)
    if points:
        bz[-1] = bz_now
        bt[-1] = max(bt_now, abs(bz_now))

    times = [iso_z(t) for t in stamps]
    return {
        "updatedAt": times[-1] if times else iso_z(now),
        "now": {
            "bz": float(bz[-1]) if points else None,
            "bt": float(bt[-1]) if points else None,
            "speed": float(speed[-1]) if points else None,
            "density": float(density[-1]) if points else None,
        },
        "aligned": False,
        "labels": [fmt_hm(t) for t in times],
        "times": times,
        "speed": [float(v) for v in speed],
        "density": [float(v) for v in density],
        "bz": [float(v) for v in bz],
        "bt": [float(v) for v in bt],
        "source": synthetic_source("NOAA SWPC", reason, satellite="synthetic"),
    }


def mock_kp(
    *,
    steps: int = 8,
    now: Optional[datetime] = None,
    rng: Optional[np.random.Generator] = None,
    reason: Optional[str] = None,
) -> dict:
    """Last 24h of 3-hourly Kp values, clamped to 0..9."""
    now = now or utc_now()
    rng = _rng(rng)
    i = np.arange(steps - 1, -1, -1, dtype=float)
    k = 2.5 + np.sin(i / 2.0) * 1.3 + (rng.random(steps) - 0.5) * 1.2
    values = [float(v) for v in np.round(np.clip(k, 0.0, 9.0), 1)]
    labels = [fmt_day_hour(iso_z(now - timedelta(hours=3 * int(n)))) for n in i]
    return {
        "updatedAt": iso_z(now),
        "now": values[-1] if values else None,
        "labels": labels,
        "values": values,
        "source": synthetic_source("NOAA SWPC", reason),
    }


def mock_rx(*, now: Optional[datetime] = None, rng: Optional[np.random.Generator] = None) -> dict:
    """Radio blackout level; no live feed is wired for this panel."""
    now = now or utc_now()
    state = RX_STATES[int(_rng(rng).integers(len(RX_STATES)))]
    return {"updatedAt": iso_z(now), "now": state, "source": synthetic_source("mock")}


def mock_magnetometer_rows(station: str, minutes: int, *, now: Optional[datetime] = None) -> list[dict]:
    """5-minute cadence Bx around zero with a small per-station bias."""
    now = now or utc_now()
    step = 5
    points = max(1, minutes // step)
    i = np.arange(points - 1, -1, -1, dtype=float)
    phase = (i / points) * np.pi * 2.0
    idx = STATION_CODES.index(station) if station in STATION_CODES else 0
    bias = (idx % 4) * 5.0
    bx = np.round(np.sin(phase) * 30.0 + np.cos(phase * 0.5) * 10.0 + bias, 1)
    return [
        {
            "time": iso_z(now - timedelta(minutes=step * int(n))),
            "bx": float(v),
            "bz": None,
            "station": station,
        }
        for n, v in zip(i, bx)
    ]
