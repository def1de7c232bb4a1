"""Open-Meteo current temperature / cloud cover."""

from __future__ import annotations

import math
from typing import Optional

from constants import OPEN_METEO_URL, WEATHER_DEFAULT_LAT, WEATHER_DEFAULT_LON
from logging_config import setup_logging
from normalize import round1, to_number
from services.app_state import AppState
from services.upstream import FetchOutcome, fetch_json
from time_contract import iso_z, normalize_utc_iso

logger = setup_logging(__name__)

UNITS = {"temperature": "C", "cloudCover": "%"}


def resolve_coords(lat_raw, lon_raw, default_lat: float = WEATHER_DEFAULT_LAT, default_lon: float = WEATHER_DEFAULT_LON) -> tuple[float, float]:
    """Parsed lat/lon; each falls back to its default when invalid or out of range."""
    lat = to_number(lat_raw)
    lon = to_number(lon_raw)
    lat_ok = lat is not None and -90.0 <= lat <= 90.0
    lon_ok = lon is not None and -180.0 <= lon <= 180.0
    return (lat if lat_ok else default_lat), (lon if lon_ok else default_lon)


def _empty(lat: float, lon: float, updated_at: str, reason: Optional[str]) -> dict:
    return {
        "updatedAt": updated_at,
        "location": {"latitude": lat, "longitude": lon},
        "temperatureC": None,
        "cloudCover": None,
        "units": dict(UNITS),
        "source": {"provider": "Open-Meteo", "status": "synthetic", "reason": reason},
    }


async def load_weather(state: AppState, lat: float, lon: float) -> FetchOutcome:
    try:
        j = await fetch_json(
            state.http,
            OPEN_METEO_URL,
            params={"latitude": lat, "longitude": lon, "current": "temperature_2m,cloud_cover"},
        )
        current = (j or {}).get("current") or {}
        temp = to_number(current.get("temperature_2m"))
        cloud = to_number(current.get("cloud_cover"))
        # Open-Meteo reports e.g. "2024-09-01T10:00" in UTC without a marker
        updated_at = normalize_utc_iso(current["time"]) if current.get("time") else iso_z(state.now())
        out = {
            "updatedAt": updated_at,
            "location": {"latitude": lat, "longitude": lon},
            "temperatureC": round1(temp),
            "cloudCover": cloud,
            "units": dict(UNITS),
            "source": {"provider": "Open-Meteo", "url": "https://open-meteo.com/", "status": "live"},
        }
        return FetchOutcome(out)
    except Exception as e:
        reason = f"{type(e).__name__}: {e}"
        logger.warning(f"weather fallback {lat:.4f},{lon:.4f}: {reason}")
        return FetchOutcome(_empty(lat, lon, iso_z(state.now()), reason), reason)


async def get_weather(state: AppState, lat: float, lon: float) -> dict:
    if not (math.isfinite(lat) and math.isfinite(lon)):
        lat, lon = WEATHER_DEFAULT_LAT, WEATHER_DEFAULT_LON
    key = f"{lat:.4f},{lon:.4f}"
    return await state.read_through("weather", key, lambda: load_weather(state, lat, lon))
