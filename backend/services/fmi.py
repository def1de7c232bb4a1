"""Finnish Meteorological Institute resources.

- magnetometer Bx/Bz series from the open-data WFS (per station, minute window)
- realtime full-day magnetometer text dumps
- radar WMS tile proxy
"""

from __future__ import annotations

import math
import re
from datetime import timedelta
from typing import Iterable, List, Optional
from urllib.parse import urlencode

from constants import (
    DEFAULT_STATION,
    FMI_MAGNETOMETER_QUERY,
    FMI_TEXTDATA_URL,
    FMI_WFS_URL,
    FMI_WMS_URL,
    MINUTES_DEFAULT,
    MINUTES_MAX,
    MINUTES_MIN,
    RADAR_DEFAULT_LAYER,
    RADAR_LAYER_ALLOWLIST,
    STATION_CATALOG,
    STATION_CODES,
    TEXTDATA_STATIONS,
    WEB_MERCATOR_MAX,
)
from feed_parsers import parse_fmi_magnetometer_xml, parse_fmi_textdata
from logging_config import setup_logging
from mock_data import mock_magnetometer_rows
from services.app_state import AppState
from services.upstream import FetchOutcome, fetch_image, fetch_text
from time_contract import iso_z, try_parse

logger = setup_logging(__name__)

FMI_SOURCE = {
    "provider": "FMI IMAGE",
    "credit": "Finnish Meteorological Institute",
    "url": "https://space.fmi.fi/image/",
}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_WMS_TIME = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}")


class RadarRequestError(ValueError):
    """Client-supplied radar tile parameters were rejected."""


# ─── Parameter sanitizing ───

def resolve_station(raw: Optional[str]) -> str:
    """Known station code, else the default station."""
    code = str(raw or DEFAULT_STATION).strip().upper()
    return code if code in STATION_CATALOG else DEFAULT_STATION


def resolve_textdata_station(raw: Optional[str]) -> Optional[str]:
    """Known text-dump station code, else None."""
    code = str(raw or "").strip().upper()
    return code if code in TEXTDATA_STATIONS else None


def clamp_minutes(raw) -> int:
    """Leading integer of raw, clamped to the allowed window; default when absent."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        minutes = raw
    else:
        m = _LEADING_INT.match(str(raw if raw is not None else ""))
        minutes = int(m.group(1)) if m else MINUTES_DEFAULT
    return max(MINUTES_MIN, min(MINUTES_MAX, minutes))


# ─── Magnetometer (WFS) ───

def window_rows(rows: Iterable[dict], cutoff) -> List[dict]:
    out = []
    for row in rows:
        t = try_parse(row.get("time"))
        if t is not None and t >= cutoff:
            out.append(row)
    return out


def magnetometer_payload(station: str, minutes: int, rows: List[dict], status: str, updated_fallback: str, reason: Optional[str] = None) -> dict:
    source = {**FMI_SOURCE, "status": status}
    if reason:
        source["reason"] = reason
    return {
        "station": station,
        "stationName": STATION_CATALOG[station]["name"],
        "minutes": minutes,
        "stations": list(STATION_CODES),
        "rows": rows,
        "times": [r["time"] for r in rows],
        "bx": [r.get("bx") for r in rows],
        "bz": [r.get("bz") for r in rows],
        "updatedAt": rows[-1]["time"] if rows else updated_fallback,
        "source": source,
    }


async def load_magnetometer(state: AppState, station: str, minutes: int) -> FetchOutcome:
    end = state.now()
    start = end - timedelta(minutes=minutes)
    try:
        params = {
            "service": "WFS",
            "version": "2.0.0",
            "request": "GetFeature",
            "storedquery_id": FMI_MAGNETOMETER_QUERY,
            "starttime": iso_z(start),
            "endtime": iso_z(end),
            "timestep": "60",
            "fmisid": str(STATION_CATALOG[station]["fmisid"]),
        }
        logger.debug(f"FMI magnetometer request station={station} fmisid={params['fmisid']}")
        text = await fetch_text(state.http, FMI_WFS_URL, params=params, headers={"Accept": "application/xml"})
        rows = window_rows(parse_fmi_magnetometer_xml(text), start)
        return FetchOutcome(magnetometer_payload(station, minutes, rows, "live", iso_z(end)))
    except Exception as e:
        reason = f"{type(e).__name__}: {e}"
        logger.warning(f"magnetometer fallback station={station}: {reason}")
        rows = mock_magnetometer_rows(station, minutes, now=end)
        return FetchOutcome(magnetometer_payload(station, minutes, rows, "synthetic", iso_z(end), reason), reason)


async def get_magnetometer(state: AppState, station: str, minutes: int) -> dict:
    station = resolve_station(station)
    minutes = clamp_minutes(minutes)
    return await state.read_through(
        "magnetometer", f"{station}-{minutes}", lambda: load_magnetometer(state, station, minutes)
    )


# ─── Realtime text dump ───

async def load_textdata(state: AppState, station: str) -> FetchOutcome:
    url = FMI_TEXTDATA_URL.format(station=station)
    try:
        parsed = parse_fmi_textdata(await fetch_text(state.http, url))
        return FetchOutcome({"station": station, **parsed, "source": {**FMI_SOURCE, "status": "live"}})
    except Exception as e:
        reason = f"{type(e).__name__}: {e}"
        logger.warning(f"textdata unavailable station={station}: {reason}")
        empty = parse_fmi_textdata("")
        return FetchOutcome(
            {"station": station, **empty, "source": {**FMI_SOURCE, "status": "unavailable", "reason": reason}},
            reason,
        )


async def get_textdata(state: AppState, station: str) -> dict:
    """station must already be validated with resolve_textdata_station()."""
    return await state.read_through("textdata", station, lambda: load_textdata(state, station))


# ─── Radar WMS proxy ───

def _fmt_coord(v: float) -> str:
    return str(int(v)) if float(v).is_integer() else repr(float(v))


def parse_layers(raw: Optional[str]) -> List[str]:
    layers = [s.strip() for s in str(raw or RADAR_DEFAULT_LAYER).split(",")]
    layers = [s for s in layers if s and s in RADAR_LAYER_ALLOWLIST]
    if not layers:
        raise RadarRequestError("Invalid or missing layers")
    return layers


def parse_bbox(raw: Optional[str]) -> List[float]:
    """Four finite numbers, each clamped to the Web-Mercator extent."""
    parts = str(raw or "").split(",")
    if len(parts) != 4:
        raise RadarRequestError("Invalid bbox")
    try:
        nums = [float(p) for p in parts]
    except ValueError as e:
        raise RadarRequestError("Invalid bbox") from e
    if not all(math.isfinite(n) for n in nums):
        raise RadarRequestError("Invalid bbox")
    return [max(-WEB_MERCATOR_MAX, min(WEB_MERCATOR_MAX, n)) for n in nums]


def build_radar_query(
    *,
    layers: Optional[str],
    bbox: Optional[str],
    styles: Optional[str] = None,
    time: Optional[str] = None,
    tiled: Optional[str] = None,
) -> str:
    """Sanitized WMS 1.1.1 GetMap query string (also the cache key)."""
    params = [
        ("SERVICE", "WMS"),
        ("REQUEST", "GetMap"),
        ("VERSION", "1.1.1"),
        ("FORMAT", "image/png"),
        ("TRANSPARENT", "true"),
        ("WIDTH", "256"),
        ("HEIGHT", "256"),
        ("SRS", "EPSG:3857"),
        ("LAYERS", ",".join(parse_layers(layers))),
        ("STYLES", str(styles or "")),
        ("BBOX", ",".join(_fmt_coord(v) for v in parse_bbox(bbox))),
    ]
    if time and _WMS_TIME.search(str(time)):
        params.append(("TIME", str(time)))
    if str(tiled or "").lower() == "true":
        params.append(("TILED", "true"))
    return urlencode(params)


async def load_radar_tile(state: AppState, query: str) -> FetchOutcome:
    # No fallback artifact for images: failures propagate as UpstreamError.
    content, content_type = await fetch_image(state.http, f"{FMI_WMS_URL}?{query}")
    return FetchOutcome((content, content_type))


async def get_radar_tile(state: AppState, query: str) -> tuple[bytes, str, bool]:
    """(image bytes, content type, served-from-cache)."""
    fetched = False

    async def _load() -> FetchOutcome:
        nonlocal fetched
        fetched = True
        return await load_radar_tile(state, query)

    content, content_type = await state.read_through("radar", query, _load)
    return content, content_type, not fetched
