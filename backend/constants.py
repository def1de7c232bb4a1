"""Shared constants for Auroraview backend.

Static catalogs come from feeds_config.yaml; runtime tunables from env.
"""

from __future__ import annotations

import os

import yaml

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
# Shipped as package data of auroraview_feeds so wheels carry it
CONFIG_PATH = os.path.join(SCRIPT_DIR, "auroraview_feeds", "feeds_config.yaml")


def load_config(path: str = CONFIG_PATH) -> dict:
    """Load upstream feed configuration from YAML."""
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


FEEDS_CONFIG: dict = load_config()

# NOAA SWPC
SWPC_PLASMA_URL: str = FEEDS_CONFIG["swpc"]["plasma_url"]
SWPC_MAG_URL: str = FEEDS_CONFIG["swpc"]["mag_url"]
SWPC_KP_URL: str = FEEDS_CONFIG["swpc"]["kp_url"]

# FMI
FMI_WFS_URL: str = FEEDS_CONFIG["fmi"]["wfs_url"]
FMI_WMS_URL: str = FEEDS_CONFIG["fmi"]["wms_url"]
FMI_TEXTDATA_URL: str = FEEDS_CONFIG["fmi"]["textdata_url"]
FMI_MAGNETOMETER_QUERY: str = FEEDS_CONFIG["fmi"]["magnetometer_query"]
DEFAULT_STATION: str = FEEDS_CONFIG["fmi"]["default_station"]

# Station catalog: code -> {"fmisid": int, "name": str}. Order is display order.
STATION_CATALOG: dict[str, dict] = {
    code.upper(): {"fmisid": int(v["fmisid"]), "name": str(v["name"])}
    for code, v in FEEDS_CONFIG["fmi"]["stations"].items()
}
STATION_CODES: tuple[str, ...] = tuple(STATION_CATALOG.keys())
TEXTDATA_STATIONS: frozenset[str] = frozenset(STATION_CODES) | frozenset(
    s.upper() for s in FEEDS_CONFIG["fmi"].get("textdata_extra_stations", [])
)

RADAR_LAYER_ALLOWLIST: frozenset[str] = frozenset(FEEDS_CONFIG["fmi"]["radar_layers"])
RADAR_DEFAULT_LAYER: str = FEEDS_CONFIG["fmi"]["radar_default_layer"]

OPEN_METEO_URL: str = FEEDS_CONFIG["open_meteo"]["forecast_url"]

SOLAR_IMAGE_SOURCES: dict[str, str] = dict(FEEDS_CONFIG["solar_images"])
SOLAR_IMAGE_DEFAULT: str = "soho_sunspot"

# Cache TTLs
TTL_SECONDS: int = int(os.environ.get("AURORAVIEW_TTL_SECONDS", "240"))
WEATHER_TTL_SECONDS: int = int(os.environ.get("AURORAVIEW_WEATHER_TTL_SECONDS", "600"))

# Upstream calls
HTTP_TIMEOUT_SECONDS: float = float(os.environ.get("AURORAVIEW_HTTP_TIMEOUT_SECONDS", "15"))
HTTP_USER_AGENT: str = "auroraview/0.1"

# Background warming
WARMUP_ENABLED: bool = os.environ.get("AURORAVIEW_WARMUP_ENABLED", "1") not in ("0", "false", "no")
WARMUP_INITIAL_DELAY_SECONDS: float = 1.0
WARMUP_MINUTES: int = 60

# Optional shift applied to solar wind timestamps (minutes)
try:
    TIME_OFFSET_MIN: int = int(os.environ.get("TIME_OFFSET_MIN", "0"))
except ValueError:
    TIME_OFFSET_MIN = 0

# Solar wind chart window (points, 1-min cadence)
SOLARWIND_WINDOW: int = 60
# Kp look-back (8 x 3h = 24h)
KP_POINTS: int = 8

# Magnetometer minute window
MINUTES_DEFAULT: int = 60
MINUTES_MIN: int = 5
MINUTES_MAX: int = 180

# Web-Mercator extent used to clamp radar bbox values
WEB_MERCATOR_MAX: float = 20037508.342789244
RADAR_CACHE_CONTROL: str = "public, max-age=240"
SOLAR_IMAGE_CACHE_CONTROL: str = "public, max-age=300"

# Default observer locations
WEATHER_DEFAULT_LAT: float = 60.4728
WEATHER_DEFAULT_LON: float = 26.3042
EPHEMERIS_DEFAULT_LAT: float = 60.1699
EPHEMERIS_DEFAULT_LON: float = 24.9384

LOG_LEVEL: str = os.environ.get("AURORAVIEW_LOG_LEVEL", "INFO")
PORT: int = int(os.environ.get("PORT", "3000"))
