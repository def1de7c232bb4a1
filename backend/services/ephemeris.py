"""Sun/moon ephemeris for an observer, computed locally with astral."""

from __future__ import annotations

from datetime import date as date_cls, datetime, timezone
from typing import Callable, Optional

from astral import Observer, SunDirection, moon
from astral import sun as astral_sun

from time_contract import iso_z

# astral reports the moon phase on a 0..28 day scale
MOON_PHASE_SCALE_DAYS = 28.0

_PHASE_NAMES = (
    (6.25, "New Moon"),
    (18.75, "Waxing Crescent"),
    (31.25, "First Quarter"),
    (43.75, "Waxing Gibbous"),
    (56.25, "Full Moon"),
    (68.75, "Waning Gibbous"),
    (81.25, "Last Quarter"),
    (93.75, "Waning Crescent"),
    (100.0, "New Moon"),
)


def moon_phase_name(percent: float) -> str:
    """Name for a position in the lunar cycle given as 0..100 %."""
    if percent < 0 or percent > 100:
        return "Unknown"
    for upper, name in _PHASE_NAMES:
        if percent < upper:
            return name
    return "New Moon"


def _event(fn: Callable[[], Optional[datetime]]) -> Optional[dict]:
    # Polar day/night: the event does not happen on this date
    try:
        dt = fn()
    except ValueError:
        return None
    return {"date": iso_z(dt)} if dt is not None else None


def _window(fn: Callable[[], tuple]) -> dict:
    try:
        start, end = fn()
    except ValueError:
        return {"start": None, "end": None}
    return {"start": {"date": iso_z(start)}, "end": {"date": iso_z(end)}}


def compute_solar_lunar(latitude: float, longitude: float, when: datetime) -> dict:
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    when = when.astimezone(timezone.utc)
    obs = Observer(latitude=latitude, longitude=longitude, elevation=0.0)
    day: date_cls = when.date()
    utc = timezone.utc

    solar = {
        "sunrise": _event(lambda: astral_sun.sunrise(obs, date=day, tzinfo=utc)),
        "sunset": _event(lambda: astral_sun.sunset(obs, date=day, tzinfo=utc)),
        "sunAltitude": round(astral_sun.elevation(obs, when), 1),
        "sunAzimuth": round(astral_sun.azimuth(obs, when), 1),
    }

    phase_pct = moon.phase(day) / MOON_PHASE_SCALE_DAYS * 100.0
    lunar = {
        "moonrise": _event(lambda: moon.moonrise(obs, date=day, tzinfo=utc)),
        "moonset": _event(lambda: moon.moonset(obs, date=day, tzinfo=utc)),
        "moonPhase": round(phase_pct, 1),
        "moonPhaseName": moon_phase_name(phase_pct),
    }

    # Blue hour: sun between -6 and -4 deg; golden hour: -4 to +6 deg
    twilight = {
        "blueHour": {
            "dawn": _window(lambda: astral_sun.blue_hour(obs, date=day, direction=SunDirection.RISING, tzinfo=utc)),
            "dusk": _window(lambda: astral_sun.blue_hour(obs, date=day, direction=SunDirection.SETTING, tzinfo=utc)),
        },
        "goldenHour": {
            "dawn": _window(lambda: astral_sun.golden_hour(obs, date=day, direction=SunDirection.RISING, tzinfo=utc)),
            "dusk": _window(lambda: astral_sun.golden_hour(obs, date=day, direction=SunDirection.SETTING, tzinfo=utc)),
        },
    }

    return {
        "date": iso_z(when),
        "location": {"latitude": latitude, "longitude": longitude},
        "solar": solar,
        "lunar": lunar,
        "twilight": twilight,
    }
