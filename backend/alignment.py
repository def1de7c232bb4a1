"""Solar wind plasma/magnetometer alignment.

The SWPC plasma and magnetic-field feeds are timestamped independently. The
chart series is built over the union of both feeds' timestamps; the "current"
snapshot comes from the newest timestamp where both feeds are present and all
four headline values are finite.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from normalize import (
    BT_KEYS,
    BZ_KEYS,
    DENSITY_KEYS,
    SATELLITE_KEYS,
    SPEED_KEYS,
    TIME_KEY,
    latest_finite,
    latest_non_null,
    pick,
    round1,
    round2,
)
from time_contract import fmt_hm, normalize_utc_iso, shift_iso, sort_key, utc_now_iso

DEFAULT_SATELLITE_LABEL = "DSCOVR/ACE (RTSW)"
PROVIDER = "NOAA SWPC"


def index_by_time(records: Sequence[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    return {r[TIME_KEY]: r for r in records if r.get(TIME_KEY)}


def union_times(*feeds: Dict[str, Dict[str, Any]]) -> List[str]:
    """Sorted (ascending) union of raw timestamps across feeds."""
    keys = set()
    for f in feeds:
        keys.update(f.keys())
    return sorted(keys, key=lambda t: (sort_key(t), t))


def _display_time(raw: str, offset_minutes: int) -> str:
    norm = normalize_utc_iso(raw)
    return shift_iso(norm, offset_minutes) if offset_minutes else norm


def _values(p: Optional[Dict[str, Any]], m: Optional[Dict[str, Any]]) -> Dict[str, Optional[float]]:
    return {
        "speed": pick(p, SPEED_KEYS),
        "density": pick(p, DENSITY_KEYS),
        "bz": pick(m, BZ_KEYS),
        "bt": pick(m, BT_KEYS),
    }


def strict_join(
    times: Sequence[str],
    p_map: Dict[str, Dict[str, Any]],
    m_map: Dict[str, Dict[str, Any]],
) -> Optional[tuple[str, Dict[str, float]]]:
    """Newest timestamp present in both feeds with all four values finite."""
    for t in reversed(times):
        p = p_map.get(t)
        m = m_map.get(t)
        if not p or not m:
            continue
        vals = _values(p, m)
        if all(v is not None for v in vals.values()):
            return t, vals
    return None


def satellite_label(record: Optional[Dict[str, Any]]) -> str:
    if not record:
        return DEFAULT_SATELLITE_LABEL
    raw = next((record.get(k) for k in SATELLITE_KEYS if record.get(k) not in (None, "")), None)
    if raw is None or not str(raw).strip():
        return DEFAULT_SATELLITE_LABEL
    up = str(raw).upper()
    if "ACE" in up:
        return "ACE (RTSW)"
    if "DSCOVR" in up:
        return "DSCOVR (RTSW)"
    return f"{raw} (RTSW)"


def align_solarwind(
    plasma: Sequence[Dict[str, Any]],
    mag: Sequence[Dict[str, Any]],
    *,
    window: int = 60,
    offset_minutes: int = 0,
) -> Dict[str, Any]:
    """Fuse plasma + mag records into the /api/solarwind payload."""
    p_map = index_by_time(plasma)
    m_map = index_by_time(mag)
    times = union_times(p_map, m_map)
    tail = times[-window:] if window > 0 else []

    labels: List[str] = []
    times_out: List[str] = []
    speed: List[Optional[float]] = []
    density: List[Optional[float]] = []
    bz: List[Optional[float]] = []
    bt: List[Optional[float]] = []
    for t in tail:
        shown = _display_time(t, offset_minutes)
        labels.append(fmt_hm(shown))
        times_out.append(shown)
        vals = _values(p_map.get(t), m_map.get(t))
        speed.append(round1(vals["speed"]))
        density.append(round2(vals["density"]))
        bz.append(round1(vals["bz"]))
        bt.append(round1(vals["bt"]))

    joined = strict_join(times, p_map, m_map)
    if joined is not None:
        raw_t, vals = joined
        now = {
            "bz": round1(vals["bz"]),
            "bt": round1(vals["bt"]),
            "speed": round1(vals["speed"]),
            "density": round2(vals["density"]),
        }
        aligned_time = _display_time(raw_t, offset_minutes)
        sat = satellite_label(m_map.get(raw_t))
    else:
        # Weaker: each value is the newest finite one of its own series
        sp = latest_finite(speed)
        de = latest_finite(density)
        bzv = latest_finite(bz)
        btv = latest_finite(bt)
        now = {
            "bz": round1(bzv if bzv is not None else latest_non_null(mag, "bz_gsm")),
            "bt": round1(btv if btv is not None else latest_non_null(mag, "bt")),
            "speed": round1(sp if sp is not None else latest_non_null(plasma, "speed")),
            "density": round2(de if de is not None else latest_non_null(plasma, "density")),
        }
        aligned_time = None
        sat = DEFAULT_SATELLITE_LABEL

    updated_at = aligned_time or (times_out[-1] if times_out else utc_now_iso())
    return {
        "updatedAt": updated_at,
        "now": now,
        "aligned": joined is not None,
        "labels": labels,
        "times": times_out,
        "speed": speed,
        "density": density,
        "bz": bz,
        "bt": bt,
        "source": {"satellite": sat, "provider": PROVIDER},
    }
