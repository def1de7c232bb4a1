"""Value normalization for heterogeneous upstream feed rows.

Upstream schemas disagree on field names and on whether numbers arrive as
JSON numbers or strings. Everything here is pure.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional, Sequence

TIME_KEY = "time_tag"

# Candidate keys per physical quantity, in priority order
SPEED_KEYS = ("speed", "flow_speed", "bulk_speed", "v", "proton_speed")
DENSITY_KEYS = ("density", "proton_density", "n")
BZ_KEYS = ("bz_gsm", "bz", "bz_gse")
BT_KEYS = ("bt", "bt_total")
SATELLITE_KEYS = ("satellite", "sat", "sc", "observatory", "source")


def to_number(v: Any) -> Optional[float]:
    """Return v as a finite float, or None."""
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        n = float(v)
    elif isinstance(v, str):
        s = v.strip()
        if not s:
            return None
        try:
            n = float(s)
        except ValueError:
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def normalize_value(key: str, v: Any) -> Any:
    if key == TIME_KEY or v is None or v == "":
        return v
    n = to_number(v)
    return n if n is not None else v


def normalize_record(row: Mapping[str, Any]) -> dict:
    """Lowercase keys and coerce numeric-looking values to float."""
    out = {}
    for k, v in row.items():
        key = str(k).lower()
        out[key] = normalize_value(key, v)
    return out


def pick(record: Optional[Mapping[str, Any]], keys: Iterable[str]) -> Optional[float]:
    """First finite numeric value among candidate keys, in order."""
    if not record:
        return None
    for k in keys:
        v = record.get(k)
        if v is None or v == "":
            continue
        n = to_number(v)
        if n is not None:
            return n
    return None


def _round(v: Any, ndigits: int) -> Optional[float]:
    n = to_number(v)
    return None if n is None else round(n, ndigits)


def round1(v: Any) -> Optional[float]:
    return _round(v, 1)


def round2(v: Any) -> Optional[float]:
    return _round(v, 2)


def latest_finite(values: Sequence[Any]) -> Optional[float]:
    for v in reversed(values or []):
        n = to_number(v)
        if n is not None:
            return n
    return None


def latest_non_null(rows: Sequence[Mapping[str, Any]], key: str) -> Optional[float]:
    for row in reversed(rows or []):
        n = to_number(row.get(key)) if row else None
        if n is not None:
            return n
    return None
