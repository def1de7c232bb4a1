"""Shared timestamp parsing/formatting helpers.

Feed timestamps without an explicit UTC marker or offset are UTC, never local
time (RTSW omits the trailing 'Z').
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

_TZ_MARKER = re.compile(r"(Z|[+\-]\d\d:?\d\d)$", re.IGNORECASE)
_BASIC_OFFSET = re.compile(r"([+\-]\d\d)(\d\d)$")


def parse_to_utc(value) -> datetime:
    """Parse an ISO-like timestamp into an aware UTC datetime.

    Raises ValueError for unparseable input, including instants that fall
    outside the datetime range once shifted to UTC.
    """
    s = str(value or "").strip()
    if not s:
        raise ValueError("empty timestamp")
    s = s.replace(" ", "T", 1)
    try:
        if _TZ_MARKER.search(s):
            if s[-1] in "zZ":
                s = s[:-1] + "+00:00"
            else:
                s = _BASIC_OFFSET.sub(r"\1:\2", s)
            dt = datetime.fromisoformat(s)
        else:
            dt = datetime.fromisoformat(s).replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError("timestamp out of range") from e


def iso_z(dt: datetime) -> str:
    """Canonical UTC ISO string with millisecond precision, e.g. 2024-01-01T12:00:00.000Z."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return iso_z(utc_now())


def normalize_utc_iso(value) -> str:
    try:
        return iso_z(parse_to_utc(value))
    except ValueError:
        return value


def shift_iso(value, minutes: int) -> str:
    try:
        return iso_z(parse_to_utc(value) + timedelta(minutes=minutes))
    except ValueError:
        return value


def sort_key(value) -> datetime:
    """Sort key for raw timestamps; unparseable values sort first."""
    try:
        return parse_to_utc(value)
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)


def try_parse(value) -> Optional[datetime]:
    try:
        return parse_to_utc(value)
    except ValueError:
        return None


def fmt_hm(value) -> str:
    """HH:MM label in UTC."""
    dt = try_parse(value)
    return dt.strftime("%H:%M") if dt else ""


def fmt_day_hour(value) -> str:
    """DD/MM HH:00 label in UTC (Kp chart)."""
    dt = try_parse(value)
    return dt.strftime("%d/%m %H:00") if dt else ""
