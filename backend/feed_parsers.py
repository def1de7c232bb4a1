"""Format adapters for upstream feeds.

SWPC ships the same logical feed either as a header row followed by data rows
("products" endpoints) or as an array of keyed objects (RTSW endpoints). Both
become lists of normalized records. FMI magnetometer data arrives either as a
WFS "simple" feature collection (XML) or as a fixed-column realtime text dump.
"""

from __future__ import annotations

import io
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import ParseError, iterparse

from normalize import TIME_KEY, normalize_record, to_number
from time_contract import iso_z


FMI_PARAMS = {"BX": "bx", "BZ": "bz"}

# YYYY MM DD hh mm ss  X  Y  Z
_TEXT_LINE = re.compile(
    r"^\s*(\d{4})\s+(\d{1,2})\s+(\d{1,2})\s+(\d{1,2})\s+(\d{1,2})\s+(\d{1,2})"
    r"\s+([-+]?[\d.]+)\s+([-+]?[\d.]+)\s+([-+]?[\d.]+)"
)


class FeedFormatError(ValueError):
    """Upstream payload could not be parsed."""


def _has_time(rec: Dict[str, Any]) -> bool:
    return bool(rec.get(TIME_KEY))


def parse_swpc_array(rows: Any) -> List[Dict[str, Any]]:
    """Header row + data rows -> normalized records."""
    if not isinstance(rows, list) or len(rows) < 2 or not isinstance(rows[0], list):
        return []
    headers = [str(h).lower() for h in rows[0]]
    out = []
    for row in rows[1:]:
        if not isinstance(row, list):
            continue
        raw = {h: (row[i] if i < len(row) else None) for i, h in enumerate(headers)}
        rec = normalize_record(raw)
        if _has_time(rec):
            out.append(rec)
    return out


def parse_swpc_objects(rows: Any) -> List[Dict[str, Any]]:
    """Array of keyed objects -> normalized records."""
    if not isinstance(rows, list):
        return []
    out = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        rec = normalize_record(row)
        if _has_time(rec):
            out.append(rec)
    return out


def parse_swpc(payload: Any) -> List[Dict[str, Any]]:
    """Dispatch on payload shape; unknown shapes yield no records."""
    if not isinstance(payload, list) or not payload:
        return []
    if isinstance(payload[0], list):
        return parse_swpc_array(payload)
    if isinstance(payload[0], dict):
        return parse_swpc_objects(payload)
    return []


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_fmi_magnetometer_xml(text: str | bytes) -> List[Dict[str, Any]]:
    """Parse an FMI WFS 'simple' magnetometer response.

    Each BsWfsElement carries one (time, parameter, value) triple. Values are
    accumulated into one row per distinct time; the pending row is flushed when
    a different time marker shows up, and once more at the end. Rows are only
    emitted when at least one of BX/BZ was seen.
    """
    data = text.encode("utf-8") if isinstance(text, str) else text
    rows: List[Dict[str, Any]] = []
    current: Optional[Dict[str, Any]] = None
    station: Optional[str] = None

    def flush():
        if current is not None and (current["bx"] is not None or current["bz"] is not None):
            rows.append(current)

    block: Dict[str, str] = {}
    try:
        for _event, elem in iterparse(io.BytesIO(data), events=("end",)):
            name = _local(elem.tag)
            if name in ("Time", "ParameterName", "ParameterValue"):
                block[name] = (elem.text or "").strip()
            elif name == "name" and elem.text and elem.text.strip():
                station = elem.text.strip()
            elif name == "BsWfsElement":
                t = block.get("Time")
                if t and (current is None or current["time"] != t):
                    flush()
                    current = {"time": t, "bx": None, "bz": None, "station": station}
                param = FMI_PARAMS.get(block.get("ParameterName", "").upper())
                if current is not None and param:
                    current[param] = to_number(block.get("ParameterValue"))
                    if station and not current.get("station"):
                        current["station"] = station
                block = {}
                elem.clear()
    except (ParseError, DefusedXmlException) as e:
        raise FeedFormatError(f"FMI magnetometer XML: {e}") from e
    flush()
    return rows


def parse_fmi_textdata(text: str) -> Dict[str, Any]:
    """Parse an FMI realtime full-day text dump.

    Lines not matching the date/time + X/Y/Z layout (headers, separators,
    comments) are skipped.
    """
    times: List[str] = []
    bx: List[float] = []
    by: List[float] = []
    bz: List[float] = []
    for line in (text or "").splitlines():
        m = _TEXT_LINE.match(line)
        if not m:
            continue
        parts = [int(g) for g in m.groups()[:6]]
        x, y, z = (to_number(g) for g in m.groups()[6:])
        if x is None or y is None or z is None:
            continue
        try:
            dt = datetime(*parts, tzinfo=timezone.utc)
        except ValueError:
            continue
        times.append(iso_z(dt))
        bx.append(x)
        by.append(y)
        bz.append(z)
    return {
        "times": times,
        "bx": bx,
        "by": by,
        "bz": bz,
        "minX": min(bx) if bx else None,
        "maxX": max(bx) if bx else None,
        "minZ": min(bz) if bz else None,
        "maxZ": max(bz) if bz else None,
    }
