"""NOAA SWPC resources: solar wind, planetary K-index, radio blackout."""

from __future__ import annotations

import asyncio

from alignment import align_solarwind
from constants import KP_POINTS, SOLARWIND_WINDOW, SWPC_KP_URL, SWPC_MAG_URL, SWPC_PLASMA_URL
from feed_parsers import FeedFormatError, parse_swpc
from logging_config import setup_logging
from mock_data import mock_kp, mock_rx, mock_solarwind
from normalize import TIME_KEY, round1, to_number
from services.app_state import AppState
from services.upstream import FetchOutcome, fetch_json
from time_contract import fmt_day_hour, iso_z

logger = setup_logging(__name__)


def _reason(e: Exception) -> str:
    return f"{type(e).__name__}: {e}"


async def load_solarwind(state: AppState) -> FetchOutcome:
    try:
        # Both feeds or neither
        plasma_json, mag_json = await asyncio.gather(
            fetch_json(state.http, SWPC_PLASMA_URL),
            fetch_json(state.http, SWPC_MAG_URL),
        )
        plasma = parse_swpc(plasma_json)
        mag = parse_swpc(mag_json)
        if not plasma and not mag:
            raise FeedFormatError("no solar wind rows in either feed")
        out = align_solarwind(plasma, mag, window=SOLARWIND_WINDOW, offset_minutes=state.time_offset_min)
        out["source"]["status"] = "live"
        return FetchOutcome(out)
    except Exception as e:
        reason = _reason(e)
        logger.warning(f"solarwind fallback: {reason}")
        return FetchOutcome(mock_solarwind(points=SOLARWIND_WINDOW, now=state.now(), rng=state.rng, reason=reason), reason)


async def get_solarwind(state: AppState) -> dict:
    return await state.read_through("solarwind", "solarwind", lambda: load_solarwind(state))


def _kp_key(row: dict) -> str:
    if "kp" in row:
        return "kp"
    if "kp_index" in row:
        return "kp_index"
    return "kp"


async def load_kp(state: AppState) -> FetchOutcome:
    try:
        rows = parse_swpc(await fetch_json(state.http, SWPC_KP_URL))
        if not rows:
            raise FeedFormatError("no Kp rows")
        key = _kp_key(rows[0])
        tail = rows[-KP_POINTS:]
        values = [round1(to_number(r.get(key))) for r in tail]
        out = {
            "updatedAt": iso_z(state.now()),
            "now": values[-1],
            "labels": [fmt_day_hour(r[TIME_KEY]) for r in tail],
            "values": values,
            "source": {"provider": "NOAA SWPC", "status": "live"},
        }
        return FetchOutcome(out)
    except Exception as e:
        reason = _reason(e)
        logger.warning(f"kp fallback: {reason}")
        return FetchOutcome(mock_kp(steps=KP_POINTS, now=state.now(), rng=state.rng, reason=reason), reason)


async def get_kp(state: AppState) -> dict:
    return await state.read_through("kp", "kp", lambda: load_kp(state))


async def load_rx(state: AppState) -> FetchOutcome:
    # No upstream feed for this panel yet; always synthetic.
    return FetchOutcome(mock_rx(now=state.now(), rng=state.rng), "no upstream feed")


async def get_rx(state: AppState) -> dict:
    return await state.read_through("rx", "rx", lambda: load_rx(state))
