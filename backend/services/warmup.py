"""Background cache warming.

One-shot refresh shortly after startup, then one every `interval` seconds, so
user-facing requests usually hit a warm cache. Each resource is refreshed on
its own; one failing upstream does not stop the others.
"""

from __future__ import annotations

import asyncio

from constants import STATION_CODES, TTL_SECONDS, WARMUP_INITIAL_DELAY_SECONDS, WARMUP_MINUTES
from logging_config import setup_logging
from services.app_state import AppState
from services.fmi import load_magnetometer
from services.space_weather import load_kp, load_rx, load_solarwind

logger = setup_logging(__name__)


def _jobs(state: AppState):
    yield "solarwind", "solarwind", lambda: load_solarwind(state)
    yield "kp", "kp", lambda: load_kp(state)
    yield "rx", "rx", lambda: load_rx(state)
    for code in STATION_CODES:
        yield "magnetometer", f"{code}-{WARMUP_MINUTES}", (lambda c=code: load_magnetometer(state, c, WARMUP_MINUTES))


async def refresh_all(state: AppState) -> dict:
    """Refresh every warmed resource; returns {cache:key -> "ok" | error}."""
    results = {}
    for cache_name, key, loader in _jobs(state):
        slot = f"{cache_name}:{key}"
        try:
            await state.refresh(cache_name, key, loader)
            results[slot] = "ok"
        except Exception as e:
            logger.exception(f"warmup refresh failed for {slot}: {e}")
            results[slot] = f"{type(e).__name__}: {e}"
    return results


async def warm_loop(state: AppState, *, interval: float = TTL_SECONDS, initial_delay: float = WARMUP_INITIAL_DELAY_SECONDS):
    await asyncio.sleep(initial_delay)
    while True:
        results = await refresh_all(state)
        failed = sum(1 for v in results.values() if v != "ok")
        logger.info(f"Cache warmup done: {len(results) - failed} ok, {failed} failed")
        await asyncio.sleep(interval)


def start_warmup(state: AppState, **kwargs) -> asyncio.Task:
    task = asyncio.get_running_loop().create_task(warm_loop(state, **kwargs), name="auroraview-warmup")
    state.warmup_task = task
    return task
