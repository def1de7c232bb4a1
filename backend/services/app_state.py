from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import numpy as np

from cache_state import TTLCache
from constants import TIME_OFFSET_MIN, TTL_SECONDS, WEATHER_TTL_SECONDS
from logging_config import setup_logging
from services.upstream import FetchOutcome, build_http_client

logger = setup_logging(__name__)

RADAR_CACHE_MAX_ITEMS = 512

Loader = Callable[[], Awaitable[FetchOutcome]]


def build_caches(clock: Callable[[], float], ttl: float = TTL_SECONDS, weather_ttl: float = WEATHER_TTL_SECONDS) -> Dict[str, TTLCache]:
    return {
        "solarwind": TTLCache(ttl, name="solarwind", clock=clock),
        "kp": TTLCache(ttl, name="kp", clock=clock),
        "rx": TTLCache(ttl, name="rx", clock=clock),
        "magnetometer": TTLCache(ttl, name="magnetometer", clock=clock),
        "textdata": TTLCache(ttl, name="textdata", clock=clock),
        "weather": TTLCache(weather_ttl, name="weather", clock=clock),
        "radar": TTLCache(ttl, name="radar", clock=clock, max_items=RADAR_CACHE_MAX_ITEMS),
    }


@dataclass
class AppState:
    """Process-wide context: upstream client, caches, clock and RNG."""

    http: httpx.AsyncClient
    caches: Dict[str, TTLCache]
    clock: Callable[[], float] = time.time
    rng: np.random.Generator = field(default_factory=np.random.default_rng)
    time_offset_min: int = TIME_OFFSET_MIN

    # last outcome per "cache:key" -> degradation reason (None when live)
    outcomes: Dict[str, Optional[str]] = field(default_factory=dict)
    api_error_counters: Dict[str, int] = field(default_factory=lambda: {"4xx": 0, "5xx": 0})
    warmup_task: Optional[asyncio.Task] = None

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)

    def record_outcome(self, cache_name: str, key: Any, outcome: FetchOutcome) -> None:
        slot = f"{cache_name}:{key}"
        prev = self.outcomes.get(slot, None)
        self.outcomes[slot] = outcome.degraded_reason
        if outcome.degraded_reason is not None:
            logger.warning(f"{slot} serving {outcome.status} data: {outcome.degraded_reason}")
        elif prev is not None:
            logger.info(f"{slot} recovered, serving live data")

    async def _run(self, cache_name: str, key: Any, loader: Loader) -> Any:
        outcome = await loader()
        self.record_outcome(cache_name, key, outcome)
        return outcome.data

    async def read_through(self, cache_name: str, key: Any, loader: Loader) -> Any:
        return await self.caches[cache_name].get_or_fetch(key, lambda: self._run(cache_name, key, loader))

    async def refresh(self, cache_name: str, key: Any, loader: Loader) -> Any:
        return await self.caches[cache_name].refresh(key, lambda: self._run(cache_name, key, loader))

    def degraded_payload(self) -> Dict[str, str]:
        return {k: v for k, v in self.outcomes.items() if v is not None}

    async def aclose(self) -> None:
        if self.warmup_task is not None:
            self.warmup_task.cancel()
            try:
                await self.warmup_task
            except asyncio.CancelledError:
                pass
            self.warmup_task = None
        await self.http.aclose()


def build_app_state(
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], float] = time.time,
    rng: Optional[np.random.Generator] = None,
    time_offset_min: int = TIME_OFFSET_MIN,
) -> AppState:
    return AppState(
        http=build_http_client(transport=transport),
        caches=build_caches(clock),
        clock=clock,
        rng=rng if rng is not None else np.random.default_rng(),
        time_offset_min=time_offset_min,
    )
