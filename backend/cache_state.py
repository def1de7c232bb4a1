"""Read-through TTL cache with single-flight miss handling."""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

_MISSING = object()


@dataclass(frozen=True)
class CacheEntry:
    data: Any
    fetched_at_ms: float


class TTLCache:
    """Per-key TTL cache fronting an async fetch operation.

    A fresh entry (``now - fetched_at < ttl``) is returned as-is. Otherwise the
    fetch runs and its result is stored, fallback payloads included, so every
    entry is displayable. Stale entries are superseded, not deleted. With
    ``max_items`` set, least recently used keys are evicted beyond that size.

    Concurrent misses for one key share a single in-flight fetch.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        name: str = "cache",
        clock: Callable[[], float] = time.time,
        max_items: Optional[int] = None,
    ):
        self.name = name
        self.ttl_seconds = float(ttl_seconds)
        self.max_items = max_items
        self._clock = clock
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self._inflight: Dict[Hashable, asyncio.Future] = {}
        self.metrics = {"hits": 0, "misses": 0, "expired": 0, "evictions": 0, "singleflightWaits": 0}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def entry(self, key: Hashable) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def _lookup(self, key: Hashable) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            self.metrics["misses"] += 1
            return _MISSING
        if self._now_ms() - entry.fetched_at_ms >= self.ttl_seconds * 1000.0:
            self.metrics["expired"] += 1
            self.metrics["misses"] += 1
            return _MISSING
        self._entries.move_to_end(key)
        self.metrics["hits"] += 1
        return entry.data

    def peek(self, key: Hashable) -> Any:
        """Fresh cached value or None."""
        value = self._lookup(key)
        return None if value is _MISSING else value

    def set(self, key: Hashable, data: Any) -> None:
        self._entries[key] = CacheEntry(data=data, fetched_at_ms=self._now_ms())
        self._entries.move_to_end(key)
        if self.max_items is not None:
            while len(self._entries) > self.max_items:
                self._entries.popitem(last=False)
                self.metrics["evictions"] += 1

    async def get_or_fetch(self, key: Hashable, fetch: Callable[[], Awaitable[Any]]) -> Any:
        value = self._lookup(key)
        if value is not _MISSING:
            return value

        inflight = self._inflight.get(key)
        if inflight is not None:
            self.metrics["singleflightWaits"] += 1
            return await asyncio.shield(inflight)

        fut = asyncio.get_running_loop().create_future()
        self._inflight[key] = fut
        try:
            value = await fetch()
        except Exception as e:
            fut.set_exception(e)
            fut.exception()  # mark retrieved when nobody is waiting
            raise
        except BaseException:
            fut.cancel()
            raise
        else:
            self.set(key, value)
            fut.set_result(value)
            return value
        finally:
            self._inflight.pop(key, None)

    async def refresh(self, key: Hashable, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """Fetch unconditionally and overwrite the entry (background warming)."""
        value = await fetch()
        self.set(key, value)
        return value

    def stats_payload(self) -> dict:
        total = self.metrics["hits"] + self.metrics["misses"]
        return {
            "items": len(self._entries),
            "maxItems": self.max_items,
            "ttlSeconds": self.ttl_seconds,
            "inflight": len(self._inflight),
            "metrics": dict(self.metrics),
            "hitRate": (self.metrics["hits"] / total) if total else None,
        }
