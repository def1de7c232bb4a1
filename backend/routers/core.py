from __future__ import annotations

from fastapi import APIRouter

from time_contract import iso_z


def build_core_router(*, state):
    router = APIRouter()

    @router.get("/api/health")
    async def health():
        items = sum(len(c) for c in state.caches.values())
        return {"ok": True, "status": "ok", "time": iso_z(state.now()), "cache": items}

    @router.get("/api/cache_stats")
    async def api_cache_stats():
        return {
            "caches": {name: cache.stats_payload() for name, cache in state.caches.items()},
            "degraded": state.degraded_payload(),
            "errors": dict(state.api_error_counters),
        }

    return router
