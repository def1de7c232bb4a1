from __future__ import annotations

from fastapi import APIRouter

from services.space_weather import get_kp, get_rx, get_solarwind


def build_space_weather_router(*, state):
    """Solar wind, Kp and radio blackout. Always 200; degraded data is synthetic."""
    router = APIRouter()

    @router.get("/api/solarwind")
    async def api_solarwind():
        return await get_solarwind(state)

    @router.get("/api/kp")
    async def api_kp():
        return await get_kp(state)

    @router.get("/api/rx")
    async def api_rx():
        return await get_rx(state)

    return router
