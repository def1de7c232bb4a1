"""FMI endpoints: magnetometer series, realtime text dumps, radar tile proxy."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from constants import DEFAULT_STATION, MINUTES_DEFAULT, RADAR_CACHE_CONTROL
from response_headers import build_image_headers
from services.fmi import (
    RadarRequestError,
    build_radar_query,
    clamp_minutes,
    get_magnetometer,
    get_radar_tile,
    get_textdata,
    resolve_station,
    resolve_textdata_station,
)
from services.upstream import UpstreamError


def build_fmi_router(*, state, logger):
    router = APIRouter()

    @router.get("/api/fmi/bx")
    async def api_fmi_bx(
        station: str = Query(DEFAULT_STATION),
        minutes: str = Query(str(MINUTES_DEFAULT)),
    ):
        code = resolve_station(station)
        mins = clamp_minutes(minutes)
        data = await get_magnetometer(state, code, mins)
        logger.debug(f"/api/fmi/bx station={code} minutes={mins} rows={len(data['rows'])}")
        return data

    @router.get("/api/fmi/textdata")
    async def api_fmi_textdata(station: str = Query("")):
        code = resolve_textdata_station(station)
        if code is None:
            raise HTTPException(400, "Invalid station code")
        return await get_textdata(state, code)

    @router.get("/api/fmi/radar")
    async def api_fmi_radar(
        layers: Optional[str] = Query(None),
        bbox: Optional[str] = Query(None),
        styles: Optional[str] = Query(None),
        time: Optional[str] = Query(None),
        tiled: Optional[str] = Query(None),
    ):
        try:
            query = build_radar_query(layers=layers, bbox=bbox, styles=styles, time=time, tiled=tiled)
        except RadarRequestError as e:
            raise HTTPException(400, str(e))

        try:
            content, content_type, hit = await get_radar_tile(state, query)
        except UpstreamError as e:
            logger.warning(f"fmi/radar upstream failure: {e}")
            detail = f"Upstream {e.status_code}" if e.status_code else "Failed to fetch radar tile"
            raise HTTPException(502, detail)

        return Response(
            content=content,
            media_type=content_type,
            headers=build_image_headers(cache_control=RADAR_CACHE_CONTROL, cache="HIT" if hit else "MISS"),
        )

    return router
