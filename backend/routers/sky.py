"""Local sky endpoints: weather, sun/moon ephemeris, solar imagery."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from constants import EPHEMERIS_DEFAULT_LAT, EPHEMERIS_DEFAULT_LON, SOLAR_IMAGE_CACHE_CONTROL
from response_headers import build_image_headers
from services.ephemeris import compute_solar_lunar
from services.imagery import get_solar_image, resolve_image_source
from services.upstream import UpstreamError
from services.weather import get_weather, resolve_coords
from time_contract import parse_to_utc


def build_sky_router(*, state, logger):
    router = APIRouter()

    @router.get("/api/weather")
    async def api_weather(lat: Optional[str] = Query(None), lon: Optional[str] = Query(None)):
        la, lo = resolve_coords(lat, lon)
        return await get_weather(state, la, lo)

    @router.get("/api/solarlunar")
    async def api_solarlunar(
        lat: Optional[str] = Query(None),
        lon: Optional[str] = Query(None),
        date: Optional[str] = Query(None),
    ):
        la, lo = resolve_coords(lat, lon, EPHEMERIS_DEFAULT_LAT, EPHEMERIS_DEFAULT_LON)
        if date:
            try:
                when = parse_to_utc(date)
            except ValueError:
                raise HTTPException(400, "Invalid date")
        else:
            when = state.now()
        try:
            return compute_solar_lunar(la, lo, when)
        except OverflowError:
            raise HTTPException(400, "Date out of range")

    @router.get("/api/solarimage")
    async def api_solarimage(src: Optional[str] = Query(None)):
        url = resolve_image_source(src)
        if url is None:
            raise HTTPException(400, "Invalid image source")
        try:
            content, content_type = await get_solar_image(state, url)
        except UpstreamError as e:
            logger.warning(f"solarimage upstream failure: {e}")
            raise HTTPException(502, "Failed to fetch solar image")
        return Response(
            content=content,
            media_type=content_type,
            headers=build_image_headers(cache_control=SOLAR_IMAGE_CACHE_CONTROL),
        )

    return router
