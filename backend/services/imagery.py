"""Solar image proxy (allowlisted sources only)."""

from __future__ import annotations

from typing import Optional

from constants import SOLAR_IMAGE_DEFAULT, SOLAR_IMAGE_SOURCES
from services.app_state import AppState
from services.upstream import fetch_image


def resolve_image_source(raw: Optional[str]) -> Optional[str]:
    return SOLAR_IMAGE_SOURCES.get(str(raw or SOLAR_IMAGE_DEFAULT))


async def get_solar_image(state: AppState, url: str) -> tuple[bytes, str]:
    return await fetch_image(state.http, url, default_type="image/jpeg")
