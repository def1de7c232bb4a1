"""Upstream HTTP access shared by all resource fetchers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

from constants import HTTP_TIMEOUT_SECONDS, HTTP_USER_AGENT
from feed_parsers import FeedFormatError


class UpstreamError(Exception):
    """Upstream call failed: non-success status, timeout or transport error."""

    def __init__(self, url: str, status_code: Optional[int] = None, message: str = ""):
        self.url = url
        self.status_code = status_code
        super().__init__(message or (f"HTTP {status_code}" if status_code else "upstream failure"))


@dataclass(frozen=True)
class FetchOutcome:
    """Payload plus the reason it is degraded (None when live)."""

    data: Any
    degraded_reason: Optional[str] = None

    @property
    def live(self) -> bool:
        return self.degraded_reason is None

    @property
    def status(self) -> str:
        """live, else the degraded payload's own source.status (synthetic by default)."""
        if self.live:
            return "live"
        source = self.data.get("source") if isinstance(self.data, dict) else None
        return (source or {}).get("status") or "synthetic"


def build_http_client(
    *,
    timeout: float = HTTP_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        headers={"User-Agent": HTTP_USER_AGENT},
        transport=transport,
    )


async def fetch(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> httpx.Response:
    try:
        resp = await client.get(url, params=params, headers=headers)
    except httpx.TimeoutException as e:
        raise UpstreamError(url, None, f"timeout: {e}") from e
    except httpx.HTTPError as e:
        raise UpstreamError(url, None, f"transport: {e}") from e
    if not resp.is_success:
        raise UpstreamError(url, resp.status_code)
    return resp


async def fetch_json(client: httpx.AsyncClient, url: str, **kwargs) -> Any:
    resp = await fetch(client, url, **kwargs)
    try:
        return resp.json()
    except ValueError as e:
        raise FeedFormatError(f"invalid JSON from {url}: {e}") from e


async def fetch_text(client: httpx.AsyncClient, url: str, **kwargs) -> str:
    resp = await fetch(client, url, **kwargs)
    return resp.text


async def fetch_image(client: httpx.AsyncClient, url: str, *, default_type: str = "image/png", **kwargs) -> tuple[bytes, str]:
    """Raw bytes plus an image/* content type (non-image types are replaced)."""
    resp = await fetch(client, url, **kwargs)
    ct = (resp.headers.get("content-type") or "").lower()
    return resp.content, (ct if ct.startswith("image/") else default_type)
