"""Shared HTTP response header builders for proxied images."""

from __future__ import annotations


def build_image_headers(*, cache_control: str, cache: str | None = None) -> dict:
    headers = {
        "Cache-Control": cache_control,
        "Access-Control-Allow-Origin": "*",
    }
    if cache is not None:
        headers["X-Cache"] = cache
        headers["Access-Control-Expose-Headers"] = "X-Cache"
    return headers
