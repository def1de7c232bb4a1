"""Shared pytest fixtures for Auroraview tests."""

from __future__ import annotations

import os
import sys

import httpx
import numpy as np
import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

AURORAVIEW_BASE = os.environ.get("AURORAVIEW_BASE", "http://127.0.0.1:3000")
SCRIPTS_DIR = os.path.join(os.path.dirname(__file__), "..", "scripts")


def _reachable(url: str, timeout: float = 3.0) -> bool:
    try:
        r = requests.get(url + "/api/health", timeout=timeout)
        return r.status_code == 200
    except Exception:
        return False


@pytest.fixture(scope="session")
def auroraview_base():
    """URL of a running Auroraview backend. Skip session if not reachable."""
    if not _reachable(AURORAVIEW_BASE):
        pytest.skip(f"Auroraview server not reachable at {AURORAVIEW_BASE}; set AURORAVIEW_BASE or start backend.")
    return AURORAVIEW_BASE


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_718_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class Upstream:
    """httpx.MockTransport handler dispatching on URL fragments; records calls."""

    def __init__(self, routes: dict):
        self.routes = dict(routes)
        self.calls: list = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(request)
        for fragment, respond in self.routes.items():
            if fragment in url:
                return respond(request)
        return httpx.Response(404, text="no route")

    def count(self, fragment: str) -> int:
        return sum(1 for r in self.calls if fragment in str(r.url))


@pytest.fixture
def make_state(clock):
    """Build an AppState whose upstream calls are served by route callables."""
    from services.app_state import build_app_state

    def _make(routes: dict):
        upstream = Upstream(routes)
        state = build_app_state(
            transport=httpx.MockTransport(upstream),
            clock=clock,
            rng=np.random.default_rng(7),
            time_offset_min=0,
        )
        return state, upstream

    return _make


def connect_error(request: httpx.Request):
    raise httpx.ConnectError("connection refused", request=request)


def status(code: int):
    return lambda request: httpx.Response(code, text="upstream says no")
