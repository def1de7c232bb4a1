#!/usr/bin/env python3
"""Auroraview FastAPI backend serving space-weather data to the dashboard frontend."""

import os
import sys
import time
import uuid
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

# Add backend dir to path for flat module imports
sys.path.insert(0, os.path.dirname(__file__))
from logging_config import setup_logging
from constants import LOG_LEVEL, PORT, STATION_CODES, TTL_SECONDS, WARMUP_ENABLED
from routers.core import build_core_router
from routers.fmi import build_fmi_router
from routers.sky import build_sky_router
from routers.space_weather import build_space_weather_router
from services.app_state import AppState, build_app_state
from services.warmup import start_warmup

logger = setup_logging(__name__, level=LOG_LEVEL)

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
FRONTEND_DIR = os.path.join(SCRIPT_DIR, "..", "frontend")

# Routine polling endpoints, only logged on errors
QUIET_PATHS = ("/api/health", "/api/fmi/radar")


def create_app(state: Optional[AppState] = None, *, warmup: bool = WARMUP_ENABLED) -> FastAPI:
    state = state or build_app_state()
    app = FastAPI(title="Auroraview API")
    app.state.aurora = state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        rid = getattr(request.state, "request_id", None) or uuid.uuid4().hex[:12]
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "requestId": rid}, headers={"X-Request-Id": rid})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        rid = getattr(request.state, "request_id", None) or uuid.uuid4().hex[:12]
        # never reaches log_requests; count it here
        state.api_error_counters["5xx"] += 1
        logger.exception(f"Unhandled error rid={rid}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error", "requestId": rid}, headers={"X-Request-Id": rid})

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log API requests with method, path, and response time."""
        start_time = time.time()
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex[:12]
        request.state.request_id = request_id

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        response.headers["X-Request-Id"] = request_id

        if 400 <= response.status_code < 500:
            state.api_error_counters["4xx"] += 1
        elif response.status_code >= 500:
            state.api_error_counters["5xx"] += 1

        if request.url.path not in QUIET_PATHS or response.status_code >= 400:
            logger.info(
                f"{request.method} {request.url.path} - {response.status_code} - {duration_ms:.2f}ms - rid={request_id}"
            )

        return response

    @app.on_event("startup")
    async def startup_event():
        logger.info("Auroraview API server starting")
        logger.info(f"Frontend directory: {FRONTEND_DIR}")
        logger.info(f"Stations: {', '.join(STATION_CODES)}; cache TTL {TTL_SECONDS}s")
        if warmup:
            # Runs in the background; request serving is never blocked on it
            start_warmup(state)
            logger.info("Cache warmup scheduled")

    @app.on_event("shutdown")
    async def shutdown_event():
        await state.aclose()
        logger.info("Auroraview API server stopped")

    app.include_router(build_core_router(state=state))
    app.include_router(build_space_weather_router(state=state))
    app.include_router(build_fmi_router(state=state, logger=logger))
    app.include_router(build_sky_router(state=state, logger=logger))

    # ─── Static Frontend (must be LAST) ───
    if os.path.isdir(FRONTEND_DIR):
        app.mount("/", StaticFiles(directory=FRONTEND_DIR, html=True), name="static")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
