"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from nuvio.infrastructure.config import AppConfig
from nuvio.infrastructure.graceful_shutdown import GracefulShutdown
from nuvio.interfaces.app_state import AppState
from nuvio.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration only, no resource initialization.

    Resources (HTTP client, caches, providers) are created in lifespan().
    """
    app = FastAPI(
        title=config.stremio.addon_name,
        description=config.stremio.addon_description,
        version=config.stremio.addon_version,
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config
    app.state.graceful_shutdown = GracefulShutdown()

    from nuvio.interfaces.api.stats.router import router as stats_router
    from nuvio.interfaces.api.stremio.router import router as stremio_router

    app.include_router(stremio_router, prefix="/api/v1")
    app.include_router(stats_router, prefix="/api/v1")

    @app.get("/api/v1/healthz")
    async def healthz() -> dict[str, str | list[str]]:
        """Liveness check: returns 200 as long as the process is running."""
        providers = getattr(app.state, "providers", None) or {}
        return {
            "status": "ok",
            "providers": [p.value for p in providers],
        }

    @app.get("/api/v1/readyz")
    async def readyz() -> Response:
        """Readiness check: 200 after startup complete, 503 otherwise."""
        gs: GracefulShutdown = app.state.graceful_shutdown
        if not gs.is_ready or gs.is_shutting_down:
            return JSONResponse({"status": "not_ready"}, status_code=503)
        body: dict[str, str] = {"status": "ready"}
        redis = getattr(app.state, "redis", None)
        if redis is not None:
            body["redis"] = "ok" if await redis.ping() else "unreachable"
        return JSONResponse(body, status_code=200)

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        gs: GracefulShutdown = app.state.graceful_shutdown
        gs.request_started()
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            gs.request_finished()
            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "http_request",
                method=request.method,
                path=_loggable_path(request.url.path),
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app


def _loggable_path(path: str) -> str:
    """Hide the user config segment (may carry cookies or API keys)."""
    parts = path.split("/")
    # /api/v1/stremio/<config>/stream/... or /api/v1/stremio/<config>/manifest.json
    if len(parts) > 5 and parts[3] == "stremio" and parts[4] not in (
        "stream",
        "manifest.json",
    ):
        parts[4] = "<config>"
    return "/".join(parts)
