"""Runtime metrics endpoint."""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from nuvio.infrastructure.fanout import abandoned_task_count
from nuvio.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/metrics")
async def metrics(request: Request) -> JSONResponse:
    """Return in-memory runtime metrics.

    Includes provider fetch stats, stream cache hit ratio, and
    graceful-shutdown status.
    """
    state = cast(AppState, request.app.state)

    data: dict[str, Any] = {}

    m = getattr(state, "metrics", None)
    if m is not None:
        data.update(m.snapshot())

    gs = getattr(state, "graceful_shutdown", None)
    if gs is not None:
        data["shutdown"] = {
            "is_ready": gs.is_ready,
            "is_shutting_down": gs.is_shutting_down,
            "active_requests": gs.active_requests,
            "background_tasks": gs.background_tasks,
        }
    data["abandoned_provider_tasks"] = abandoned_task_count()

    return JSONResponse(content=data)
