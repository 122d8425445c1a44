"""Stremio addon API endpoints (manifest, stream)."""

from __future__ import annotations

import re
from typing import Any, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from nuvio.domain.entities.stremio import (
    StremioContentType,
    StremioStreamRequest,
    StreamRequestOptions,
)
from nuvio.interfaces.api.stremio.user_config import decode_user_config
from nuvio.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/stremio", tags=["stremio"])

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
}

_CONTENT_TYPES: dict[str, StremioContentType] = {
    "movie": "movie",
    "series": "series",
    "tv": "series",
}

_IMDB_ID_RE = re.compile(r"^(tt\d+)(?::(\d+):(\d+))?$")
_TMDB_ID_RE = re.compile(r"^tmdb:(\d+)(?::(\d+):(\d+))?$")


def build_manifest(state: AppState) -> dict[str, Any]:
    """Build the Stremio addon manifest from the app configuration."""
    stremio = state.config.stremio
    return {
        "id": stremio.addon_id,
        "version": stremio.addon_version,
        "name": stremio.addon_name,
        "description": stremio.addon_description,
        "types": ["movie", "series", "tv"],
        "catalogs": [],
        "resources": ["stream"],
        "idPrefixes": ["tt", "tmdb:"],
        "behaviorHints": {
            "adult": False,
            "configurable": True,
            "configurationRequired": False,
        },
    }


def parse_stream_id(content_type: str, raw_id: str) -> StremioStreamRequest | None:
    """Parse a Stremio stream id into a StremioStreamRequest.

    Movies: "tt1234567" or "tmdb:12345"
    Series: "tt1234567:1:5" or "tmdb:12345:1:5" (season 1, episode 5)

    ``tv`` is accepted as an alias of ``series``. Season and episode are
    ignored for movies and required for series.
    """
    ct = _CONTENT_TYPES.get(content_type.lower())
    if ct is None:
        return None

    match = _IMDB_ID_RE.match(raw_id)
    if match:
        content_id = match.group(1)
    else:
        match = _TMDB_ID_RE.match(raw_id)
        if not match:
            return None
        content_id = f"tmdb:{match.group(1)}"

    if ct == "movie":
        return StremioStreamRequest(content_id=content_id, content_type=ct)

    if match.group(2) is None:
        return None
    return StremioStreamRequest(
        content_id=content_id,
        content_type=ct,
        season=int(match.group(2)),
        episode=int(match.group(3)),
    )


def _empty_streams() -> JSONResponse:
    return JSONResponse(content={"streams": []}, headers=_CORS_HEADERS)


async def _serve_streams(
    request: Request,
    content_type: str,
    stream_id: str,
    options: StreamRequestOptions,
) -> JSONResponse:
    state = cast(AppState, request.app.state)

    parsed = parse_stream_id(content_type, stream_id)
    if parsed is None:
        log.warning(
            "stremio_invalid_stream_id",
            content_type=content_type,
            stream_id=stream_id,
        )
        return _empty_streams()

    metrics = getattr(state, "metrics", None)
    if metrics is not None:
        metrics.record_stream_request()

    use_case = getattr(state, "stremio_stream_uc", None)
    if use_case is None:
        log.warning("stremio_stream_uc_unavailable")
        return _empty_streams()

    try:
        streams = await use_case.execute(parsed, options)
    except Exception:
        log.exception("stremio_stream_endpoint_failed", stream_id=stream_id)
        return _empty_streams()

    return JSONResponse(
        content={"streams": [s.to_dict() for s in streams]},
        headers=_CORS_HEADERS,
    )


@router.get("/manifest.json")
async def stremio_manifest(request: Request) -> JSONResponse:
    """Serve the Stremio addon manifest."""
    state = cast(AppState, request.app.state)
    return JSONResponse(content=build_manifest(state), headers=_CORS_HEADERS)


@router.get("/{user_config}/manifest.json")
async def stremio_configured_manifest(
    request: Request, user_config: str
) -> JSONResponse:
    """Serve the manifest for a configured install (config is per-request)."""
    state = cast(AppState, request.app.state)
    return JSONResponse(content=build_manifest(state), headers=_CORS_HEADERS)


@router.get("/stream/{content_type}/{stream_id}.json")
async def stremio_stream(
    request: Request,
    content_type: str,
    stream_id: str,
) -> JSONResponse:
    """Serve streams with the default options (all providers, no filters)."""
    return await _serve_streams(
        request, content_type, stream_id, StreamRequestOptions()
    )


@router.get("/{user_config}/stream/{content_type}/{stream_id}.json")
async def stremio_configured_stream(
    request: Request,
    user_config: str,
    content_type: str,
    stream_id: str,
) -> JSONResponse:
    """Serve streams using the options decoded from the URL config segment."""
    return await _serve_streams(
        request, content_type, stream_id, decode_user_config(user_config)
    )
