"""Shared test fixtures for the Nuvio test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from nuvio.domain.entities.stremio import (
    RawStream,
    RequestContext,
    StreamRequestOptions,
)

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def raw_stream() -> RawStream:
    """Minimal MoviesDrive stream."""
    return RawStream(
        url="https://hubcloud.example/file/abc",
        quality="1080p",
        size="2.5 GB",
        title="Inception.2010.1080p.BluRay.x264",
        name="MoviesDrive 1080p",
        provider="MoviesDrive",
    )


@pytest.fixture()
def movie_context() -> RequestContext:
    return RequestContext(
        content_type="movie",
        tmdb_id="27205",
        options=StreamRequestOptions(),
        title="Inception",
        year="2010",
    )


@pytest.fixture()
def series_context() -> RequestContext:
    return RequestContext(
        content_type="tv",
        tmdb_id="1399",
        season=1,
        episode=5,
        options=StreamRequestOptions(),
        title="Game of Thrones",
        year="2011",
        season_title="Season 1",
    )


# ---------------------------------------------------------------------------
# Mock port fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CachePort."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.exists = AsyncMock(return_value=False)
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache
