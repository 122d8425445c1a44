"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from nuvio.infrastructure.config import AppConfig
from nuvio.infrastructure.graceful_shutdown import GracefulShutdown

if TYPE_CHECKING:
    from nuvio.application.use_cases.stremio_stream import StremioStreamUseCase
    from nuvio.domain.entities.stremio import Provider
    from nuvio.domain.ports import CachePort, StreamProviderPort
    from nuvio.domain.ports.tmdb import TmdbClientPort
    from nuvio.infrastructure.cache.redis_adapter import RedisAdapter
    from nuvio.infrastructure.metrics import MetricsCollector
    from nuvio.infrastructure.persistence.stream_cache import StreamCacheStore


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: CachePort  # TMDB metadata cache
    http_client: httpx.AsyncClient
    stream_file_cache: CachePort
    redis: RedisAdapter | None
    stream_cache: StreamCacheStore

    # Metrics (in-memory counters)
    metrics: MetricsCollector

    # Domain ports
    tmdb_client: TmdbClientPort | None
    providers: dict[Provider, StreamProviderPort]

    # Application services
    stremio_stream_uc: StremioStreamUseCase

    # Graceful shutdown (request tracking + drain)
    graceful_shutdown: GracefulShutdown
