"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI
from redis.exceptions import RedisError

from nuvio.application.use_cases.stremio_stream import StremioStreamUseCase
from nuvio.infrastructure.cache.cache_factory import create_cache
from nuvio.infrastructure.cache.file_adapter import FileCacheAdapter
from nuvio.infrastructure.cache.redis_adapter import RedisAdapter
from nuvio.infrastructure.common.retry_transport import RetryTransport
from nuvio.infrastructure.config.schema import AppConfig
from nuvio.infrastructure.fanout import run_all
from nuvio.infrastructure.metrics import MetricsCollector
from nuvio.infrastructure.persistence.stream_cache import StreamCacheStore
from nuvio.infrastructure.providers import build_providers
from nuvio.infrastructure.stremio.stream_filter import filter_streams
from nuvio.infrastructure.stremio.stream_formatter import format_stream
from nuvio.infrastructure.stremio.stream_sorter import merge_in_provider_order
from nuvio.infrastructure.tmdb.client import HttpxTmdbClient
from nuvio.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


async def _connect_redis(config: AppConfig) -> RedisAdapter | None:
    """Open the Redis stream cache tier; None when disabled or unreachable."""
    if not config.cache.use_redis:
        return None
    redis = cast(
        RedisAdapter,
        create_cache(
            backend="redis",
            redis_url=config.cache.redis_url,
            ttl_seconds=config.cache.stream_ttl_seconds,
        ),
    )
    try:
        await redis.__aenter__()
    except (RedisError, OSError):
        log.warning("redis_unavailable_file_cache_only", exc_info=True)
        return None
    return redis


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Metrics (recorded into by the stream cache and use case)
        2. Metadata cache (TMDB lookups)
        3. Stream cache tiers (file, optional Redis)
        4. HTTP client (shared by TMDB and providers)
        5. TMDB client and provider adapters
        6. Stream use case
    """
    state = cast(AppState, app.state)
    config = state.config
    gs = state.graceful_shutdown

    # 1) Metrics collector
    state.metrics = MetricsCollector()

    # 2) Metadata cache
    cache = create_cache(
        backend="diskcache",
        directory=str(config.cache.directory),
        ttl_seconds=config.cache.metadata_ttl_seconds,
        max_concurrent=config.cache.max_concurrent,
    )
    await cache.__aenter__()
    state.cache = cache
    log.info("cache_initialized", directory=str(config.cache.directory))

    # 3) Stream cache: file tier always, Redis first when reachable
    file_cache = cast(
        FileCacheAdapter,
        create_cache(
            backend="file",
            directory=str(config.cache.stream_cache_dir),
            max_concurrent=config.cache.max_concurrent,
        ),
    )
    await file_cache.__aenter__()
    state.stream_file_cache = file_cache
    state.redis = await _connect_redis(config)
    state.stream_cache = StreamCacheStore(
        file_cache,
        state.redis,
        ttl_ms=config.cache.stream_ttl_seconds * 1000,
        enabled=config.cache.stream_cache_enabled,
    )
    log.info(
        "stream_cache_initialized",
        enabled=config.cache.stream_cache_enabled,
        redis=state.redis is not None,
        directory=str(config.cache.stream_cache_dir),
    )

    # 4) HTTP client with 429/5xx retry
    transport = RetryTransport(
        wrapped=httpx.AsyncHTTPTransport(),
        max_retries=config.http_max_retries,
    )
    state.http_client = httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=config.http_follow_redirects,
    )
    log.info("http_client_initialized", max_retries=config.http_max_retries)

    # 5) TMDB client and providers
    if config.tmdb_api_key:
        state.tmdb_client = HttpxTmdbClient(
            api_key=config.tmdb_api_key,
            http_client=state.http_client,
            cache=state.cache,
        )
        log.info("tmdb_client_initialized")
    else:
        state.tmdb_client = None
        log.warning("tmdb_client_disabled", reason="no API key, tmdb: ids only")

    state.providers = build_providers(config, state.http_client)

    # 6) Stream use case
    settings = config.provider_settings()
    state.stremio_stream_uc = StremioStreamUseCase(
        providers=state.providers,
        settings=settings,
        run_all=run_all,
        filter_fn=filter_streams,
        merge_fn=merge_in_provider_order,
        format_fn=format_stream,
        tmdb=state.tmdb_client,
        stream_cache=state.stream_cache,
        metrics=state.metrics,
        on_abandoned=gs.track_task,
    )
    log.info(
        "stremio_stream_uc_initialized",
        providers=[p.value for p in state.providers],
        deadline_seconds=settings.deadline_seconds,
        grace_seconds=settings.grace_seconds,
    )

    gs.mark_ready()
    log.info("app_startup_complete")

    try:
        yield
    finally:
        timeout = config.shutdown_timeout_seconds
        await gs.wait_for_drain(timeout=timeout)
        await gs.wait_for_background(timeout=timeout)

        await state.http_client.aclose()
        log.info("http_client_closed")

        if state.redis is not None:
            await state.redis.aclose()
            log.info("redis_closed")

        await file_cache.aclose()
        await state.cache.aclose()
        log.info("cache_closed")

        log.info("app_shutdown_complete")
