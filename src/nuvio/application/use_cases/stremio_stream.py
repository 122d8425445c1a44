"""Stremio stream aggregation use case.

Content id -> TMDB id + display metadata -> parallel provider fetches
(cache first, shared deadline) -> filter -> sort -> format.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import replace
from functools import partial
from typing import Any, Protocol

import structlog

from nuvio.domain.entities.stremio import (
    PROVIDER_ORDER,
    CacheStatus,
    Provider,
    ProviderSettings,
    RawStream,
    RequestContext,
    StreamRequestOptions,
    StremioStream,
    StremioStreamRequest,
)
from nuvio.domain.ports.metrics import MetricsRecorderPort
from nuvio.domain.ports.stream_provider import StreamProviderPort
from nuvio.domain.ports.tmdb import TmdbClientPort

log = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Protocols: what this use case needs from its dependencies.
# Infrastructure components satisfy these via structural subtyping.
# ---------------------------------------------------------------------------


class _StreamCache(Protocol):
    async def get(
        self,
        provider: str,
        content_type: str,
        content_id: str,
        season: int | None = None,
        episode: int | None = None,
        region: str | None = None,
        cookie: str | None = None,
    ) -> list[RawStream] | None: ...

    async def set(
        self,
        provider: str,
        content_type: str,
        content_id: str,
        streams: Sequence[RawStream],
        status: CacheStatus = CacheStatus.OK,
        season: int | None = None,
        episode: int | None = None,
        region: str | None = None,
        cookie: str | None = None,
        ttl_ms: int | None = None,
    ) -> None: ...


class _FanOut(Protocol):
    async def __call__(
        self,
        tasks: Mapping[str, Callable[[], Awaitable[list[RawStream]]]],
        deadline: float,
        *,
        grace: float = ...,
        task_timeout: float | None = ...,
        metrics: MetricsRecorderPort | None = ...,
        on_abandoned: Callable[[asyncio.Task], None] | None = ...,
    ) -> dict[str, list[RawStream]]: ...


# Type aliases for injected pure functions.
_FilterFn = Callable[..., list[RawStream]]
_MergeFn = Callable[..., list[RawStream]]
_FormatFn = Callable[[RawStream, RequestContext], StremioStream]


class StremioStreamUseCase:
    """Aggregate streams for one Stremio request.

    Flow:
        1. Resolve the content id to a TMDB id (IMDb ids via TMDB /find).
        2. Fetch display metadata (title, year, season title).
        3. Run every enabled, selected provider concurrently under a
           shared deadline; each consults the stream cache first and
           writes its outcome back.
        4. Apply the user's per-provider quality floor and codec
           exclusions.
        5. Concatenate providers in fixed order, each sorted by quality
           then size.
        6. Format into StremioStream objects.

    ``execute`` never raises; every failure degrades to fewer streams.
    """

    def __init__(
        self,
        *,
        providers: Mapping[Provider, StreamProviderPort],
        settings: ProviderSettings,
        run_all: _FanOut,
        filter_fn: _FilterFn,
        merge_fn: _MergeFn,
        format_fn: _FormatFn,
        tmdb: TmdbClientPort | None = None,
        stream_cache: _StreamCache | None = None,
        metrics: MetricsRecorderPort | None = None,
        on_abandoned: Callable[[asyncio.Task], None] | None = None,
    ) -> None:
        self._providers = dict(providers)
        self._settings = settings
        self._run_all = run_all
        self._filter_fn = filter_fn
        self._merge_fn = merge_fn
        self._format_fn = format_fn
        self._tmdb = tmdb
        self._cache = stream_cache
        self._metrics = metrics
        self._on_abandoned = on_abandoned

    async def execute(
        self,
        request: StremioStreamRequest,
        options: StreamRequestOptions | None = None,
    ) -> list[StremioStream]:
        """Resolve streams for a Stremio request.

        Returns:
            Streams grouped by provider in fixed order, best first within
            each group. Empty when the id cannot be resolved or nothing
            was found.
        """
        started = time.perf_counter()
        options = options or StreamRequestOptions()
        try:
            context = await self._build_context(request, options)
            if context is None:
                return []
            streams = await self._collect(context)
        except Exception:
            log.exception("stremio_stream_failed", content_id=request.content_id)
            return []

        log.info(
            "stremio_stream_timings",
            content_id=request.content_id,
            tmdb_id=context.tmdb_id,
            streams=len(streams),
            total_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return streams

    # ------------------------------------------------------------------
    # Request context
    # ------------------------------------------------------------------

    async def _build_context(
        self,
        request: StremioStreamRequest,
        options: StreamRequestOptions,
    ) -> RequestContext | None:
        media_type = request.media_type
        fallback_title: str | None = None

        if request.is_tmdb:
            tmdb_id = request.content_id.removeprefix("tmdb:")
        else:
            if self._tmdb is None:
                log.warning("stremio_tmdb_unavailable", content_id=request.content_id)
                return None
            resolved = await self._tmdb.resolve_imdb_id(request.content_id, media_type)
            if resolved is None:
                log.warning("stremio_id_unresolved", content_id=request.content_id)
                return None
            tmdb_id = resolved.tmdb_id
            media_type = resolved.media_type
            fallback_title = resolved.title

        details = None
        if self._tmdb is not None:
            details = await self._tmdb.get_details(tmdb_id, media_type, request.season)
        if details is None:
            log.info("stremio_metadata_unavailable", tmdb_id=tmdb_id)

        context = RequestContext(
            content_type=media_type,
            tmdb_id=tmdb_id,
            season=request.season,
            episode=request.episode,
            options=options,
            title=(details.title if details else None) or fallback_title,
            year=details.year if details else None,
            season_title=details.season_title if details else None,
            is_animation=details.is_animation if details else False,
        )
        log.info(
            "stremio_stream_request",
            content_id=request.content_id,
            tmdb_id=tmdb_id,
            media_type=media_type,
            season=request.season,
            episode=request.episode,
            title=context.title,
            options=options.masked(),
        )
        return context

    # ------------------------------------------------------------------
    # Provider fan-out
    # ------------------------------------------------------------------

    def _active_providers(self, context: RequestContext) -> list[Provider]:
        active: list[Provider] = []
        for provider in PROVIDER_ORDER:
            if not self._settings.is_enabled(provider):
                log.debug("provider_skipped_disabled", provider=provider.value)
            elif provider not in self._providers:
                log.debug("provider_skipped_unavailable", provider=provider.value)
            elif not context.wants(provider):
                log.debug("provider_skipped_deselected", provider=provider.value)
            else:
                active.append(provider)
        return active

    async def _collect(self, context: RequestContext) -> list[StremioStream]:
        active = self._active_providers(context)
        if not active:
            log.info("stremio_no_active_providers", tmdb_id=context.tmdb_id)
            return []

        tasks = {p.value: partial(self._fetch_provider, p, context) for p in active}
        results = await self._run_all(
            tasks,
            self._settings.deadline_seconds,
            grace=self._settings.grace_seconds,
            metrics=self._metrics,
            on_abandoned=self._on_abandoned,
        )

        by_provider: dict[Provider, list[RawStream]] = {}
        counts: dict[str, Any] = {}
        for provider in active:
            raw = results.get(provider.value, [])
            tagged = [replace(s, provider=provider.display_name) for s in raw]
            filtered = self._filter_fn(
                tagged,
                provider.value,
                context.min_quality_for(provider),
                context.exclude_codecs_for(provider),
            )
            by_provider[provider] = filtered
            counts[provider.value] = {"raw": len(raw), "kept": len(filtered)}

        ordered = self._merge_fn(by_provider, PROVIDER_ORDER)
        log.info("stremio_provider_results", tmdb_id=context.tmdb_id, **counts)
        return [self._format_fn(stream, context) for stream in ordered]

    async def _fetch_provider(
        self, provider: Provider, context: RequestContext
    ) -> list[RawStream]:
        """Cache lookup, then fetch and cache write. Fetch errors propagate."""
        key_args: dict[str, Any] = {
            "season": context.season,
            "episode": context.episode,
            "region": context.region,
            "cookie": context.cookies[0] if context.cookies else None,
        }

        if self._cache is not None:
            cached = await self._cache.get(
                provider.value, context.content_type, context.tmdb_id, **key_args
            )
            hit = cached is not None
            if self._metrics is not None:
                self._metrics.record_cache_lookup(provider.value, hit=hit)
            if cached is not None:
                return cached

        adapter = self._providers[provider]
        fetch = adapter.fetch_streams(
            context.tmdb_id, context.content_type, context.season, context.episode
        )
        timeout = self._settings.fetch_timeouts.get(provider)
        try:
            if timeout is not None:
                streams = await asyncio.wait_for(fetch, timeout=timeout)
            else:
                streams = await fetch
        except Exception:
            await self._write_cache(provider, context, [], CacheStatus.FAILED, key_args)
            raise

        status = CacheStatus.OK if streams else CacheStatus.FAILED
        await self._write_cache(provider, context, streams, status, key_args)
        return streams

    async def _write_cache(
        self,
        provider: Provider,
        context: RequestContext,
        streams: list[RawStream],
        status: CacheStatus,
        key_args: dict[str, Any],
    ) -> None:
        if self._cache is None:
            return
        await self._cache.set(
            provider.value,
            context.content_type,
            context.tmdb_id,
            streams,
            status,
            **key_args,
        )
        if self._metrics is not None:
            self._metrics.record_cache_write(provider.value)
