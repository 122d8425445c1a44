"""Two-tier stream cache: Redis first, JSON files as fallback.

Entries record the outcome of every provider fetch, successful or not.
A ``failed`` entry is kept for diagnostics but reads treat it as a miss
so the next request retries the provider.
"""

from __future__ import annotations

import hashlib
import time
from collections.abc import Callable, Sequence
from typing import Any

import structlog

from nuvio.domain.entities.stremio import CacheEntry, CacheStatus, RawStream
from nuvio.domain.ports.cache import CachePort
from nuvio.infrastructure.stremio.stream_converter import convert_streams

log = structlog.get_logger(__name__)

DEFAULT_TTL_MS = 30 * 60 * 1000

# Always fetched fresh; never read from or written to the cache.
UNCACHED_PROVIDERS = frozenset({"showbox", "pstream"})

# Results depend on the caller's region and cookie.
IDENTITY_SENSITIVE_PROVIDERS = frozenset({"showbox"})


def stream_cache_key(
    provider: str,
    content_type: str,
    content_id: str,
    season: int | None = None,
    episode: int | None = None,
    region: str | None = None,
    cookie: str | None = None,
) -> str:
    """Derive the cache key. Cookie material only enters as a short hash."""
    key = f"streams_{provider}_{content_type}_{content_id}"
    if season is not None and episode is not None:
        key += f"_s{season}e{episode}"
    if provider.lower() in IDENTITY_SENSITIVE_PROVIDERS and (region or cookie):
        key += "_custom"
        if region:
            key += f"_{region}"
        if cookie:
            key += f"_{hashlib.md5(cookie.encode()).hexdigest()[:10]}"
    return key


def _serialize_entry(entry: CacheEntry) -> dict[str, Any]:
    return {
        "streams": [s.to_dict() for s in entry.streams],
        "status": entry.status.value,
        "expiry": entry.expiry,
        "timestamp": entry.timestamp,
    }


def _deserialize_entry(data: Any) -> CacheEntry:
    if not isinstance(data, dict):
        raise ValueError(f"cache entry must be an object, got {type(data).__name__}")
    streams = data.get("streams") or []
    if not isinstance(streams, list):
        raise ValueError("cache entry streams must be a list")
    return CacheEntry(
        streams=tuple(convert_streams(streams)),
        status=CacheStatus(data.get("status", CacheStatus.OK.value)),
        expiry=int(data.get("expiry") or 0),
        timestamp=int(data.get("timestamp") or 0),
    )


class StreamCacheStore:
    """Per-provider stream cache over an optional remote and a file backend.

    Args:
        file_cache: Local fallback backend (always written).
        remote: Remote backend (Redis), or None when unavailable.
        ttl_ms: Default entry lifetime in milliseconds.
        enabled: When False every operation is a no-op.
        clock: Returns the current time in seconds (injectable for tests).
    """

    def __init__(
        self,
        file_cache: CachePort,
        remote: CachePort | None = None,
        *,
        ttl_ms: int = DEFAULT_TTL_MS,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.file_cache = file_cache
        self.remote = remote
        self.ttl_ms = ttl_ms
        self.enabled = enabled
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def is_cacheable(self, provider: str) -> bool:
        return self.enabled and provider.lower() not in UNCACHED_PROVIDERS

    async def get(
        self,
        provider: str,
        content_type: str,
        content_id: str,
        season: int | None = None,
        episode: int | None = None,
        region: str | None = None,
        cookie: str | None = None,
    ) -> list[RawStream] | None:
        """Return cached streams, or None on miss, expiry or failed entry."""
        if not self.is_cacheable(provider):
            return None

        key = stream_cache_key(
            provider, content_type, content_id, season, episode, region, cookie
        )
        tiers: list[tuple[str, CachePort]] = []
        if self.remote is not None:
            tiers.append(("redis", self.remote))
        tiers.append(("file", self.file_cache))

        for tier, backend in tiers:
            data = await backend.get(key)
            if data is None:
                continue
            try:
                entry = _deserialize_entry(data)
            except (ValueError, TypeError) as e:
                log.warning("stream_cache_corrupt", key=key, tier=tier, error=str(e))
                continue

            if entry.is_expired(self._now_ms()):
                log.info("stream_cache_expired", provider=provider, key=key, tier=tier)
                await backend.delete(key)
                return None
            if entry.status is CacheStatus.FAILED:
                log.info(
                    "stream_cache_retry_failed", provider=provider, key=key, tier=tier
                )
                return None

            log.info(
                "stream_cache_hit",
                provider=provider,
                key=key,
                tier=tier,
                streams=len(entry.streams),
            )
            return list(entry.streams)

        log.debug("stream_cache_miss", provider=provider, key=key)
        return None

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
    ) -> None:
        """Write the entry to every backend; backend failures are only logged."""
        if not self.is_cacheable(provider):
            return

        key = stream_cache_key(
            provider, content_type, content_id, season, episode, region, cookie
        )
        effective_ttl_ms = ttl_ms if ttl_ms is not None else self.ttl_ms
        now = self._now_ms()
        payload = _serialize_entry(
            CacheEntry(
                streams=tuple(streams),
                status=status,
                expiry=now + effective_ttl_ms,
                timestamp=now,
            )
        )

        if self.remote is not None:
            await self.remote.set(key, payload, ttl=effective_ttl_ms / 1000)
        await self.file_cache.set(key, payload)
        log.info(
            "stream_cache_saved",
            provider=provider,
            key=key,
            streams=len(streams),
            status=status.value,
            ttl_ms=effective_ttl_ms,
        )
