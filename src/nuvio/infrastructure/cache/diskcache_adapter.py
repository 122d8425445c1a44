"""Diskcache adapter - SQLite-based cache without daemon process."""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Any

import structlog
from diskcache import Cache as DiskCache
from diskcache import Timeout as DiskcacheTimeout

log = structlog.get_logger(__name__)

_DISK_ERRORS = (OSError, sqlite3.Error, DiskcacheTimeout)


class DiskcacheAdapter:
    """Async wrapper for diskcache.Cache (sync-only library).

    Holds TMDB lookups, which are long-lived and must survive restarts
    even when Redis is not configured.

    - Blocking SQLite I/O runs via `asyncio.to_thread`.
    - Semaphore prevents too many parallel disk writes (lock contention).
    - Disk errors are logged; reads then miss and writes are dropped.

    Args:
        directory: SQLite DB path.
        ttl_seconds: Default TTL for `set()` without explicit value.
        max_concurrent: Max parallel disk ops.
    """

    def __init__(
        self,
        directory: str | Path = "./cache/metadata",
        ttl_seconds: float = 86400,
        max_concurrent: int = 10,
    ) -> None:
        self.directory = Path(directory)
        self.default_ttl = ttl_seconds
        self._cache: DiskCache | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    # --- Context Manager ---
    async def __aenter__(self) -> DiskcacheAdapter:
        if self._cache is None:
            self._cache = await asyncio.to_thread(DiskCache, str(self.directory))
            log.info("diskcache_opened", path=str(self.directory))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._cache is not None:
            await asyncio.to_thread(self._cache.close)
            self._cache = None
            log.info("diskcache_closed", directory=str(self.directory))

    # --- CachePort implementation ---
    async def get(self, key: str) -> Any | None:
        if self._cache is None:
            raise RuntimeError(
                "Cache not initialized. Use 'async with cache:' "
                "or await cache.__aenter__()"
            )

        async with self._semaphore:
            try:
                value = await asyncio.to_thread(self._cache.get, key, default=None)
            except _DISK_ERRORS as e:
                log.error("diskcache_get_error", key=key, error=str(e))
                return None
        log.debug("cache_get", key=key, hit=value is not None)
        return value

    async def set(self, key: str, value: Any, *, ttl: float | None = None) -> None:
        if self._cache is None:
            raise RuntimeError("Cache not initialized.")

        expire_time = ttl if ttl is not None else self.default_ttl

        async with self._semaphore:
            try:
                await asyncio.to_thread(self._cache.set, key, value, expire=expire_time)
            except _DISK_ERRORS as e:
                log.error("diskcache_set_error", key=key, error=str(e))
                return
        log.debug("cache_set", key=key, ttl=expire_time)

    async def delete(self, key: str) -> bool:
        if self._cache is None:
            return False

        async with self._semaphore:
            try:
                deleted = await asyncio.to_thread(self._cache.delete, key)
            except _DISK_ERRORS as e:
                log.error("diskcache_delete_error", key=key, error=str(e))
                return False
        return bool(deleted)

    async def exists(self, key: str) -> bool:
        if self._cache is None:
            return False

        cache = self._cache
        async with self._semaphore:
            # Cache.__contains__ checks existence + expiry
            return await asyncio.to_thread(cache.__contains__, key)

    async def clear(self) -> None:
        if self._cache is None:
            return

        async with self._semaphore:
            await asyncio.to_thread(self._cache.clear)
            log.warning("cache_cleared", directory=str(self.directory))
