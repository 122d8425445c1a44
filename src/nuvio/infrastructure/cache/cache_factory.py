"""Cache factory - builds an adapter for the configured backend."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import structlog

from nuvio.domain.ports.cache import CachePort
from nuvio.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from nuvio.infrastructure.cache.file_adapter import FileCacheAdapter
from nuvio.infrastructure.cache.redis_adapter import RedisAdapter

log = structlog.get_logger(__name__)

CacheBackend = Literal["diskcache", "redis", "file"]


def create_cache(
    backend: CacheBackend = "diskcache",
    *,
    directory: str | Path = "./cache",
    redis_url: str = "redis://localhost:6379/0",
    ttl_seconds: float = 3600,
    max_concurrent: int = 10,
) -> CachePort:
    """Create a cache adapter for *backend*.

    Args:
        backend: "diskcache" (SQLite), "redis" or "file" (JSON per key).
        directory: Storage path for the diskcache and file backends.
        redis_url: Redis connection string.
        ttl_seconds: Default TTL (ignored by the file backend).
        max_concurrent: Semaphore limit for the local backends; Redis
            uses its own, higher limit.

    Raises:
        ValueError: If `backend` is unknown.
    """
    log.info("cache_factory_create", backend=backend, ttl=ttl_seconds)
    if backend == "diskcache":
        return DiskcacheAdapter(
            directory=directory,
            ttl_seconds=ttl_seconds,
            max_concurrent=max_concurrent,
        )
    elif backend == "redis":
        return RedisAdapter(url=redis_url, ttl_seconds=ttl_seconds, max_concurrent=50)
    elif backend == "file":
        return FileCacheAdapter(directory=directory, max_concurrent=max_concurrent)
    else:
        raise ValueError(
            f"Unknown cache backend: {backend!r}. "
            "Must be 'diskcache', 'redis' or 'file'."
        )
