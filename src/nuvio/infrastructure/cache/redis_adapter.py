"""Redis-Adapter - Async Redis via redis.asyncio."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

log = structlog.get_logger(__name__)


class RedisAdapter:
    """Async Redis cache storing JSON strings.

    - Uses `redis.asyncio.Redis` (async-native, no to_thread needed).
    - Semaphore limits parallel Redis ops (prevents connection exhaustion).
    - Bounded retries with capped exponential backoff, short socket
      timeouts and a periodic health check, so an outage surfaces as a
      logged error (and a cache miss) instead of a hung request.
    - TTLs are applied with millisecond precision (``SET ... PX``).

    Args:
        url: Redis URL (e.g. `redis://localhost:6379/0`).
        ttl_seconds: Default TTL.
        max_concurrent: Max parallel Redis ops.
        max_retries: Retries per command on connection errors.
        socket_timeout: Connect and read timeout in seconds.
        health_check_interval: Seconds between connection health checks.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        ttl_seconds: float = 1800,
        max_concurrent: int = 50,
        *,
        max_retries: int = 5,
        socket_timeout: float = 5.0,
        health_check_interval: int = 240,
    ) -> None:
        self.url = url
        self.default_ttl = ttl_seconds
        self.max_retries = max_retries
        self.socket_timeout = socket_timeout
        self.health_check_interval = health_check_interval
        self._client: Redis | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

        log.info(
            "redis_adapter_init",
            url=_redact(url),
            default_ttl=ttl_seconds,
            max_concurrent=max_concurrent,
        )

    # --- Context Manager ---
    async def __aenter__(self) -> RedisAdapter:
        """Create the client and PING; raises RedisError when unreachable."""
        if self._client is None:
            client = Redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                retry=Retry(ExponentialBackoff(cap=5.0, base=0.5), self.max_retries),
                retry_on_error=[RedisConnectionError, RedisTimeoutError],
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                health_check_interval=self.health_check_interval,
            )
            try:
                await client.ping()
            except RedisError as e:
                log.error(
                    "redis_connection_failed", url=_redact(self.url), error=str(e)
                )
                await client.aclose()
                raise
            self._client = client
            log.info("redis_connected", url=_redact(self.url))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Cleanup: close Redis connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.info("redis_closed")

    # --- CachePort implementation ---
    async def get(self, key: str) -> Any | None:
        """GET with JSON deserialization."""
        if self._client is None:
            raise RuntimeError("Redis not initialized. Use 'async with cache:'")

        async with self._semaphore:
            try:
                raw = await self._client.get(key)
            except RedisError as e:
                log.error("redis_get_error", key=key, error=str(e))
                return None

        if raw is None:
            log.debug("cache_miss", key=key)
            return None
        try:
            value = json.loads(raw)
        except ValueError as e:
            log.error("redis_decode_error", key=key, error=str(e))
            return None
        log.debug("cache_hit", key=key)
        return value

    async def set(self, key: str, value: Any, *, ttl: float | None = None) -> None:
        """SET with JSON serialization + TTL (PX)."""
        if self._client is None:
            raise RuntimeError("Redis not initialized.")

        expire_time = ttl if ttl is not None else self.default_ttl

        try:
            packed = json.dumps(value)
        except (TypeError, ValueError) as e:
            log.error("json_serialize_error", key=key, error=str(e))
            return

        async with self._semaphore:
            try:
                await self._client.set(
                    key, packed, px=max(int(expire_time * 1000), 1)
                )
                log.debug(
                    "cache_set",
                    key=key,
                    ttl=expire_time,
                    size_bytes=len(packed),
                )
            except RedisError as e:
                log.error("redis_set_error", key=key, error=str(e))

    async def delete(self, key: str) -> bool:
        if self._client is None:
            return False

        async with self._semaphore:
            try:
                deleted = await self._client.delete(key)
                log.debug("cache_delete", key=key, deleted=deleted > 0)
                return deleted > 0
            except RedisError as e:
                log.error("redis_delete_error", key=key, error=str(e))
                return False

    async def exists(self, key: str) -> bool:
        if self._client is None:
            return False

        async with self._semaphore:
            try:
                exists = await self._client.exists(key)
                return exists > 0
            except RedisError as e:
                log.error("redis_exists_error", key=key, error=str(e))
                return False

    async def ping(self) -> bool:
        """Liveness check used by the readiness check."""
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            log.warning("redis_ping_failed", error=str(e))
            return False

    async def clear(self) -> None:
        """FLUSHDB (delete ALL keys in current DB)."""
        if self._client is None:
            return

        async with self._semaphore:
            try:
                await self._client.flushdb()
                log.warning("redis_flushed")
            except RedisError as e:
                log.error("redis_flush_error", error=str(e))


def _redact(url: str) -> str:
    """Hide the password part of a Redis URL."""
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    _, _, host = rest.rpartition("@")
    return f"{scheme}://***@{host}"
