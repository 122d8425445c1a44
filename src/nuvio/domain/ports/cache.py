"""Cache Port - Interface for backend-agnostic caching strategies."""

from __future__ import annotations

from typing import Any, Protocol


class CachePort(Protocol):
    """Port for async key-value cache with TTL support.

    Implementations:
      - RedisAdapter (remote store, TTL enforced by Redis)
      - FileCacheAdapter (one JSON file per key)
      - DiskcacheAdapter (SQLite-based, used for TMDB metadata)

    Values must be JSON-serializable. Adapters never raise on backend
    failure: reads return None, writes are logged and dropped.
    """

    async def get(self, key: str) -> Any:
        """Retrieve value. None = not found / backend unavailable."""
        ...

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        """Set value with optional TTL (seconds)."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. True = deleted, False = did not exist."""
        ...

    async def exists(self, key: str) -> bool:
        ...

    async def clear(self) -> None:
        ...

    async def aclose(self) -> None:
        """Cleanup hook (e.g. close Redis connection)."""
        ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
