"""Zero-impact in-memory performance metrics.

All counters are plain Python integers manipulated inside the single-threaded
async event loop, so no locks are needed.

``time.perf_counter_ns()`` is used for timing (monotonic, nanosecond
resolution, near-zero overhead).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class ProviderStats:
    """Accumulated statistics for a single provider."""

    fetches: int = 0
    successes: int = 0
    failures: int = 0
    timeouts: int = 0
    total_streams: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        avg_ms = (
            round(self.total_duration_ns / self.fetches / 1_000_000, 1)
            if self.fetches
            else 0.0
        )
        return {
            "fetches": self.fetches,
            "successes": self.successes,
            "failures": self.failures,
            "timeouts": self.timeouts,
            "total_streams": self.total_streams,
            "avg_duration_ms": avg_ms,
        }


@dataclass
class CacheStats:
    """Stream cache lookups and writes for a single provider."""

    hits: int = 0
    misses: int = 0
    writes: int = 0

    def snapshot(self) -> dict[str, object]:
        lookups = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "writes": self.writes,
            "hit_ratio": round(self.hits / lookups, 3) if lookups else 0.0,
        }


@dataclass
class MetricsCollector:
    """Central in-memory metrics collector."""

    _providers: dict[str, ProviderStats] = field(default_factory=dict)
    _cache: dict[str, CacheStats] = field(default_factory=dict)
    _requests: int = 0
    _start_ns: int = field(default_factory=time.perf_counter_ns)

    def _provider(self, name: str) -> ProviderStats:
        stats = self._providers.get(name)
        if stats is None:
            stats = self._providers[name] = ProviderStats()
        return stats

    def _cache_stats(self, name: str) -> CacheStats:
        stats = self._cache.get(name)
        if stats is None:
            stats = self._cache[name] = CacheStats()
        return stats

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_stream_request(self) -> None:
        self._requests += 1

    def record_provider_fetch(
        self,
        provider: str,
        duration_ns: int,
        stream_count: int,
        *,
        success: bool,
    ) -> None:
        """Record one provider fetch that finished (successfully or not)."""
        stats = self._provider(provider)
        stats.fetches += 1
        stats.total_duration_ns += duration_ns
        if success:
            stats.successes += 1
            stats.total_streams += stream_count
        else:
            stats.failures += 1

    def record_provider_timeout(self, provider: str) -> None:
        """Record a fetch still running when the response deadline passed."""
        self._provider(provider).timeouts += 1

    def record_cache_lookup(self, provider: str, *, hit: bool) -> None:
        stats = self._cache_stats(provider)
        if hit:
            stats.hits += 1
        else:
            stats.misses += 1

    def record_cache_write(self, provider: str) -> None:
        self._cache_stats(provider).writes += 1

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable snapshot of all metrics."""
        uptime_ns = time.perf_counter_ns() - self._start_ns
        return {
            "uptime_seconds": round(uptime_ns / 1_000_000_000, 1),
            "stream_requests": self._requests,
            "providers": {
                name: s.snapshot() for name, s in sorted(self._providers.items())
            },
            "stream_cache": {
                name: s.snapshot() for name, s in sorted(self._cache.items())
            },
        }
