"""Port for recording provider and cache metrics."""

from __future__ import annotations

from typing import Protocol


class MetricsRecorderPort(Protocol):
    """Sink for per-request counters. Implementations must not raise."""

    def record_provider_fetch(
        self,
        provider: str,
        duration_ns: int,
        stream_count: int,
        *,
        success: bool,
    ) -> None: ...

    def record_provider_timeout(self, provider: str) -> None: ...

    def record_cache_lookup(self, provider: str, *, hit: bool) -> None: ...

    def record_cache_write(self, provider: str) -> None: ...
