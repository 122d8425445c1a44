"""Per-provider stream filtering (quality floor and codec exclusion)."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from nuvio.domain.entities.stremio import RawStream
from nuvio.infrastructure.stremio.quality import parse_quality, stream_quality_rank

log = structlog.get_logger(__name__)


def filter_streams(
    streams: Iterable[RawStream],
    provider: str,
    min_quality: str | int | None = None,
    exclude_codecs: Iterable[str] | None = None,
) -> list[RawStream]:
    """Apply the user's quality floor and codec exclusions.

    A stream whose quality cannot be parsed ranks lowest, so any floor
    drops it. An unparseable floor disables the quality filter.
    """
    result = list(streams)
    before = len(result)

    floor = parse_quality(min_quality)
    if floor:
        result = [s for s in result if stream_quality_rank(s) >= floor]

    excluded = {c.strip().lower() for c in exclude_codecs or () if c and c.strip()}
    if excluded:
        result = [
            s for s in result if not excluded.intersection(c.lower() for c in s.codecs)
        ]

    if len(result) != before:
        log.debug(
            "streams_filtered",
            provider=provider,
            before=before,
            after=len(result),
            min_quality=min_quality,
            exclude_codecs=sorted(excluded),
        )
    return result
