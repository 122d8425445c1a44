"""Stream ordering for the Stremio response.

Within one provider streams are ranked by quality, then size (both
descending). Across providers the order is fixed, not score based.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from nuvio.domain.entities.stremio import PROVIDER_ORDER, Provider, RawStream
from nuvio.infrastructure.stremio.quality import parse_size, stream_quality_rank


def sort_key(stream: RawStream) -> tuple[int, int]:
    """Negated (quality, size) so an ascending sort yields best-first."""
    return -stream_quality_rank(stream), -parse_size(stream.size)


def sort_streams(streams: Iterable[RawStream]) -> list[RawStream]:
    """Stable best-first sort. Sorting a sorted list changes nothing."""
    return sorted(streams, key=sort_key)


def merge_in_provider_order(
    streams_by_provider: Mapping[Provider, Sequence[RawStream]],
    order: Sequence[Provider] = PROVIDER_ORDER,
) -> list[RawStream]:
    """Concatenate provider groups in priority order, sorting each group."""
    merged: list[RawStream] = []
    for provider in order:
        merged.extend(sort_streams(streams_by_provider.get(provider, ())))
    return merged
