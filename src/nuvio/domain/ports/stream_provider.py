"""Port for stream provider collaborators."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from nuvio.domain.entities.stremio import RawStream, TmdbMediaType


@runtime_checkable
class StreamProviderPort(Protocol):
    """A source of stream links for one TMDB title.

    Implementations may raise ``ProviderError``; callers isolate failures.
    """

    @property
    def name(self) -> str:
        """Provider id (``"moviesdrive"``, ``"4khdhub"``)."""
        ...

    async def fetch_streams(
        self,
        tmdb_id: str,
        media_type: TmdbMediaType,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[RawStream]:
        ...
