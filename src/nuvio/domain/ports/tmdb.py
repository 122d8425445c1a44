"""Port for TMDB API operations."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from nuvio.domain.entities.stremio import (
    ContentDetails,
    ResolvedContent,
    TmdbMediaType,
)


@runtime_checkable
class TmdbClientPort(Protocol):
    """Async interface for TMDB API lookups."""

    async def resolve_imdb_id(
        self, imdb_id: str, expected_type: TmdbMediaType
    ) -> ResolvedContent | None:
        """Convert an IMDb ID to a TMDB ID.

        Prefers a result of *expected_type*, falls back to the other kind.
        Returns None if TMDB knows nothing about the ID.
        """
        ...

    async def get_details(
        self,
        tmdb_id: str,
        media_type: TmdbMediaType,
        season: int | None = None,
    ) -> ContentDetails | None:
        """Fetch title, year, genres and (for TV) the season title."""
        ...
