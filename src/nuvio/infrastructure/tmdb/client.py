"""TMDB API client: async httpx implementation with caching."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from nuvio.domain.entities.stremio import (
    ContentDetails,
    ResolvedContent,
    TmdbMediaType,
)
from nuvio.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

_BASE_URL = "https://api.themoviedb.org/3"

# Cache TTLs (seconds)
_TTL_FIND = 86_400  # 24 hours
_TTL_DETAILS = 86_400
_TTL_SEASON = 21_600  # 6 hours

_RESULT_KEYS: dict[str, str] = {"movie": "movie_results", "tv": "tv_results"}


def _year(date: Any) -> str | None:
    if isinstance(date, str) and len(date) >= 4 and date[:4].isdigit():
        return date[:4]
    return None


class HttpxTmdbClient:
    """Async TMDB client using httpx + CachePort.

    Implements ``TmdbClientPort`` from domain.ports.tmdb. Every failure
    (network, HTTP status, bad key) is logged and surfaces as ``None``.
    """

    def __init__(
        self,
        *,
        api_key: str,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        base_url: str = _BASE_URL,
    ) -> None:
        self._api_key = api_key
        self._http = http_client
        self._cache = cache
        self._base_url = base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get(self, path: str, **extra: Any) -> dict[str, Any] | None:
        """GET request with error handling. Returns parsed JSON or None."""
        url = f"{self._base_url}{path}"
        try:
            resp = await self._http.get(url, params={"api_key": self._api_key, **extra})
            if resp.status_code == 401:
                log.error("tmdb_api_key_invalid", status=401)
                return None
            if resp.status_code == 404:
                log.debug("tmdb_resource_not_found", path=path)
                return None
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError:
            log.warning("tmdb_http_error", path=path, exc_info=True)
            return None
        except httpx.HTTPError:
            log.warning("tmdb_network_error", path=path, exc_info=True)
            return None
        except ValueError:
            log.warning("tmdb_invalid_json", path=path)
            return None
        return data if isinstance(data, dict) else None

    async def _cached_get(
        self, cache_key: str, ttl: int, path: str, **extra: Any
    ) -> dict[str, Any] | None:
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached
        data = await self._get(path, **extra)
        if data is not None:
            await self._cache.set(cache_key, data, ttl=ttl)
        return data

    # ------------------------------------------------------------------
    # Public API (TmdbClientPort)
    # ------------------------------------------------------------------

    async def resolve_imdb_id(
        self, imdb_id: str, expected_type: TmdbMediaType
    ) -> ResolvedContent | None:
        """Convert an IMDb ID via /find, preferring *expected_type* results."""
        data = await self._cached_get(
            f"tmdb:find:{imdb_id}",
            _TTL_FIND,
            f"/find/{imdb_id}",
            external_source="imdb_id",
        )
        if data is None:
            return None

        other: TmdbMediaType = "tv" if expected_type == "movie" else "movie"
        for media_type in (expected_type, other):
            results = data.get(_RESULT_KEYS[media_type]) or []
            if results and isinstance(results[0], dict) and results[0].get("id"):
                item = results[0]
                if media_type != expected_type:
                    log.info(
                        "tmdb_media_type_mismatch",
                        imdb_id=imdb_id,
                        expected=expected_type,
                        found=media_type,
                    )
                return ResolvedContent(
                    tmdb_id=str(item["id"]),
                    media_type=media_type,
                    title=item.get("title") or item.get("name") or None,
                )

        log.info("tmdb_imdb_id_unknown", imdb_id=imdb_id)
        return None

    async def get_details(
        self,
        tmdb_id: str,
        media_type: TmdbMediaType,
        season: int | None = None,
    ) -> ContentDetails | None:
        data = await self._cached_get(
            f"tmdb:details:{media_type}:{tmdb_id}",
            _TTL_DETAILS,
            f"/{media_type}/{tmdb_id}",
        )
        if data is None:
            return None

        if media_type == "movie":
            title = data.get("title") or data.get("original_title")
            year = _year(data.get("release_date"))
        else:
            title = data.get("name") or data.get("original_name")
            year = _year(data.get("first_air_date"))

        genres = tuple(
            g["name"]
            for g in data.get("genres") or []
            if isinstance(g, dict) and isinstance(g.get("name"), str)
        )

        season_title = None
        if media_type == "tv" and season is not None:
            season_data = await self._cached_get(
                f"tmdb:season:{tmdb_id}:{season}",
                _TTL_SEASON,
                f"/tv/{tmdb_id}/season/{season}",
            )
            if season_data is not None:
                season_title = season_data.get("name") or None

        return ContentDetails(
            title=title or None,
            year=year,
            genres=genres,
            season_title=season_title,
        )
