"""Tests for HttpxTmdbClient (TMDB API adapter)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from nuvio.infrastructure.tmdb.client import HttpxTmdbClient

_API_KEY = "test-api-key-123"
_BASE = "https://api.themoviedb.org/3"


@pytest.fixture()
def http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient()


@pytest.fixture()
def client(http_client: httpx.AsyncClient, mock_cache: AsyncMock) -> HttpxTmdbClient:
    return HttpxTmdbClient(api_key=_API_KEY, http_client=http_client, cache=mock_cache)


_FIND_MOVIE_RESPONSE = {
    "movie_results": [{"id": 27205, "title": "Inception"}],
    "tv_results": [],
}

_FIND_TV_RESPONSE = {
    "movie_results": [],
    "tv_results": [{"id": 1399, "name": "Game of Thrones"}],
}

_FIND_EMPTY_RESPONSE = {"movie_results": [], "tv_results": []}

_MOVIE_DETAILS = {
    "id": 27205,
    "title": "Inception",
    "release_date": "2010-07-15",
    "genres": [{"id": 28, "name": "Action"}],
}

_TV_DETAILS = {
    "id": 1399,
    "name": "Game of Thrones",
    "first_air_date": "2011-04-17",
    "genres": [{"id": 18, "name": "Drama"}],
}


class TestResolveImdbId:
    @respx.mock
    async def test_movie(self, client: HttpxTmdbClient) -> None:
        route = respx.get(f"{_BASE}/find/tt1375666").respond(
            json=_FIND_MOVIE_RESPONSE
        )
        result = await client.resolve_imdb_id("tt1375666", "movie")

        assert result is not None
        assert result.tmdb_id == "27205"
        assert result.media_type == "movie"
        assert result.title == "Inception"
        params = route.calls.last.request.url.params
        assert params["external_source"] == "imdb_id"
        assert params["api_key"] == _API_KEY

    @respx.mock
    async def test_tv(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/find/tt0944947").respond(json=_FIND_TV_RESPONSE)
        result = await client.resolve_imdb_id("tt0944947", "tv")
        assert result is not None
        assert result.tmdb_id == "1399"
        assert result.title == "Game of Thrones"

    @respx.mock
    async def test_falls_back_to_other_type(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/find/tt0944947").respond(json=_FIND_TV_RESPONSE)
        result = await client.resolve_imdb_id("tt0944947", "movie")
        assert result is not None
        assert result.media_type == "tv"

    @respx.mock
    async def test_unknown_id(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/find/tt0000000").respond(json=_FIND_EMPTY_RESPONSE)
        assert await client.resolve_imdb_id("tt0000000", "movie") is None

    @respx.mock
    async def test_result_is_cached(
        self, client: HttpxTmdbClient, mock_cache: AsyncMock
    ) -> None:
        respx.get(f"{_BASE}/find/tt1375666").respond(json=_FIND_MOVIE_RESPONSE)
        await client.resolve_imdb_id("tt1375666", "movie")
        mock_cache.set.assert_awaited_once_with(
            "tmdb:find:tt1375666", _FIND_MOVIE_RESPONSE, ttl=86_400
        )

    async def test_cache_hit_skips_http(
        self, client: HttpxTmdbClient, mock_cache: AsyncMock
    ) -> None:
        mock_cache.get.return_value = _FIND_MOVIE_RESPONSE
        with respx.mock(assert_all_called=False) as router:
            route = router.get(f"{_BASE}/find/tt1375666")
            result = await client.resolve_imdb_id("tt1375666", "movie")
        assert result is not None
        assert not route.called


class TestErrorHandling:
    @respx.mock
    @pytest.mark.parametrize("status", [401, 404, 500])
    async def test_http_errors_return_none(
        self, client: HttpxTmdbClient, mock_cache: AsyncMock, status: int
    ) -> None:
        respx.get(f"{_BASE}/find/tt1").respond(status_code=status)
        assert await client.resolve_imdb_id("tt1", "movie") is None
        mock_cache.set.assert_not_awaited()

    @respx.mock
    async def test_network_error_returns_none(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/find/tt1").mock(side_effect=httpx.ConnectError("down"))
        assert await client.resolve_imdb_id("tt1", "movie") is None

    @respx.mock
    async def test_invalid_json_returns_none(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/find/tt1").respond(text="<html>")
        assert await client.resolve_imdb_id("tt1", "movie") is None


class TestGetDetails:
    @respx.mock
    async def test_movie(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/movie/27205").respond(json=_MOVIE_DETAILS)
        details = await client.get_details("27205", "movie")
        assert details is not None
        assert details.title == "Inception"
        assert details.year == "2010"
        assert details.genres == ("Action",)
        assert details.is_animation is False
        assert details.season_title is None

    @respx.mock
    async def test_tv_with_season(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/tv/1399").respond(json=_TV_DETAILS)
        respx.get(f"{_BASE}/tv/1399/season/1").respond(json={"name": "Season 1"})
        details = await client.get_details("1399", "tv", season=1)
        assert details is not None
        assert details.title == "Game of Thrones"
        assert details.year == "2011"
        assert details.season_title == "Season 1"

    @respx.mock
    async def test_missing_season_is_tolerated(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/tv/1399").respond(json=_TV_DETAILS)
        respx.get(f"{_BASE}/tv/1399/season/99").respond(status_code=404)
        details = await client.get_details("1399", "tv", season=99)
        assert details is not None
        assert details.season_title is None

    @respx.mock
    async def test_animation_genre(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/movie/1").respond(
            json={"title": "Toy", "genres": [{"name": "Animation"}]}
        )
        details = await client.get_details("1", "movie")
        assert details is not None
        assert details.is_animation is True
        assert details.year is None

    @respx.mock
    async def test_not_found(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/movie/0").respond(status_code=404)
        assert await client.get_details("0", "movie") is None
