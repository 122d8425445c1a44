"""End-to-end tests for the Stremio addon.

Tests the full request-response cycle through the real application:
    HTTP Request -> create_app (lifespan wiring) -> Router -> Use Case
    -> Provider adapters / TMDB client / stream cache -> JSON Response

Only outbound HTTP is mocked (respx); caches write to a temp directory.

Endpoints covered:
    GET /api/v1/stremio/manifest.json
    GET /api/v1/stremio/stream/{type}/{id}.json
    GET /api/v1/stremio/{config}/stream/{type}/{id}.json
"""

from __future__ import annotations

import base64
import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from nuvio.infrastructure.config.schema import AppConfig
from nuvio.interfaces.app import create_app

_PREFIX = "/api/v1/stremio"
_MD = "http://md.local"
_HUB = "http://hub.local"
_TMDB = "https://api.themoviedb.org/3"

_MD_MOVIE = [
    {
        "url": "https://hubcloud.example/md-720",
        "quality": "720p",
        "size": "1.2 GB",
        "name": "MoviesDrive 720p",
        "title": "The.Matrix.1999.720p.BluRay.x264",
    },
    {
        "url": "https://hubcloud.example/md-1080",
        "quality": "1080p",
        "size": "2.8 GB",
        "name": "MoviesDrive 1080p",
        "title": "The.Matrix.1999.1080p.BluRay.x264",
    },
]
_HUB_MOVIE = {
    "streams": [
        {
            "url": "https://pixeldrain.example/hub-4k",
            "quality": "2160p",
            "size": "22.4 GB",
            "name": "4KHDHub - HubCloud - 2160p",
            "title": "The.Matrix.1999.2160p.WEB-DL.DV.HDR10.mkv",
            "codecs": ["DV", "H.265"],
        }
    ]
}


def _encode(config: dict[str, Any]) -> str:
    raw = json.dumps(config).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


@pytest.fixture()
def config(tmp_path: Path) -> AppConfig:
    return AppConfig.model_validate(
        {
            "tmdb_api_key": "test-key",
            "http_max_retries": 0,
            "shutdown_timeout_seconds": 1.0,
            "cache": {
                "dir": str(tmp_path / "meta"),
                "stream_cache_dir": str(tmp_path / "streams"),
            },
            "providers": {
                "moviesdrive": {"base_url": _MD},
                "4khdhub": {"base_url": _HUB},
            },
            "stremio": {"provider_timeout_seconds": 5.0, "settle_grace_ms": 0},
        }
    )


@pytest.fixture()
def client(config: AppConfig) -> Iterator[TestClient]:
    with TestClient(create_app(config)) as c:
        yield c


@pytest.fixture()
def upstream() -> Iterator[respx.MockRouter]:
    with respx.mock(assert_all_called=False) as router:
        router.get(f"{_TMDB}/find/tt0133093", name="tmdb_find").respond(
            json={"movie_results": [{"id": 603, "title": "The Matrix"}]}
        )
        router.get(f"{_TMDB}/movie/603").respond(
            json={"title": "The Matrix", "release_date": "1999-03-31"}
        )
        router.get(f"{_MD}/streams/movie/603", name="moviesdrive").respond(
            json=_MD_MOVIE
        )
        router.get(f"{_HUB}/streams/movie/603").respond(json=_HUB_MOVIE)
        yield router


class TestManifest:
    def test_manifest(self, client: TestClient) -> None:
        resp = client.get(f"{_PREFIX}/manifest.json")
        assert resp.status_code == 200
        data = resp.json()
        assert data["resources"] == ["stream"]
        assert set(data["types"]) >= {"movie", "series"}


class TestMovieStreams:
    def test_all_providers(
        self, client: TestClient, upstream: respx.MockRouter
    ) -> None:
        resp = client.get(f"{_PREFIX}/stream/movie/tt0133093.json")

        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        streams = resp.json()["streams"]
        assert [s["url"] for s in streams] == [
            "https://hubcloud.example/md-1080",
            "https://hubcloud.example/md-720",
            "https://pixeldrain.example/hub-4k",
        ]
        assert streams[0]["name"] == "MoviesDrive 1080p"
        assert streams[2]["name"] == "4KHDHub [HC] - 4K | HDR10 | DV | WEB"
        assert streams[2]["title"] == (
            "The.Matrix.1999.2160p.WEB-DL.DV.HDR10.mkv\nDV • H.265 • 22.4 GB"
        )
        assert all(s["behaviorHints"] == {"notWebReady": True} for s in streams)

    def test_configured_selection_and_codecs(
        self, client: TestClient, upstream: respx.MockRouter
    ) -> None:
        user_config = _encode(
            {"providers": "4khdhub,moviesdrive", "excludeCodecs": {"4khdhub": ["DV"]}}
        )
        resp = client.get(f"{_PREFIX}/{user_config}/stream/movie/tt0133093.json")

        urls = [s["url"] for s in resp.json()["streams"]]
        assert urls == [
            "https://hubcloud.example/md-1080",
            "https://hubcloud.example/md-720",
        ]

    def test_tmdb_id_skips_find(
        self, client: TestClient, upstream: respx.MockRouter
    ) -> None:
        resp = client.get(f"{_PREFIX}/stream/movie/tmdb:603.json")

        assert len(resp.json()["streams"]) == 3
        assert not upstream.routes["tmdb_find"].called

    def test_provider_outage_isolated(
        self, client: TestClient, upstream: respx.MockRouter
    ) -> None:
        upstream.routes["moviesdrive"].side_effect = httpx.ConnectError("refused")
        resp = client.get(f"{_PREFIX}/stream/movie/tt0133093.json")

        urls = [s["url"] for s in resp.json()["streams"]]
        assert urls == ["https://pixeldrain.example/hub-4k"]

    def test_cached_on_second_request(
        self, client: TestClient, upstream: respx.MockRouter
    ) -> None:
        client.get(f"{_PREFIX}/stream/movie/tt0133093.json")
        client.get(f"{_PREFIX}/stream/movie/tt0133093.json")

        md_calls = [c for c in upstream.calls if c.request.url.host == "md.local"]
        assert len(md_calls) == 1
        stats = client.get("/api/v1/stats/metrics").json()
        assert stats["stream_requests"] == 2
        assert stats["stream_cache"]["moviesdrive"]["hits"] == 1


class TestInvalidRequests:
    def test_unknown_imdb_id(self, client: TestClient) -> None:
        with respx.mock() as router:
            router.get(f"{_TMDB}/find/tt9999999").respond(json={"movie_results": []})
            resp = client.get(f"{_PREFIX}/stream/movie/tt9999999.json")
        assert resp.json() == {"streams": []}

    def test_malformed_id(self, client: TestClient) -> None:
        resp = client.get(f"{_PREFIX}/stream/movie/abc.json")
        assert resp.status_code == 200
        assert resp.json() == {"streams": []}

    def test_malformed_config_uses_defaults(
        self, client: TestClient, upstream: respx.MockRouter
    ) -> None:
        resp = client.get(f"{_PREFIX}/%7Bbroken/stream/movie/tt0133093.json")
        assert len(resp.json()["streams"]) == 3
