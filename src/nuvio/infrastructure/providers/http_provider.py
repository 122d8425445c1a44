"""Stream provider backed by an HTTP scraper service."""

from __future__ import annotations

import httpx
import structlog

from nuvio.domain.entities.stremio import Provider, RawStream, TmdbMediaType
from nuvio.domain.exceptions import ProviderError, ProviderResponseError
from nuvio.infrastructure.stremio.stream_converter import convert_provider_payload

log = structlog.get_logger(__name__)


class HttpxStreamProvider:
    """Calls ``GET {base_url}/streams/{media_type}/{tmdb_id}``.

    Season and episode go into the query string for TV requests. The
    service may answer with a JSON list or ``{"streams": [...]}``.
    Transport and status errors raise ``ProviderError``; an undecodable
    body raises ``ProviderResponseError``; a decodable but unexpected
    shape yields an empty list.
    """

    def __init__(
        self,
        provider: Provider,
        *,
        base_url: str,
        http_client: httpx.AsyncClient,
        timeout_seconds: float | None = None,
    ) -> None:
        self.provider = provider
        self._base_url = base_url.rstrip("/")
        self._http = http_client
        self._timeout = timeout_seconds

    @property
    def name(self) -> str:
        return self.provider.value

    async def fetch_streams(
        self,
        tmdb_id: str,
        media_type: TmdbMediaType,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[RawStream]:
        url = f"{self._base_url}/streams/{media_type}/{tmdb_id}"
        params: dict[str, int] = {}
        if media_type == "tv" and season is not None and episode is not None:
            params = {"season": season, "episode": episode}

        kwargs = {} if self._timeout is None else {"timeout": self._timeout}
        try:
            resp = await self._http.get(url, params=params, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                self.name, f"HTTP {e.response.status_code} from {url}"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"{type(e).__name__}: {e}") from e

        try:
            payload = resp.json()
        except ValueError as e:
            raise ProviderResponseError(self.name, "response is not JSON") from e

        streams = convert_provider_payload(payload, self.provider.display_name)
        log.debug("provider_streams_received", provider=self.name, count=len(streams))
        return streams
