"""Domain entities for the Stremio stream addon.

Pure value objects: no framework dependencies, no I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Literal

StremioContentType = Literal["movie", "series"]
TmdbMediaType = Literal["movie", "tv"]


class StreamQuality(IntEnum):
    """Named quality ranks (value = vertical resolution, 0 = unknown)."""

    UNKNOWN = 0
    LD_240P = 240
    LD_360P = 360
    SD = 480
    SD_576P = 576
    HD_720P = 720
    HD_1080P = 1080
    QHD_1440P = 1440
    UHD_4K = 2160


class CacheStatus(str, Enum):
    """Outcome of the fetch attempt a cache entry was written for."""

    OK = "ok"
    FAILED = "failed"


class Provider(str, Enum):
    """Known stream providers.

    The value is the lower-case provider id used in user selections,
    cache keys and configuration. ``display_name`` is the label attached
    to streams and shown in Stremio.
    """

    MOVIESDRIVE = "moviesdrive"
    FOURKHDHUB = "4khdhub"

    @property
    def display_name(self) -> str:
        return _PROVIDER_DISPLAY_NAMES[self]

    @classmethod
    def from_name(cls, name: str | None) -> Provider | None:
        """Resolve a provider id or display name (case-insensitive)."""
        if not name:
            return None
        key = name.strip().lower()
        for provider in cls:
            if key in (provider.value, provider.display_name.lower()):
                return provider
        return None


_PROVIDER_DISPLAY_NAMES: dict[Provider, str] = {
    Provider.MOVIESDRIVE: "MoviesDrive",
    Provider.FOURKHDHUB: "4KHDHub",
}

# Fixed response order: all streams of an earlier provider come first.
PROVIDER_ORDER: tuple[Provider, ...] = (Provider.MOVIESDRIVE, Provider.FOURKHDHUB)


@dataclass(frozen=True)
class RawStream:
    """A stream link as produced by a provider.

    ``quality`` and ``size`` are free text (``"1080p"``, ``"2160"``,
    ``"2.5 GB"``). ``provider`` holds the display name once the stream has
    been tagged by the orchestration layer.
    """

    url: str
    quality: str | int | None = None
    size: str | None = None
    title: str = ""
    name: str = ""
    provider: str = ""
    codecs: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "quality": self.quality,
            "size": self.size,
            "title": self.title,
            "name": self.name,
            "provider": self.provider,
            "codecs": list(self.codecs),
        }


@dataclass(frozen=True)
class CacheEntry:
    """Persisted outcome of one provider fetch.

    ``expiry`` and ``timestamp`` are epoch milliseconds.
    """

    streams: tuple[RawStream, ...]
    status: CacheStatus
    expiry: int
    timestamp: int

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expiry


@dataclass(frozen=True)
class StremioStream:
    """Stremio protocol Stream object (JSON-serializable)."""

    name: str  # Short label, e.g. "4KHDHub [HC] - 4K | DV"
    title: str  # Multi-line description below the name
    url: str
    type: str = "url"
    availability: int = 2
    behavior_hints: dict[str, Any] = field(
        default_factory=lambda: {"notWebReady": True}
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "url": self.url,
            "type": self.type,
            "availability": self.availability,
            "behaviorHints": dict(self.behavior_hints),
        }


@dataclass(frozen=True)
class StremioStreamRequest:
    """Parsed Stremio stream request.

    Created from URL path: ``tt1234567`` (movie), ``tt1234567:1:5``
    (series, season 1, episode 5), or the ``tmdb:`` equivalents.
    """

    content_id: str  # "tt1234567" or "tmdb:12345"
    content_type: StremioContentType
    season: int | None = None
    episode: int | None = None

    @property
    def is_tmdb(self) -> bool:
        return self.content_id.startswith("tmdb:")

    @property
    def media_type(self) -> TmdbMediaType:
        return "movie" if self.content_type == "movie" else "tv"


@dataclass(frozen=True)
class StreamRequestOptions:
    """Per-user options decoded from the addon URL configuration."""

    selected_providers: frozenset[str] | None = None
    min_quality_by_provider: Mapping[str, str] = field(default_factory=dict)
    exclude_codecs_by_provider: Mapping[str, tuple[str, ...]] = field(
        default_factory=dict
    )
    region: str | None = None
    cookies: tuple[str, ...] = ()
    scraper_api_key: str | None = None

    def masked(self) -> dict[str, Any]:
        """Loggable summary without cookie or API key material."""
        return {
            "selected_providers": sorted(self.selected_providers)
            if self.selected_providers is not None
            else "all",
            "min_qualities": dict(self.min_quality_by_provider),
            "exclude_codecs": {
                k: list(v) for k, v in self.exclude_codecs_by_provider.items()
            },
            "region": self.region or "none",
            "cookie_count": len(self.cookies),
            "scraper_api_key": "[PRESENT]" if self.scraper_api_key else None,
        }


@dataclass(frozen=True)
class ResolvedContent:
    """Canonical TMDB identity for an incoming content id."""

    tmdb_id: str
    media_type: TmdbMediaType
    title: str | None = None


@dataclass(frozen=True)
class ContentDetails:
    """Display metadata fetched from TMDB."""

    title: str | None = None
    year: str | None = None
    genres: tuple[str, ...] = ()
    season_title: str | None = None

    @property
    def is_animation(self) -> bool:
        return any(g.lower() == "animation" for g in self.genres)


@dataclass(frozen=True)
class RequestContext:
    """Everything one stream request needs, built once at request entry."""

    content_type: TmdbMediaType
    tmdb_id: str
    season: int | None = None
    episode: int | None = None
    options: StreamRequestOptions = field(default_factory=StreamRequestOptions)
    title: str | None = None
    year: str | None = None
    season_title: str | None = None
    is_animation: bool = False

    @property
    def region(self) -> str | None:
        return self.options.region

    @property
    def cookies(self) -> tuple[str, ...]:
        return self.options.cookies

    def wants(self, provider: Provider) -> bool:
        """True when the user selection includes *provider* (or is absent)."""
        selected = self.options.selected_providers
        return selected is None or provider.value in selected

    def min_quality_for(self, provider: Provider) -> str | None:
        return self.options.min_quality_by_provider.get(provider.value)

    def exclude_codecs_for(self, provider: Provider) -> tuple[str, ...]:
        return tuple(self.options.exclude_codecs_by_provider.get(provider.value, ()))


@dataclass(frozen=True)
class ProviderSettings:
    """Process-wide provider policy, built once from the app configuration."""

    enabled: frozenset[Provider] = frozenset(PROVIDER_ORDER)
    deadline_seconds: float = 45.0
    grace_seconds: float = 0.1
    fetch_timeouts: Mapping[Provider, float] = field(default_factory=dict)

    def is_enabled(self, provider: Provider) -> bool:
        return provider in self.enabled
