"""Tests for Stremio stream formatting."""

from __future__ import annotations

from nuvio.domain.entities.stremio import RawStream, RequestContext
from nuvio.infrastructure.stremio.stream_formatter import (
    display_title,
    extract_title_tags,
    flag_for_url,
    format_stream,
    hdr_tag,
    order_codecs,
    quality_label,
)


def _hub(**kwargs: object) -> RawStream:
    defaults: dict[str, object] = {
        "url": "https://hub.example/v/1",
        "provider": "4KHDHub",
    }
    defaults.update(kwargs)
    return RawStream(**defaults)  # type: ignore[arg-type]


class TestMoviesDrive:
    def test_passes_name_and_title_through(
        self, raw_stream: RawStream, movie_context: RequestContext
    ) -> None:
        result = format_stream(raw_stream, movie_context)
        assert result.name == "MoviesDrive 1080p"
        assert result.title == "Inception.2010.1080p.BluRay.x264"
        assert result.url == raw_stream.url
        assert result.behavior_hints == {"notWebReady": True}

    def test_fallbacks(self, movie_context: RequestContext) -> None:
        stream = RawStream(url="https://md/1", provider="MoviesDrive")
        result = format_stream(stream, movie_context)
        assert result.name == "MoviesDrive - UNK"
        assert result.title == "Inception (2010)"

    def test_never_appends_codec_line(self, movie_context: RequestContext) -> None:
        stream = RawStream(
            url="https://md/1",
            provider="MoviesDrive",
            name="MD",
            title="T",
            size="2 GB",
            codecs=("DV",),
        )
        assert format_stream(stream, movie_context).title == "T"


class TestFourKHDHub:
    def test_full_release(self, movie_context: RequestContext) -> None:
        stream = _hub(
            name="4KHDHub - HubCloud - 2160p",
            quality="2160p",
            title="Dune.2021.2160p.WEB-DL.DV.HDR10.ATMOS.mkv",
            size="18.5 GB",
            codecs=("DV", "HEVC"),
        )
        result = format_stream(stream, movie_context)
        assert result.name == "4KHDHub [HC] - 4K | HDR10 | DV | WEB"
        assert result.title == (
            "Dune.2021.2160p.WEB-DL.DV.HDR10.ATMOS.mkv\nDV • HEVC • 18.5 GB • ATMOS"
        )

    def test_unknown_server_is_abbreviated(self, movie_context: RequestContext) -> None:
        stream = _hub(name="4KHDHub - MegaServer - 1080p", quality="1080")
        assert format_stream(stream, movie_context).name == "4KHDHub [MEG] - 1080p"

    def test_hdr_tag_appended_once(self, movie_context: RequestContext) -> None:
        stream = _hub(
            name="4KHDHub - Pixeldrain - 1080p",
            quality="1080p",
            title="Movie.1080p.mkv",
            codecs=("HDR",),
        )
        result = format_stream(stream, movie_context)
        assert result.name == "4KHDHub [PD] - 1080p | HDR"
        assert result.title == "Movie.1080p.mkv\nHDR"

    def test_missing_name_and_title(self, movie_context: RequestContext) -> None:
        result = format_stream(_hub(quality="1080"), movie_context)
        assert result.name == "4KHDHub - 1080"
        assert result.title == "Inception (2010)"

    def test_unparseable_size_has_no_line(self, movie_context: RequestContext) -> None:
        stream = _hub(name="4KHDHub - HubCloud - 720p", title="T", size="unknown")
        assert format_stream(stream, movie_context).title == "T"


class TestOtherProviders:
    def test_flag_and_display_title(self, series_context: RequestContext) -> None:
        stream = RawStream(
            url="https://us3.cdn.example/x.m3u8",
            quality="720p",
            size="1 GB",
            provider="ShowBox",
        )
        result = format_stream(stream, series_context)
        assert result.name == "\U0001f1fa\U0001f1f8 ShowBox - 720p"
        assert result.title == "Game of Thrones S01E05\n1 GB"

    def test_without_provider_or_metadata(self) -> None:
        context = RequestContext(content_type="movie", tmdb_id="1")
        result = format_stream(RawStream(url="https://cdn.example/x"), context)
        assert result.name == "Unknown - UNK"
        assert result.title == "Unknown Title"


class TestHelpers:
    def test_quality_label(self) -> None:
        assert quality_label(None) == "UNK"
        assert quality_label("") == "UNK"
        assert quality_label(1080) == "1080"

    def test_flag_for_url(self) -> None:
        assert flag_for_url("https://de1-node.example/v") == "\U0001f1e9\U0001f1ea"
        assert flag_for_url("https://cdn.example.com/v") == ""
        assert flag_for_url("not a url") == ""

    def test_extract_title_tags_hdr10_suppresses_hdr(self) -> None:
        name_tags, audio = extract_title_tags("X.2160p.BluRay.REMUX.HDR10.DTS-HD")
        assert name_tags == ["HDR10", "BluRay", "REMUX"]
        assert audio == ["DTS"]

    def test_extract_title_tags_empty(self) -> None:
        assert extract_title_tags(None) == ([], [])

    def test_hdr_tag_priority(self) -> None:
        assert hdr_tag(("HDR", "DV")) == "DV"
        assert hdr_tag(("HDR10+", "HDR")) == "HDR10+"
        assert hdr_tag(("HDR",)) == "HDR"
        assert hdr_tag(("H.264",)) is None

    def test_order_codecs(self) -> None:
        codecs = ("H.264", "Opus", "DV", "10-bit", "Atmos")
        assert order_codecs(codecs) == ["DV", "Atmos", "H.264", "10-bit", "Opus"]

    def test_display_title_series_without_episode(self) -> None:
        context = RequestContext(content_type="tv", tmdb_id="1", title="Show")
        assert display_title(RawStream(url="u"), context) == "Show"
