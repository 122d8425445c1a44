"""Build Stremio display objects from ranked raw streams.

Pure transformation logic, no I/O. Every input yields a well-formed
StremioStream: missing fields fall back to placeholders.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from nuvio.domain.entities.stremio import (
    Provider,
    RawStream,
    RequestContext,
    StremioStream,
)
from nuvio.infrastructure.stremio.quality import parse_size

UNKNOWN_QUALITY = "UNK"
UNKNOWN_TITLE = "Unknown Title"
SEPARATOR = " • "

_SERVER_ABBREVIATIONS: dict[str, str] = {
    "HubCloud": "[HC]",
    "Pixeldrain": "[PD]",
    "FSL Server": "[FSL]",
    "BuzzServer": "[BS]",
    "S3 Server": "[S3]",
    "10Gbps Server": "[10G]",
    "HubDrive": "[HD]",
    "Direct Link": "[DL]",
}

_SERVER_NAME_RE = re.compile(r"4KHDHub - ([^-]+)")

# (tag, pattern) in display order; HDR is skipped when HDR10 matched.
_NAME_TAGS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("HDR10", re.compile(r"HDR10", re.IGNORECASE)),
    ("DV", re.compile(r"\bDV\b|Dolby.?Vision", re.IGNORECASE)),
    ("HDR", re.compile(r"HDR", re.IGNORECASE)),
    ("BluRay", re.compile(r"BluRay|Blu-ray|BDRip|BRRip", re.IGNORECASE)),
    ("WEB", re.compile(r"WEB-?DL|WEBRip", re.IGNORECASE)),
    ("REMUX", re.compile(r"REMUX", re.IGNORECASE)),
    ("DVD", re.compile(r"DVD", re.IGNORECASE)),
    ("IMAX", re.compile(r"IMAX", re.IGNORECASE)),
)
_AUDIO_TAGS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("ATMOS", re.compile(r"ATMOS", re.IGNORECASE)),
    ("DTS", re.compile(r"DTS", re.IGNORECASE)),
)

CODEC_ORDER: tuple[str, ...] = (
    "DV",
    "HDR",
    "Atmos",
    "DTS-HD",
    "DTS",
    "EAC3",
    "AC3",
    "H.265",
    "H.264",
    "10-bit",
)

_FLAG_HOST_RE = re.compile(r"^([a-z]{2,3})\d{0,2}(?:[.-]|$)", re.IGNORECASE)

_FLAGS: dict[str, str] = {
    "us": "\U0001f1fa\U0001f1f8",
    "usa": "\U0001f1fa\U0001f1f8",
    "gb": "\U0001f1ec\U0001f1e7",
    "uk": "\U0001f1ec\U0001f1e7",
    "ca": "\U0001f1e8\U0001f1e6",
    "de": "\U0001f1e9\U0001f1ea",
    "fr": "\U0001f1eb\U0001f1f7",
    "nl": "\U0001f1f3\U0001f1f1",
    "hk": "\U0001f1ed\U0001f1f0",
    "sg": "\U0001f1f8\U0001f1ec",
    "jp": "\U0001f1ef\U0001f1f5",
    "au": "\U0001f1e6\U0001f1fa",
    "in": "\U0001f1ee\U0001f1f3",
}


def flag_for_url(url: str) -> str:
    """Country flag emoji derived from the hostname prefix ('' if none)."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return ""
    if not hostname:
        return ""
    match = _FLAG_HOST_RE.match(hostname)
    if not match:
        return ""
    return _FLAGS.get(match.group(1).lower(), "")


def quality_label(quality: str | int | None) -> str:
    """Raw quality label as shown to the user."""
    if quality is None or quality == "":
        return UNKNOWN_QUALITY
    return str(quality)


def _fourkhdhub_quality(quality: str | int | None) -> str:
    if quality is None or quality == "":
        return UNKNOWN_QUALITY
    if str(quality).lower() in ("2160", "2160p"):
        return "4K"
    text = str(quality)
    if text.isdigit():
        return f"{text}p"
    return text


def _server_name(stream: RawStream) -> str:
    name = stream.name
    if not name:
        return f"{Provider.FOURKHDHUB.display_name} - {quality_label(stream.quality)}"
    match = _SERVER_NAME_RE.search(name)
    if not match:
        return name
    server = match.group(1).strip()
    abbreviation = _SERVER_ABBREVIATIONS.get(server) or f"[{server[:3].upper()}]"
    return f"4KHDHub {abbreviation} - {_fourkhdhub_quality(stream.quality)}"


def extract_title_tags(title: str | None) -> tuple[list[str], list[str]]:
    """Return (name tags, audio tags) found in a release title."""
    if not title:
        return [], []
    name_tags: list[str] = []
    for tag, pattern in _NAME_TAGS:
        if tag == "HDR" and "HDR10" in name_tags:
            continue
        if pattern.search(title):
            name_tags.append(tag)
    audio_tags = [tag for tag, pattern in _AUDIO_TAGS if pattern.search(title)]
    return name_tags, audio_tags


def hdr_tag(codecs: tuple[str, ...]) -> str | None:
    if "DV" in codecs:
        return "DV"
    if "HDR10+" in codecs:
        return "HDR10+"
    if "HDR" in codecs:
        return "HDR"
    return None


def order_codecs(codecs: tuple[str, ...]) -> list[str]:
    """Known codecs in display order, unknown ones after (stable)."""
    rank = {codec: i for i, codec in enumerate(CODEC_ORDER)}
    return sorted(codecs, key=lambda c: rank.get(c, len(CODEC_ORDER)))


def display_title(stream: RawStream, context: RequestContext) -> str:
    title = context.title
    if (
        context.content_type == "tv"
        and context.season is not None
        and context.episode is not None
        and title
    ):
        return f"{title} S{context.season:02d}E{context.episode:02d}"
    if title:
        if context.content_type == "movie" and context.year:
            return f"{title} ({context.year})"
        return title
    return stream.title or UNKNOWN_TITLE


def _size_text(size: str | None) -> str | None:
    if not size or parse_size(size) <= 0:
        return None
    return size


def format_stream(stream: RawStream, context: RequestContext) -> StremioStream:
    """Format one stream following its provider's display conventions."""
    provider = Provider.from_name(stream.provider)

    if provider is Provider.MOVIESDRIVE:
        return StremioStream(
            name=stream.name
            or f"{provider.display_name} - {quality_label(stream.quality)}",
            title=stream.title or display_title(stream, context),
            url=stream.url,
        )

    audio_tags: list[str] = []
    if provider is Provider.FOURKHDHUB:
        name_tags, audio_tags = extract_title_tags(stream.title)
        name = _server_name(stream)
        if name_tags:
            name = " | ".join([name, *name_tags])
        first_line = stream.title or display_title(stream, context)
    else:
        name_tags = []
        label = stream.provider or "Unknown"
        name = f"{label} - {quality_label(stream.quality)}"
        flag = flag_for_url(stream.url)
        if flag:
            name = f"{flag} {name}"
        first_line = display_title(stream, context)

    tag = hdr_tag(stream.codecs)
    if tag and tag not in name_tags:
        name = f"{name} | {tag}"

    parts = order_codecs(stream.codecs)
    size = _size_text(stream.size)
    if size:
        parts.append(SEPARATOR.join([size, *audio_tags]))

    second_line = SEPARATOR.join(parts)
    title = f"{first_line}\n{second_line}" if second_line else first_line

    return StremioStream(name=name, title=title, url=stream.url)
