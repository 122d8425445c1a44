"""Quality and size parsing for stream ranking.

Qualities are ranked by vertical resolution so that every label a
provider might emit ("2160p", "2160", 2160, "4K", "UHD") compares equal.
Unknown labels rank 0. Both parsers are total: any input yields an int.
"""

from __future__ import annotations

import re

from guessit import guessit

from nuvio.domain.entities.stremio import RawStream, StreamQuality
from nuvio.infrastructure.common.parsers import parse_size_to_bytes

_KNOWN_RESOLUTIONS = frozenset(q.value for q in StreamQuality if q)

# Only known resolutions, so that years ("2019") or bitrates never match.
_RESOLUTION_RE = re.compile(r"(?<!\d)(2160|1440|1080|720|576|480|360|240)[pi]?(?!\d)")

_KEYWORDS: tuple[tuple[re.Pattern[str], StreamQuality], ...] = (
    (re.compile(r"\b(4K|UHD)\b", re.IGNORECASE), StreamQuality.UHD_4K),
    (re.compile(r"\b(2K|QHD)\b", re.IGNORECASE), StreamQuality.QHD_1440P),
    (re.compile(r"\b(FHD|FULL\s?HD)\b", re.IGNORECASE), StreamQuality.HD_1080P),
    (re.compile(r"\bHD\b", re.IGNORECASE), StreamQuality.HD_720P),
    (re.compile(r"\bSD\b", re.IGNORECASE), StreamQuality.SD),
)

_SCREEN_SIZE_RE = re.compile(r"(\d{3,4})[pi]")


def parse_quality(value: str | int | None) -> int:
    """Return the resolution rank for a quality label (0 when unknown)."""
    if value is None or isinstance(value, bool):
        return StreamQuality.UNKNOWN
    if isinstance(value, int):
        return value if value in _KNOWN_RESOLUTIONS else StreamQuality.UNKNOWN

    text = str(value).strip()
    if not text:
        return StreamQuality.UNKNOWN

    match = _RESOLUTION_RE.search(text)
    if match:
        return int(match.group(1))

    for pattern, quality in _KEYWORDS:
        if pattern.search(text):
            return quality.value
    return StreamQuality.UNKNOWN


def parse_size(text: str | int | float | None) -> int:
    """Return the size in bytes (0 when unparseable)."""
    return parse_size_to_bytes(text)


def quality_from_release_name(release_name: str | None) -> int:
    """Resolution guessit finds in a release file name (0 when none)."""
    if not release_name:
        return StreamQuality.UNKNOWN
    first_line = release_name.strip().splitlines()[0] if release_name.strip() else ""
    if not first_line:
        return StreamQuality.UNKNOWN

    screen_size = guessit(first_line).get("screen_size")
    if not isinstance(screen_size, str):
        return StreamQuality.UNKNOWN
    match = _SCREEN_SIZE_RE.fullmatch(screen_size)
    if match and int(match.group(1)) in _KNOWN_RESOLUTIONS:
        return int(match.group(1))
    if screen_size.upper() == "4K":
        return StreamQuality.UHD_4K
    return StreamQuality.UNKNOWN


def stream_quality_rank(stream: RawStream) -> int:
    """Rank from the quality label, falling back to the release name."""
    rank = parse_quality(stream.quality)
    if rank:
        return rank
    return quality_from_release_name(stream.title)
