"""Convert untrusted provider payloads into RawStreams.

Pure transformation logic, no I/O. Provider output and cached JSON are
both decoded here so that one set of coercion rules applies.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from nuvio.domain.entities.stremio import RawStream

log = structlog.get_logger(__name__)


def _coerce_quality(value: Any) -> str | int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        return value
    if isinstance(value, float):
        return int(value)
    return None


def _coerce_codecs(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(c.strip() for c in value.split(",") if c.strip())
    if isinstance(value, (list, tuple)):
        return tuple(str(c) for c in value if isinstance(c, str) and c)
    return ()


def _coerce_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def convert_stream(item: Any, provider: str = "") -> RawStream | None:
    """Convert one JSON object; None when it carries no usable URL."""
    if not isinstance(item, dict):
        return None
    url = item.get("url")
    if not isinstance(url, str) or not url.strip():
        return None

    size = item.get("size")
    return RawStream(
        url=url.strip(),
        quality=_coerce_quality(item.get("quality")),
        size=str(size) if isinstance(size, (str, int, float)) and size != "" else None,
        title=_coerce_text(item.get("title")),
        name=_coerce_text(item.get("name")),
        provider=_coerce_text(item.get("provider")) or provider,
        codecs=_coerce_codecs(item.get("codecs")),
    )


def convert_streams(items: Iterable[Any], provider: str = "") -> list[RawStream]:
    streams: list[RawStream] = []
    skipped = 0
    for item in items:
        stream = convert_stream(item, provider)
        if stream is None:
            skipped += 1
            continue
        streams.append(stream)
    if skipped:
        log.debug("provider_streams_skipped", provider=provider, skipped=skipped)
    return streams


def convert_provider_payload(payload: Any, provider: str) -> list[RawStream]:
    """Accept a JSON list or ``{"streams": [...]}``; anything else yields []."""
    if isinstance(payload, dict):
        payload = payload.get("streams")
    if not isinstance(payload, list):
        log.warning(
            "provider_payload_malformed",
            provider=provider,
            payload_type=type(payload).__name__,
        )
        return []
    return convert_streams(payload, provider)
