"""Decode the per-user configuration embedded in addon URLs.

Stremio addon URLs carry user settings as a path segment, either
base64url-encoded JSON or URL-encoded JSON::

    /api/v1/stremio/<config>/stream/movie/tt0111161.json

Malformed configuration never fails a request; it falls back to the
defaults (all providers, no filters).
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any, Optional, Union
from urllib.parse import unquote

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nuvio.domain.entities.stremio import StreamRequestOptions

log = structlog.get_logger(__name__)

_EXCLUDE_FLAG_RE = re.compile(r"^exclude[_-]?(.+)$", re.IGNORECASE)


class UserConfig(BaseModel):
    """Raw user configuration as sent by the configuration page."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    providers: Optional[Union[str, list[str]]] = None
    min_qualities: dict[str, Union[str, int]] = Field(
        default_factory=dict, alias="minQualities"
    )
    exclude_codecs: dict[str, Any] = Field(default_factory=dict, alias="excludeCodecs")
    region: Optional[str] = None
    cookie: Optional[str] = None
    cookies: list[str] = Field(default_factory=list)
    scraper_api_key: Optional[str] = None

    @field_validator("cookies", mode="before")
    @classmethod
    def _cookies_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            return [c for c in v if isinstance(c, str)]
        return v


def _selected_providers(value: str | list[str] | None) -> frozenset[str] | None:
    if value is None:
        return None
    items = value.split(",") if isinstance(value, str) else value
    selected = frozenset(p.strip().lower() for p in items if p and p.strip())
    return selected or None


def _codec_list(value: Any) -> tuple[str, ...]:
    """Accept a list, a comma string, or ``{"excludeDV": true, ...}`` flags."""
    if isinstance(value, str):
        return tuple(c.strip() for c in value.split(",") if c.strip())
    if isinstance(value, list):
        return tuple(c.strip() for c in value if isinstance(c, str) and c.strip())
    if isinstance(value, dict):
        codecs = []
        for flag, enabled in value.items():
            if enabled is not True:
                continue
            match = _EXCLUDE_FLAG_RE.match(str(flag))
            codecs.append(match.group(1) if match else str(flag))
        return tuple(codecs)
    return ()


def merge_cookies(cookie: str | None, cookies: list[str]) -> tuple[str, ...]:
    """Single cookie first, then the list; trimmed, empty and duplicates dropped."""
    merged: list[str] = []
    for candidate in [cookie, *cookies]:
        if not candidate:
            continue
        value = candidate.strip()
        if value and value not in merged:
            merged.append(value)
    return tuple(merged)


def to_options(cfg: UserConfig) -> StreamRequestOptions:
    return StreamRequestOptions(
        selected_providers=_selected_providers(cfg.providers),
        min_quality_by_provider={
            k.lower(): str(v) for k, v in cfg.min_qualities.items() if str(v).strip()
        },
        exclude_codecs_by_provider={
            k.lower(): codecs
            for k, v in cfg.exclude_codecs.items()
            if (codecs := _codec_list(v))
        },
        region=(cfg.region or "").strip() or None,
        cookies=merge_cookies(cfg.cookie, cfg.cookies),
        scraper_api_key=(cfg.scraper_api_key or "").strip() or None,
    )


def _decode_json(raw: str) -> Any:
    """base64url first (the configure page default), then URL-encoded JSON."""
    text = raw.strip()
    try:
        padded = text + "=" * (-len(text) % 4)
        decoded = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
        return json.loads(decoded)
    except (binascii.Error, UnicodeError, ValueError):
        pass
    return json.loads(unquote(text))


def decode_user_config(raw: str | None) -> StreamRequestOptions:
    """Decode a URL config segment into request options (defaults on error)."""
    if not raw:
        return StreamRequestOptions()
    try:
        data = _decode_json(raw)
    except ValueError:
        log.warning("user_config_undecodable", length=len(raw))
        return StreamRequestOptions()
    if not isinstance(data, dict):
        log.warning("user_config_not_object", type=type(data).__name__)
        return StreamRequestOptions()
    try:
        return to_options(UserConfig.model_validate(data))
    except ValidationError as e:
        log.warning("user_config_invalid", errors=e.error_count())
        return StreamRequestOptions()
