"""Parsing utilities for data extraction."""

from __future__ import annotations

import re

_SIZE_RE = re.compile(
    r"(\d+(?:[.,]\d+)?)\s*(TIB|GIB|MIB|KIB|TB|GB|MB|KB|BYTES?|B)\b",
    re.IGNORECASE,
)

_MULTIPLIERS = {
    "B": 1,
    "BYTE": 1,
    "BYTES": 1,
    "KB": 1024,
    "KIB": 1024,
    "MB": 1024**2,
    "MIB": 1024**2,
    "GB": 1024**3,
    "GIB": 1024**3,
    "TB": 1024**4,
    "TIB": 1024**4,
}


def parse_size_to_bytes(size: str | int | float | None) -> int:
    """Parse size string to bytes.

    Supports formats:
        - "1234" (raw bytes)
        - "4.5 GB", "4,5 GB"
        - "500 MB", "700MiB"
        - "Size: 1.2 TB" (the first number+unit pair wins)

    Unparseable input yields 0; this function never raises.
    """
    if size is None or isinstance(size, bool):
        return 0
    if isinstance(size, (int, float)):
        return max(int(size), 0)

    text = size.strip()
    if not text:
        return 0
    if text.isdigit():
        return int(text)

    match = _SIZE_RE.search(text)
    if not match:
        return 0

    value = float(match.group(1).replace(",", "."))
    unit = match.group(2).upper()
    return int(value * _MULTIPLIERS[unit])
