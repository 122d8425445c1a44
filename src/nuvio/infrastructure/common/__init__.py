"""Common infrastructure utilities."""

from __future__ import annotations

from .parsers import parse_size_to_bytes

__all__ = [
    "parse_size_to_bytes",
]
