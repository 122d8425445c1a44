"""File adapter - one JSON document per key in a local directory.

Used as the fallback tier behind Redis. TTLs are not enforced here:
values written by the stream cache carry their own expiry timestamp.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import uuid
from pathlib import Path
from typing import Any

import structlog

log = structlog.get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def safe_filename(key: str) -> str:
    """Map a cache key to a path-safe file name (``<key>.json``)."""
    name = _UNSAFE_CHARS.sub("_", key).lstrip(".") or "_"
    return f"{name}.json"


class FileCacheAdapter:
    """Async JSON file store (blocking I/O runs in a worker thread).

    Args:
        directory: Storage directory, created on ``__aenter__``.
        max_concurrent: Max parallel file operations.
    """

    def __init__(
        self, directory: str | Path = "./.streams_cache", max_concurrent: int = 10
    ) -> None:
        self.directory = Path(directory)
        self._semaphore = asyncio.Semaphore(max_concurrent)

    def path_for(self, key: str) -> Path:
        return self.directory / safe_filename(key)

    # --- Context Manager ---
    async def __aenter__(self) -> FileCacheAdapter:
        try:
            await asyncio.to_thread(self.directory.mkdir, parents=True, exist_ok=True)
            log.info("file_cache_ready", directory=str(self.directory))
        except OSError as e:
            log.error(
                "file_cache_mkdir_failed", directory=str(self.directory), error=str(e)
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Nothing to release; files are closed after every operation."""

    # --- CachePort implementation ---
    async def get(self, key: str) -> Any | None:
        path = self.path_for(key)
        async with self._semaphore:
            try:
                raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
            except FileNotFoundError:
                log.debug("cache_miss", key=key)
                return None
            except OSError as e:
                log.error("file_cache_read_error", key=key, error=str(e))
                return None
        try:
            return json.loads(raw)
        except ValueError as e:
            log.error("file_cache_decode_error", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, *, ttl: float | None = None) -> None:
        try:
            packed = json.dumps(value)
        except (TypeError, ValueError) as e:
            log.error("json_serialize_error", key=key, error=str(e))
            return

        path = self.path_for(key)
        async with self._semaphore:
            try:
                await asyncio.to_thread(_atomic_write, path, packed)
                log.debug("cache_set", key=key, path=str(path), size_bytes=len(packed))
            except OSError as e:
                log.error("file_cache_write_error", key=key, error=str(e))

    async def delete(self, key: str) -> bool:
        path = self.path_for(key)
        async with self._semaphore:
            try:
                await asyncio.to_thread(path.unlink)
            except FileNotFoundError:
                return False
            except OSError as e:
                log.error("file_cache_delete_error", key=key, error=str(e))
                return False
        log.debug("cache_delete", key=key, deleted=True)
        return True

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self.path_for(key).is_file)

    async def clear(self) -> None:
        async with self._semaphore:
            removed = await asyncio.to_thread(_remove_json_files, self.directory)
        log.warning("cache_cleared", directory=str(self.directory), removed=removed)


def _atomic_write(path: Path, data: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        tmp.write_text(data, encoding="utf-8")
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def _remove_json_files(directory: Path) -> int:
    removed = 0
    for path in directory.glob("*.json"):
        try:
            path.unlink()
            removed += 1
        except FileNotFoundError:
            continue
    return removed
