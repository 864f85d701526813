"""
Time-boxed on-disk cache for registry payloads and dry-run output.

One file per (package, kind) under a directory namespaced by environment
name. The file mtime is the creation time. Concurrent runs against the same
environment share the directory without locking.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import tempfile
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from packaging.utils import canonicalize_name

from .interfaces import CacheKind


logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def cache_filename(package: str, kind: CacheKind) -> str:
    """Filesystem-safe name for a (package, kind) entry."""
    safe = _UNSAFE.sub("_", str(canonicalize_name(package))) or "_"
    return f"{safe}.{kind.value}"


def is_valid_payload(payload: str, kind: CacheKind) -> bool:
    if not kind.is_json:
        return True
    try:
        data = json.loads(payload)
    except (TypeError, ValueError):
        return False
    return isinstance(data, (dict, list))


def default_cache_root(env_name: str) -> Path:
    safe_env = _UNSAFE.sub("_", env_name) or "_"
    return Path(tempfile.gettempdir()) / f"update_advisor_cache_{safe_env}"


class FileMetadataCache:
    """Filesystem-backed metadata cache."""

    def __init__(
        self,
        env_name: str,
        ttl: int = 3600,
        root: Optional[Path] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.env_name = env_name
        self.ttl = ttl
        self.clock = clock
        self.ephemeral = False
        self.directory = self._prepare(Path(root) if root else default_cache_root(env_name))

    def _prepare(self, directory: Path) -> Path:
        try:
            directory.mkdir(parents=True, exist_ok=True)
            if not os.access(directory, os.W_OK):
                raise PermissionError(f"{directory} is not writable")
            return directory
        except OSError as e:
            fallback = Path(tempfile.mkdtemp(prefix=f"update_advisor_{self.env_name}_"))
            logger.warning(
                "Cache directory %s unusable (%s); using temporary cache %s",
                directory, e, fallback,
            )
            self.ephemeral = True
            return fallback

    def _path(self, package: str, kind: CacheKind) -> Path:
        return self.directory / cache_filename(package, kind)

    def get(self, package: str, kind: CacheKind) -> Optional[str]:
        path = self._path(package, kind)
        try:
            age = self.clock() - path.stat().st_mtime
        except FileNotFoundError:
            return None
        if age > self.ttl:
            logger.debug("Cache expired: %s (%.0fs old)", path.name, age)
            return None
        try:
            payload = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Unreadable cache entry %s: %s", path.name, e)
            payload = None
        if payload is None or not is_valid_payload(payload, kind):
            logger.info("Discarding corrupt cache entry %s", path.name)
            path.unlink(missing_ok=True)
            return None
        logger.debug("Cache hit: %s", path.name)
        return payload

    def put(self, package: str, kind: CacheKind, payload: str) -> None:
        path = self._path(package, kind)
        try:
            path.write_text(payload, encoding="utf-8")
            now = self.clock()
            os.utime(path, (now, now))
        except OSError as e:
            logger.warning("Failed to write cache entry %s: %s", path.name, e)

    def clear_all(self) -> None:
        removed = 0
        for entry in self.directory.iterdir():
            if entry.is_file():
                entry.unlink(missing_ok=True)
                removed += 1
        logger.info("Cleared %d cache entries from %s", removed, self.directory)

    def cleanup(self) -> None:
        """Remove the store if it is a process-lifetime fallback."""
        if self.ephemeral:
            shutil.rmtree(self.directory, ignore_errors=True)


class InMemoryMetadataCache:
    """Dictionary-backed cache with the same semantics, for tests."""

    def __init__(self, ttl: int = 3600, clock: Callable[[], float] = time.time) -> None:
        self.ttl = ttl
        self.clock = clock
        self.ephemeral = False
        self.entries: Dict[Tuple[str, CacheKind], Tuple[str, float]] = {}

    def get(self, package: str, kind: CacheKind) -> Optional[str]:
        key = (str(canonicalize_name(package)), kind)
        entry = self.entries.get(key)
        if entry is None:
            return None
        payload, created_at = entry
        if self.clock() - created_at > self.ttl:
            return None
        if not is_valid_payload(payload, kind):
            del self.entries[key]
            return None
        return payload

    def put(self, package: str, kind: CacheKind, payload: str) -> None:
        self.entries[(str(canonicalize_name(package)), kind)] = (payload, self.clock())

    def clear_all(self) -> None:
        self.entries.clear()

    def cleanup(self) -> None:
        self.entries.clear()
