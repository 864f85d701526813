"""
Interfaces for package sources, caches and installers.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Protocol, Tuple


class CacheKind(Enum):
    """What a cache entry holds; JSON kinds are validated on read."""

    REGISTRY = "registry"
    DEPENDENCY_PROBE = "dependency-probe"

    @property
    def is_json(self) -> bool:
        return self is CacheKind.REGISTRY


class MetadataCache(Protocol):
    """Time-boxed store keyed by (package, kind)."""

    ttl: int

    def get(self, package: str, kind: CacheKind) -> Optional[str]:
        ...

    def put(self, package: str, kind: CacheKind, payload: str) -> None:
        ...

    def clear_all(self) -> None:
        ...


class SolverSource(Protocol):
    """A dependency-solving package manager (conda)."""

    def list_installed(self) -> List[Tuple[str, str]]:
        ...

    def search_latest(self, package: str) -> Optional[str]:
        ...

    def dry_run_install(self, package: str, version: str) -> str:
        ...

    def install_pinned(self, package: str, version: str) -> Tuple[bool, str]:
        ...


class InstallerSource(Protocol):
    """A flat installer with an outdated query (pip)."""

    def list_installed(self) -> List[Tuple[str, str]]:
        ...

    def list_outdated(self) -> List[Tuple[str, str, str]]:
        ...

    def show_dependencies(self, package: str) -> List[str]:
        ...

    def install_pinned(self, package: str, version: str) -> Tuple[bool, str]:
        ...
