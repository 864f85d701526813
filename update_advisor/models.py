"""
Core data models for update risk assessment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Version:
    """A semantic (major, minor, patch) triple."""

    major: int = 0
    minor: int = 0
    patch: int = 0

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class VersionDelta(Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    UNKNOWN = "unknown"


class RiskLevel(IntEnum):
    """Ordered risk judgment attached to a candidate."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3


class Source(Enum):
    """Where a package was installed from."""

    CONDA = "conda"
    PIP = "pip"


class ReleaseType(Enum):
    SECURITY = "security"
    BUGFIX = "bugfix"
    FEATURE = "feature"
    UNKNOWN = "unknown"


class Decision(Enum):
    APPROVED = "approved"
    SKIPPED = "skipped"
    QUIT = "quit"


class Verbosity(Enum):
    SUMMARY = "summary"
    DEFAULT = "default"
    VERBOSE = "verbose"


class FailureCategory(Enum):
    DEPENDENCY_CONFLICT = "dependency conflict"
    PACKAGE_NOT_FOUND = "package not found"
    PERMISSION_DENIED = "permission denied"
    NETWORK = "network error"
    GENERIC = "installation failed"


@dataclass(frozen=True)
class UpdateCandidate:
    """A package with a newer version available."""

    name: str
    source: Source
    current: str
    latest: str

    @property
    def current_version(self) -> Version:
        from .versioning import parse_version

        return parse_version(self.current)

    @property
    def latest_version(self) -> Version:
        from .versioning import parse_version

        return parse_version(self.latest)


@dataclass(frozen=True)
class ImpactReport:
    """Result of probing how many other packages an update touches.

    ``count`` is authoritative for risk elevation; ``names`` is advisory and
    may be shorter than ``count``.
    """

    count: int = 0
    names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SecuritySignal:
    """Release classification derived from registry metadata."""

    security: bool = False
    release_type: ReleaseType = ReleaseType.UNKNOWN


NEUTRAL_SIGNAL = SecuritySignal()


@dataclass(frozen=True)
class RiskAssessment:
    """Risk judgment for one update candidate."""

    risk: RiskLevel
    delta: VersionDelta
    dependency_count: int
    affected_packages: Tuple[str, ...]
    release_type: ReleaseType
    security: bool
    factors: Tuple[str, ...]


@dataclass(frozen=True)
class DiscoveryResult:
    """Candidates found across all package sources."""

    candidates: List[UpdateCandidate] = field(default_factory=list)
    failed_sources: Tuple[Source, ...] = ()
    attempted_sources: Tuple[Source, ...] = ()

    @property
    def undetermined(self) -> bool:
        """True when every attempted source failed."""
        return bool(self.attempted_sources) and set(self.failed_sources) == set(
            self.attempted_sources
        )


@dataclass(frozen=True)
class ExecutionResult:
    candidate: UpdateCandidate
    success: bool
    output: str
    category: Optional[FailureCategory] = None


@dataclass
class ExecutionTally:
    """Final counts for an execution run."""

    succeeded: int = 0
    failed: int = 0
    aborted: int = 0
    results: List[ExecutionResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.aborted == 0
