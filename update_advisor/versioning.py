"""
Version parsing and delta classification.
"""

from __future__ import annotations

import re

from .models import Version, VersionDelta


_VERSION_PREFIX = re.compile(r"^[vV]?(\d+)(?:\.(\d+))?(?:\.(\d+))?")

UNPARSED = Version(0, 0, 0)


def parse_version(raw: str) -> Version:
    """Parse the leading ``N``, ``N.N`` or ``N.N.N`` of a version string.

    Never raises. Anything without a numeric prefix (``"latest"``, ``""``,
    ``None``) becomes the (0, 0, 0) sentinel. Components after the third are
    ignored, so ``"1.2.3.4"`` and ``"1.2.3rc1"`` both parse as 1.2.3.
    """
    if not raw or not isinstance(raw, str):
        return UNPARSED
    match = _VERSION_PREFIX.match(raw.strip())
    if match is None:
        return UNPARSED
    major, minor, patch = (int(part) if part else 0 for part in match.groups())
    return Version(major, minor, patch)


def classify_delta(current: Version, latest: Version) -> VersionDelta:
    """Classify the change from ``current`` to ``latest``.

    Major takes precedence over minor, minor over patch. UNKNOWN covers equal
    versions, downgrades and any comparison against the (0, 0, 0) sentinel.
    Two distinct non-numeric schemes ("latest" -> "2023.1") therefore come out
    UNKNOWN even when they describe a real change; no attempt is made to
    guess intent.
    """
    if current == UNPARSED or latest == UNPARSED:
        return VersionDelta.UNKNOWN
    if latest.major > current.major:
        return VersionDelta.MAJOR
    if latest.major < current.major:
        return VersionDelta.UNKNOWN
    if latest.minor > current.minor:
        return VersionDelta.MINOR
    if latest.minor < current.minor:
        return VersionDelta.UNKNOWN
    if latest.patch > current.patch:
        return VersionDelta.PATCH
    return VersionDelta.UNKNOWN
