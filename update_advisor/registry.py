"""
Release classification from PyPI JSON metadata.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Dict, List, Optional

import requests

from .interfaces import CacheKind, MetadataCache
from .models import NEUTRAL_SIGNAL, ReleaseType, SecuritySignal, Source, UpdateCandidate
from .reporting import WarningRegistry


logger = logging.getLogger(__name__)

SECURITY_KEYWORDS = re.compile(
    r"\b(?:security|vulnerabilit(?:y|ies)|exploit\w*|patch\w*)\b|\bCVE-", re.IGNORECASE
)
BUGFIX_KEYWORDS = re.compile(r"\b(?:bugs?|bugfix(?:es)?|fix(?:es|ed)?)\b", re.IGNORECASE)
FEATURE_KEYWORDS = re.compile(r"\b(?:features?|enhancements?|new)\b", re.IGNORECASE)

_VERSION_HEADING = re.compile(r"^\W*v?\d+\.\d+")
_NOTES_MAX_LINES = 40


class RegistryClient:
    """Fetch package metadata from the PyPI JSON API."""

    def __init__(
        self,
        base_url: str = "https://pypi.org/pypi",
        connect_timeout: float = 3.0,
        read_timeout: float = 2.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = (connect_timeout, read_timeout)
        self.session = session or requests.Session()

    def fetch(self, package_name: str) -> Dict:
        url = f"{self.base_url}/{package_name}/json"
        logger.info("Fetching registry metadata for %s", package_name)
        with self.session.get(url, timeout=self.timeout) as response:
            response.raise_for_status()
            return response.json()


def release_notes(description: str, version: str) -> str:
    """Slice of ``description`` describing ``version``, or all of it.

    Changelogs embedded in long descriptions usually head each release with
    its version number; when such a heading exists, only that section is
    scanned so older entries do not leak in.
    """
    if not description:
        return ""
    lines = description.splitlines()
    for index, line in enumerate(lines):
        if version in line and _VERSION_HEADING.match(line.strip()):
            section = [line]
            for following in lines[index + 1:index + 1 + _NOTES_MAX_LINES]:
                if _VERSION_HEADING.match(following.strip()) and version not in following:
                    break
                section.append(following)
            return "\n".join(section)
    return description


def _as_dict(value) -> Dict:
    return value if isinstance(value, dict) else {}


def _release_text(payload: Dict, version: str) -> str:
    info = _as_dict(payload.get("info"))
    parts: List[str] = []
    if info.get("version") == version:
        parts.append(str(info.get("summary") or ""))
        parts.append(release_notes(str(info.get("description") or ""), version))
    files = _as_dict(payload.get("releases")).get(version)
    for release_file in files if isinstance(files, list) else []:
        if isinstance(release_file, dict) and release_file.get("comment_text"):
            parts.append(str(release_file["comment_text"]))
    return "\n".join(part for part in parts if part)


def classify_release(payload: Dict, version: str) -> SecuritySignal:
    """Derive (security, release_type) from a registry payload.

    A disclosed vulnerability list wins outright. Otherwise keyword families
    are checked in precedence order security > bugfix > feature.
    """
    if not isinstance(payload, dict):
        return NEUTRAL_SIGNAL
    if payload.get("vulnerabilities"):
        return SecuritySignal(True, ReleaseType.SECURITY)

    classifiers = _as_dict(payload.get("info")).get("classifiers")
    if not isinstance(classifiers, list):
        classifiers = []
    if any("security" in str(c).lower() for c in classifiers):
        return SecuritySignal(True, ReleaseType.SECURITY)

    text = _release_text(payload, version)
    if SECURITY_KEYWORDS.search(text):
        return SecuritySignal(True, ReleaseType.SECURITY)
    if BUGFIX_KEYWORDS.search(text):
        return SecuritySignal(False, ReleaseType.BUGFIX)
    if FEATURE_KEYWORDS.search(text):
        return SecuritySignal(False, ReleaseType.FEATURE)
    return NEUTRAL_SIGNAL


class SecurityClassifier:
    """Cache-first registry lookup feeding classify_release."""

    def __init__(
        self,
        client: RegistryClient,
        cache: Optional[MetadataCache] = None,
        warnings: Optional[WarningRegistry] = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.warnings = warnings or WarningRegistry()

    def load_payload(self, package_name: str) -> Optional[Dict]:
        """Cached payload if fresh, else fetched; None when unavailable."""
        if self.cache is not None:
            cached = self.cache.get(package_name, CacheKind.REGISTRY)
            if cached is not None:
                return json.loads(cached)
        try:
            payload = self.client.fetch(package_name)
        except (requests.RequestException, ValueError) as e:
            self.warnings.warn(
                "registry-unavailable",
                "Package registry unavailable (%s); security checks skipped",
                e,
            )
            return None
        if self.cache is not None:
            self.cache.put(package_name, CacheKind.REGISTRY, json.dumps(payload))
        return payload

    def classify(self, candidate: UpdateCandidate) -> SecuritySignal:
        # The registry only describes pip packages.
        if candidate.source is not Source.PIP:
            return NEUTRAL_SIGNAL
        payload = self.load_payload(candidate.name)
        if payload is None:
            return NEUTRAL_SIGNAL
        try:
            return classify_release(payload, candidate.latest)
        except Exception as e:
            logger.warning("Could not classify %s from registry metadata: %s", candidate.name, e)
            return NEUTRAL_SIGNAL
