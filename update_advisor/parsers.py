"""
Parsers for conda and pip command output.

Structured (JSON) output is preferred everywhere; the ``*_text`` paths scrape
human-readable tables and are best effort. Both paths return the same types so
callers never care which one produced the data.
"""

from __future__ import annotations

import json
import re
from typing import Dict, Iterable, List, Optional, Set, Tuple

from packaging import version as pkg_version
from packaging.utils import canonicalize_name


# "conda-forge::numpy-1.26.4-py311h64a7726_0" or "numpy-1.26.4-py311h64a7726_0"
_DIST_STRING = re.compile(r"^(?:[^:]+::)?(?P<name>.+)-(?P<version>[^-]+)-(?P<build>[^-]+)$")

_DRY_RUN_SECTION = re.compile(
    r"^The following (?:NEW )?packages will be (?P<action>[A-Z]+)", re.IGNORECASE
)
_CHANGE_ACTIONS = {"UPDATED", "DOWNGRADED", "INSTALLED"}


def load_json(text: str):
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def _table_rows(text: str) -> Iterable[List[str]]:
    """Yield whitespace-split rows, skipping comments and banners."""
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith(("Loading channels", "Retrieving notices")):
            continue
        if set(stripped) <= set("- "):
            continue
        yield stripped.split()


def version_sort_key(value: str):
    """Sort key that orders PEP 440 versions properly and others last-resort."""
    try:
        return (1, pkg_version.Version(value), value)
    except pkg_version.InvalidVersion:
        return (0, pkg_version.Version("0"), value)


def highest_version(versions: Iterable[str]) -> Optional[str]:
    candidates = [v for v in versions if v]
    if not candidates:
        return None
    return max(candidates, key=version_sort_key)


# -- conda list ---------------------------------------------------------------

def parse_conda_list_json(text: str) -> Optional[List[Tuple[str, str]]]:
    """Packages from ``conda list --json``, excluding pip-managed ones.

    Returns None if the output is not the expected JSON shape.
    """
    data = load_json(text)
    if not isinstance(data, list):
        return None
    packages = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        version = entry.get("version")
        if not name or not version:
            continue
        if entry.get("channel") == "pypi":
            continue
        packages.append((name, version))
    return packages


def parse_conda_list_text(text: str) -> List[Tuple[str, str]]:
    """Packages from the ``conda list`` table (Name Version Build Channel)."""
    packages = []
    for row in _table_rows(text):
        if len(row) < 2:
            continue
        name, version = row[0], row[1]
        if len(row) >= 4 and row[3] == "pypi":
            continue
        packages.append((name, version))
    return packages


# -- conda search -------------------------------------------------------------

def parse_conda_search_json(text: str, package: str) -> Optional[str]:
    data = load_json(text)
    if not isinstance(data, dict) or "error" in data:
        return None
    wanted = canonicalize_name(package)
    versions = []
    for name, entries in data.items():
        if canonicalize_name(name) != wanted or not isinstance(entries, list):
            continue
        versions.extend(e.get("version", "") for e in entries if isinstance(e, dict))
    return highest_version(versions)


def parse_conda_search_text(text: str, package: str) -> Optional[str]:
    wanted = canonicalize_name(package)
    versions = [
        row[1]
        for row in _table_rows(text)
        if len(row) >= 2 and canonicalize_name(row[0]) == wanted
    ]
    return highest_version(versions)


# -- conda install --dry-run --------------------------------------------------

def _dist_name(entry) -> Optional[str]:
    if isinstance(entry, dict):
        return entry.get("name")
    if isinstance(entry, str):
        match = _DIST_STRING.match(entry)
        if match:
            return match.group("name")
    return None


def parse_dry_run_changes(text: str, exclude: str) -> Tuple[int, List[str]]:
    """Count other packages a dry-run says would change.

    This is a deliberately simple observation of the solver's report, not a
    dependency-graph diff: every package linked or unlinked other than
    ``exclude`` counts once. Entries whose names cannot be recovered still
    count toward the total, so the returned name list may be shorter than the
    count.
    """
    data = load_json(text)
    if isinstance(data, dict):
        return _parse_dry_run_json(data, exclude)
    return _parse_dry_run_text(text, exclude)


def _parse_dry_run_json(data: Dict, exclude: str) -> Tuple[int, List[str]]:
    actions = data.get("actions") or {}
    if isinstance(actions, list):
        # Older conda emits a list of per-prefix action dicts.
        merged: Dict[str, list] = {}
        for block in actions:
            if isinstance(block, dict):
                for key, value in block.items():
                    if isinstance(value, list):
                        merged.setdefault(key, []).extend(value)
        actions = merged

    skip = canonicalize_name(exclude)
    names: List[str] = []
    seen: Set[str] = set()
    unnamed = 0
    for key in ("LINK", "UNLINK"):
        for entry in actions.get(key, []) or []:
            name = _dist_name(entry)
            if name is None:
                unnamed += 1
                continue
            canonical = canonicalize_name(name)
            if canonical == skip or canonical in seen:
                continue
            seen.add(canonical)
            names.append(name)
    return len(names) + unnamed, names


def _parse_dry_run_text(text: str, exclude: str) -> Tuple[int, List[str]]:
    skip = canonicalize_name(exclude)
    names: List[str] = []
    seen: Set[str] = set()
    in_section = False
    for line in text.splitlines():
        header = _DRY_RUN_SECTION.match(line.strip())
        if header:
            in_section = header.group("action").upper() in _CHANGE_ACTIONS
            continue
        if not in_section:
            continue
        if not line.strip():
            continue
        if not line.startswith((" ", "\t")):
            in_section = False
            continue
        token = line.split()[0].rstrip(":")
        canonical = canonicalize_name(token)
        if canonical == skip or canonical in seen:
            continue
        seen.add(canonical)
        names.append(token)
    return len(names), names


# -- pip ----------------------------------------------------------------------

def parse_pip_outdated_json(text: str) -> Optional[List[Tuple[str, str, str]]]:
    data = load_json(text)
    if not isinstance(data, list):
        return None
    rows = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        current = entry.get("version")
        latest = entry.get("latest_version")
        if name and current and latest:
            rows.append((name, current, latest))
    return rows


def parse_pip_outdated_text(text: str) -> List[Tuple[str, str, str]]:
    """Rows of ``pip list --outdated`` columns (Package Version Latest Type)."""
    rows = []
    for row in _table_rows(text):
        if len(row) < 3 or row[0] == "Package":
            continue
        rows.append((row[0], row[1], row[2]))
    return rows


def parse_pip_list_json(text: str) -> Optional[List[Tuple[str, str]]]:
    data = load_json(text)
    if not isinstance(data, list):
        return None
    return [
        (entry["name"], entry["version"])
        for entry in data
        if isinstance(entry, dict) and entry.get("name") and entry.get("version")
    ]


def parse_pip_requires(text: str) -> List[str]:
    """Dependency names from the ``Requires:`` line of ``pip show``."""
    for line in text.splitlines():
        if line.startswith("Requires:"):
            value = line.split(":", 1)[1]
            return [name.strip() for name in value.split(",") if name.strip()]
    return []
