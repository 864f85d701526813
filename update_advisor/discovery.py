"""
Discover available updates across conda and pip.
"""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

from tqdm import tqdm

from .config import RunConfig
from .errors import SourceUnavailableError
from .interfaces import InstallerSource, SolverSource
from .models import DiscoveryResult, Source, UpdateCandidate, Verbosity
from .reporting import WarningRegistry


logger = logging.getLogger(__name__)


def discover_conda_updates(
    conda: SolverSource, show_progress: bool = False
) -> List[UpdateCandidate]:
    """Search conda for each installed package; one call per package."""
    installed = conda.list_installed()
    candidates = []
    for name, current in tqdm(
        installed, desc="Checking conda packages", disable=not show_progress, leave=False
    ):
        latest = conda.search_latest(name)
        if latest is None:
            logger.debug("No conda search result for %s", name)
            continue
        if latest != current:
            candidates.append(UpdateCandidate(name, Source.CONDA, current, latest))
    return candidates


def discover_pip_updates(pip: InstallerSource) -> List[UpdateCandidate]:
    """pip reports (name, current, latest) directly."""
    return [
        UpdateCandidate(name, Source.PIP, current, latest)
        for name, current, latest in pip.list_outdated()
    ]


def discover_updates(
    config: RunConfig,
    conda: Optional[SolverSource],
    pip: Optional[InstallerSource],
    warnings: Optional[WarningRegistry] = None,
) -> DiscoveryResult:
    """Merge candidates from every enabled source, conda first.

    A failing source contributes nothing and is reported once; the other
    source still runs.
    """
    warnings = warnings or WarningRegistry()
    candidates: List[UpdateCandidate] = []
    attempted = []
    failed = []
    show_progress = config.verbosity is not Verbosity.SUMMARY and sys.stderr.isatty()

    if config.include_conda and conda is not None:
        attempted.append(Source.CONDA)
        try:
            found = discover_conda_updates(conda, show_progress=show_progress)
            logger.info("conda: %d update(s) available", len(found))
            candidates.extend(found)
        except SourceUnavailableError as e:
            failed.append(Source.CONDA)
            warnings.warn("source-conda", "Could not check conda packages: %s", e.reason)

    if config.include_pip and pip is not None:
        attempted.append(Source.PIP)
        try:
            found = discover_pip_updates(pip)
            logger.info("pip: %d update(s) available", len(found))
            candidates.extend(found)
        except SourceUnavailableError as e:
            failed.append(Source.PIP)
            warnings.warn("source-pip", "Could not check pip packages: %s", e.reason)

    return DiscoveryResult(
        candidates=candidates,
        failed_sources=tuple(failed),
        attempted_sources=tuple(attempted),
    )
