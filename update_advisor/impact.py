"""
Dependency impact probing.

conda: count the other packages a dry-run install would link or unlink.
pip:   count the declared requirements of the installed package. This is a
       one-level proxy, not a "would change" count.

Every failure degrades to ImpactReport(0, ()), so a broken probe never raises
risk and never blocks the workflow.
"""

from __future__ import annotations

import logging
from typing import Optional

from .errors import SourceUnavailableError
from .interfaces import CacheKind, InstallerSource, MetadataCache, SolverSource
from .models import ImpactReport, Source, UpdateCandidate
from .parsers import parse_dry_run_changes
from .reporting import WarningRegistry


logger = logging.getLogger(__name__)


def probe_cache_key(candidate: UpdateCandidate) -> str:
    return f"{candidate.name}=={candidate.latest}"


class DependencyImpactProber:
    """Ask the owning package source how far an update would reach."""

    def __init__(
        self,
        conda: Optional[SolverSource],
        pip: Optional[InstallerSource],
        cache: Optional[MetadataCache] = None,
        warnings: Optional[WarningRegistry] = None,
    ) -> None:
        self.conda = conda
        self.pip = pip
        self.cache = cache
        self.warnings = warnings or WarningRegistry()

    def probe(self, candidate: UpdateCandidate) -> ImpactReport:
        try:
            if candidate.source is Source.CONDA:
                return self._probe_conda(candidate)
            return self._probe_pip(candidate)
        except SourceUnavailableError as e:
            self.warnings.warn(
                f"probe-{candidate.source.value}",
                "Dependency impact check failed (%s); assuming no impact",
                e.reason,
            )
        except Exception as e:
            logger.warning("Unexpected error probing %s: %s", candidate.name, e)
        return ImpactReport()

    def _probe_conda(self, candidate: UpdateCandidate) -> ImpactReport:
        if self.conda is None:
            return ImpactReport()
        key = probe_cache_key(candidate)
        output = self.cache.get(key, CacheKind.DEPENDENCY_PROBE) if self.cache else None
        if output is None:
            output = self.conda.dry_run_install(candidate.name, candidate.latest)
            if self.cache is not None:
                self.cache.put(key, CacheKind.DEPENDENCY_PROBE, output)
        count, names = parse_dry_run_changes(output, exclude=candidate.name)
        logger.debug("conda dry-run for %s: %d affected", candidate.name, count)
        return ImpactReport(count, tuple(names))

    def _probe_pip(self, candidate: UpdateCandidate) -> ImpactReport:
        if self.pip is None:
            return ImpactReport()
        names = self.pip.show_dependencies(candidate.name)
        return ImpactReport(len(names), tuple(names))
