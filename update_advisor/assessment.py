"""
Risk assessment orchestration.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Iterator, List, Optional, Tuple

from .impact import DependencyImpactProber
from .models import (
    NEUTRAL_SIGNAL,
    ImpactReport,
    ReleaseType,
    RiskAssessment,
    SecuritySignal,
    Source,
    UpdateCandidate,
)
from .registry import SecurityClassifier
from .risk import base_risk, lower, risk_for_dependencies
from .versioning import classify_delta


logger = logging.getLogger(__name__)

PREFETCH_WORKERS = 4


def compose_assessment(
    candidate: UpdateCandidate,
    impact: ImpactReport,
    signal: SecuritySignal,
) -> RiskAssessment:
    """Combine the three signals in a fixed order.

    Dependency elevation is applied before the security reduction, so a
    structurally risky security fix (major bump, heavy fan-out) still ends up
    at MEDIUM rather than LOW.
    """
    delta = classify_delta(candidate.current_version, candidate.latest_version)
    risk = base_risk(delta)
    factors = [f"Version: {delta.value}"]

    risk = risk_for_dependencies(risk, impact.count)
    if impact.count > 0:
        factors.append(f"Dependencies: {impact.count} affected")

    if candidate.source is not Source.PIP:
        signal = NEUTRAL_SIGNAL
    if signal.security:
        risk = lower(risk)
        factors.append(f"Security: {signal.release_type.value} fix detected")
    elif signal.release_type is not ReleaseType.UNKNOWN:
        factors.append(f"Release type: {signal.release_type.value}")

    return RiskAssessment(
        risk=risk,
        delta=delta,
        dependency_count=impact.count,
        affected_packages=tuple(impact.names),
        release_type=signal.release_type,
        security=signal.security,
        factors=tuple(factors),
    )


class RiskAssessor:
    """Assess candidates one at a time, in discovery order."""

    def __init__(
        self,
        prober: DependencyImpactProber,
        classifier: SecurityClassifier,
    ) -> None:
        self.prober = prober
        self.classifier = classifier

    def assess(self, candidate: UpdateCandidate) -> RiskAssessment:
        # The probe and the registry lookup are independent; run them together.
        with ThreadPoolExecutor(max_workers=2) as executor:
            impact_future = executor.submit(self.prober.probe, candidate)
            signal_future = executor.submit(self.classifier.classify, candidate)
            impact = impact_future.result()
            signal = signal_future.result()
        assessment = compose_assessment(candidate, impact, signal)
        logger.info(
            "Assessed %s %s -> %s: %s",
            candidate.name, candidate.current, candidate.latest, assessment.risk.name,
        )
        return assessment

    def prefetch(self, candidates: Iterable[UpdateCandidate]) -> int:
        """Warm the registry cache for pip candidates ahead of the loop."""
        names = sorted({c.name for c in candidates if c.source is Source.PIP})
        if not names:
            return 0
        with ThreadPoolExecutor(max_workers=PREFETCH_WORKERS) as executor:
            list(executor.map(self.classifier.load_payload, names))
        logger.debug("Prefetched registry metadata for %d packages", len(names))
        return len(names)

    def iter_assessments(
        self, candidates: List[UpdateCandidate]
    ) -> Iterator[Tuple[UpdateCandidate, RiskAssessment]]:
        """Yield assessments lazily so a quit stops further external calls."""
        for candidate in candidates:
            yield candidate, self.assess(candidate)


def assess_all(
    assessor: RiskAssessor, candidates: List[UpdateCandidate],
    prefetch: Optional[bool] = True,
) -> List[Tuple[UpdateCandidate, RiskAssessment]]:
    if prefetch:
        assessor.prefetch(candidates)
    return list(assessor.iter_assessments(candidates))
