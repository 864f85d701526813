"""
Rendering and reporting utilities.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Set, Tuple

import pandas as pd

from .models import (
    ExecutionTally,
    RiskAssessment,
    RiskLevel,
    UpdateCandidate,
    Verbosity,
)


logger = logging.getLogger(__name__)

MAX_AFFECTED_SHOWN = 10

_RISK_COLORS = {
    RiskLevel.LOW: "\033[0;32m",
    RiskLevel.MEDIUM: "\033[1;33m",
    RiskLevel.HIGH: "\033[0;31m",
}
_RESET = "\033[0m"


class WarningRegistry:
    """Log each degraded-but-continuing condition once per run."""

    def __init__(self) -> None:
        self._seen: Set[str] = set()
        self._lock = threading.Lock()

    def warn(self, key: str, message: str, *args) -> bool:
        with self._lock:
            if key in self._seen:
                logger.debug("Suppressed repeat warning %s", key)
                return False
            self._seen.add(key)
        logger.warning(message, *args)
        return True

    def seen(self, key: str) -> bool:
        return key in self._seen


def _risk_label(risk: RiskLevel, color: bool) -> str:
    if not color:
        return risk.name
    return f"{_RISK_COLORS[risk]}{risk.name}{_RESET}"


def render_assessment(
    candidate: UpdateCandidate,
    assessment: RiskAssessment,
    verbosity: Verbosity,
    color: bool = False,
) -> str:
    """Render one assessment at the requested detail level."""
    risk = _risk_label(assessment.risk, color)
    if verbosity is Verbosity.SUMMARY:
        return (
            f"{candidate.name} {candidate.current} -> {candidate.latest} "
            f"[{candidate.source.value}] {risk}"
        )

    lines = [
        f"📦 {candidate.name} ({candidate.source.value})",
        f"   {candidate.current} → {candidate.latest}",
        f"   Risk: {risk} ({assessment.delta.value} update)",
    ]
    if verbosity is Verbosity.VERBOSE:
        lines.append("   Risk factors:")
        for factor in assessment.factors:
            lines.append(f"     • {factor}")
        if assessment.affected_packages:
            shown = list(assessment.affected_packages[:MAX_AFFECTED_SHOWN])
            extra = len(assessment.affected_packages) - len(shown)
            suffix = f" (+{extra} more)" if extra > 0 else ""
            lines.append(f"   Affected packages: {', '.join(shown)}{suffix}")
        elif assessment.dependency_count:
            lines.append("   Affected packages: (names unavailable)")
    return "\n".join(lines)


def assessments_frame(
    assessed: Iterable[Tuple[UpdateCandidate, RiskAssessment]]
) -> pd.DataFrame:
    """Tabulate assessments for the batch summary view."""
    rows = [
        {
            "package": candidate.name,
            "source": candidate.source.value,
            "current": candidate.current,
            "latest": candidate.latest,
            "change": assessment.delta.value,
            "deps": assessment.dependency_count,
            "release": assessment.release_type.value,
            "risk": assessment.risk.name,
        }
        for candidate, assessment in assessed
    ]
    columns = ["package", "source", "current", "latest", "change", "deps", "release", "risk"]
    return pd.DataFrame(rows, columns=columns)


def format_frame(df: pd.DataFrame) -> str:
    if df.empty:
        return "(no updates)"
    return df.to_string(index=False)


def risk_counts(assessed: Iterable[Tuple[UpdateCandidate, RiskAssessment]]) -> dict:
    df = assessments_frame(assessed)
    counts = df["risk"].value_counts()
    return {level.name: int(counts.get(level.name, 0)) for level in RiskLevel}


def format_tally(tally: ExecutionTally, skipped: int = 0) -> List[str]:
    lines = [
        "=" * 60,
        "UPDATE SUMMARY",
        "=" * 60,
        f"✅ Succeeded: {tally.succeeded}",
        f"❌ Failed: {tally.failed}",
    ]
    if skipped:
        lines.append(f"⏭️  Skipped by choice: {skipped}")
    if tally.aborted:
        lines.append(f"⏹️  Skipped due to abort: {tally.aborted}")
    lines.append("=" * 60)
    return lines


def print_rollback_guidance() -> None:
    print("⚠️  Packages already installed in this run are not rolled back automatically.")
    print("   Use the environment's revision history to restore, e.g.:")
    print("     conda list --revisions")
    print("     conda install --revision <N>")
    print("   or ./conda_rollback.sh if available.")
