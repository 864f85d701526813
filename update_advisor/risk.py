"""
Risk level arithmetic.

All functions here are pure and total.
"""

from __future__ import annotations

from .models import RiskLevel, VersionDelta


_BASE_RISK = {
    VersionDelta.MAJOR: RiskLevel.HIGH,
    VersionDelta.MINOR: RiskLevel.MEDIUM,
    VersionDelta.PATCH: RiskLevel.LOW,
    # Unrecognised version schemes are treated as moderate, not safe.
    VersionDelta.UNKNOWN: RiskLevel.MEDIUM,
}

HEAVY_FANOUT = 4


def base_risk(delta: VersionDelta) -> RiskLevel:
    return _BASE_RISK[delta]


def elevate(level: RiskLevel, by: int = 1) -> RiskLevel:
    """Raise ``level`` by ``by`` steps, saturating at HIGH."""
    if by <= 0:
        return level
    return RiskLevel(min(int(level) + by, int(RiskLevel.HIGH)))


def lower(level: RiskLevel) -> RiskLevel:
    """Lower ``level`` one step, saturating at LOW."""
    return RiskLevel(max(int(level) - 1, int(RiskLevel.LOW)))


def risk_for_dependencies(level: RiskLevel, dependency_count: int) -> RiskLevel:
    """Elevate by two for heavy fan-out, by one for any impact at all."""
    if dependency_count >= HEAVY_FANOUT:
        return elevate(level, 2)
    if dependency_count >= 1:
        return elevate(level, 1)
    return level
