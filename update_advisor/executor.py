"""
Apply approved updates through the rollback-aware installer.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Tuple

from .config import RunConfig
from .interfaces import InstallerSource, SolverSource
from .models import (
    ExecutionResult,
    ExecutionTally,
    FailureCategory,
    Source,
    UpdateCandidate,
)
from .reporting import WarningRegistry


logger = logging.getLogger(__name__)

SAFE_INSTALL_SCRIPT = "safe_install.sh"
OUTPUT_TAIL_LINES = 15

# Checked in order; the first matching category wins.
_FAILURE_PATTERNS = [
    (FailureCategory.DEPENDENCY_CONFLICT,
     ("conflict", "unsatisfiableerror", "resolutionimpossible")),
    (FailureCategory.PACKAGE_NOT_FOUND,
     ("packagesnotfounderror", "no matching distribution", "not found", "yanked")),
    (FailureCategory.PERMISSION_DENIED,
     ("permission denied", "environmentnotwritable")),
    (FailureCategory.NETWORK,
     ("condahttperror", "connectionerror", "timed out")),
]


def categorize_failure(output: str) -> FailureCategory:
    lowered = (output or "").lower()
    for category, needles in _FAILURE_PATTERNS:
        if any(needle in lowered for needle in needles):
            return category
    return FailureCategory.GENERIC


def output_tail(output: str, lines: int = OUTPUT_TAIL_LINES) -> str:
    return "\n".join((output or "").rstrip().splitlines()[-lines:])


def pinned_spec(candidate: UpdateCandidate) -> str:
    if candidate.source is Source.PIP:
        return f"{candidate.name}=={candidate.latest}"
    return f"{candidate.name}={candidate.latest}"


class UpdateExecutor:
    """Install approved candidates one at a time, in order."""

    def __init__(
        self,
        config: RunConfig,
        conda: Optional[SolverSource],
        pip: Optional[InstallerSource],
        warnings: Optional[WarningRegistry] = None,
        confirm: Callable[[str], str] = input,
        emit: Callable[[str], None] = print,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.config = config
        self.conda = conda
        self.pip = pip
        self.warnings = warnings or WarningRegistry()
        self.confirm = confirm
        self.emit = emit
        self.environ = os.environ if environ is None else environ

    def safe_install_path(self) -> Optional[Path]:
        if self.config.tools_dir is None:
            return None
        path = self.config.tools_dir / SAFE_INSTALL_SCRIPT
        return path if path.is_file() else None

    def _install_with_rollback(self, script: Path, candidate: UpdateCandidate) -> Tuple[bool, str]:
        cmd = ["bash", str(script), "--yes"]
        if candidate.source is Source.PIP:
            cmd.append("--pip")
        cmd.append(pinned_spec(candidate))
        if candidate.source is Source.PIP and self.environ.get("CONDA_DEFAULT_ENV") != self.config.env_name:
            # The wrapper calls whichever pip is on PATH.
            cmd = ["conda", "run", "--name", self.config.env_name] + cmd
        env = dict(self.environ, CONDA_DEFAULT_ENV=self.config.env_name)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.config.install_timeout,
                env=env,
            )
        except subprocess.TimeoutExpired:
            return False, f"{SAFE_INSTALL_SCRIPT} timed out after {self.config.install_timeout:.0f}s"
        except OSError as e:
            return False, f"{SAFE_INSTALL_SCRIPT} could not be started: {e}"
        output = "\n".join(part for part in (result.stdout, result.stderr) if part)
        return result.returncode == 0, output

    def _install_direct(self, candidate: UpdateCandidate) -> Tuple[bool, str]:
        self.warnings.warn(
            "no-rollback-wrapper",
            "%s not found; installing directly with reduced rollback safety",
            SAFE_INSTALL_SCRIPT,
        )
        source = self.pip if candidate.source is Source.PIP else self.conda
        if source is None:
            return False, f"no {candidate.source.value} installer available"
        return source.install_pinned(candidate.name, candidate.latest)

    def install(self, candidate: UpdateCandidate) -> ExecutionResult:
        script = self.safe_install_path()
        if script is not None:
            success, output = self._install_with_rollback(script, candidate)
        else:
            success, output = self._install_direct(candidate)
        category = None if success else categorize_failure(output)
        return ExecutionResult(candidate, success, output, category)

    def _should_continue(self) -> bool:
        if not self.config.interactive:
            return True
        while True:
            try:
                answer = self.confirm("Continue with remaining updates? [y/n]: ")
            except EOFError:
                return False
            answer = (answer or "").strip().lower()
            if answer in {"y", "yes"}:
                return True
            if answer in {"n", "no", "q", "quit"}:
                return False
            self.emit("Please answer y or n.")

    def execute(self, approved: List[UpdateCandidate]) -> ExecutionTally:
        tally = ExecutionTally()
        for index, candidate in enumerate(approved):
            self.emit(f"⬆️  Updating {candidate.name} to {candidate.latest}...")
            result = self.install(candidate)
            tally.results.append(result)
            if result.success:
                tally.succeeded += 1
                self.emit(f"✅ {candidate.name} {candidate.latest} installed")
                continue

            tally.failed += 1
            logger.info("Install of %s failed: %s", candidate.name, result.category.value)
            self.emit(f"❌ {candidate.name}: {result.category.value}")
            tail = output_tail(result.output)
            if tail:
                self.emit(tail)
            remaining = len(approved) - index - 1
            if remaining and not self._should_continue():
                tally.aborted = remaining
                break
        return tally
