"""
Package sources backed by the conda and pip command-line tools.
"""

from __future__ import annotations

import logging
import subprocess
from typing import List, Optional, Sequence, Tuple

from . import parsers
from .errors import SourceUnavailableError
from .reporting import WarningRegistry


logger = logging.getLogger(__name__)


def run_command(
    cmd: Sequence[str], timeout: float, source: str
) -> subprocess.CompletedProcess:
    """Run ``cmd`` and translate launch failures into SourceUnavailableError."""
    logger.debug("Running: %s", " ".join(cmd))
    try:
        return subprocess.run(
            list(cmd),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise SourceUnavailableError(source, f"{cmd[0]} not found") from e
    except subprocess.TimeoutExpired as e:
        raise SourceUnavailableError(source, f"timed out after {timeout:.0f}s") from e


def _combined_output(result: subprocess.CompletedProcess) -> str:
    return "\n".join(part for part in (result.stdout, result.stderr) if part)


class CondaSource:
    """Solver-based source: conda."""

    name = "conda"

    def __init__(
        self,
        env_name: str,
        warnings: Optional[WarningRegistry] = None,
        list_timeout: float = 30.0,
        probe_timeout: float = 10.0,
        install_timeout: float = 600.0,
        executable: str = "conda",
    ) -> None:
        self.env_name = env_name
        self.warnings = warnings or WarningRegistry()
        self.list_timeout = list_timeout
        self.probe_timeout = probe_timeout
        self.install_timeout = install_timeout
        self.executable = executable

    def _warn_text_fallback(self) -> None:
        self.warnings.warn(
            "conda-json-unavailable",
            "conda JSON output unavailable; parsing text output (less reliable)",
        )

    def _warn_search_failure(self, package: str, reason: str) -> None:
        logger.debug("conda search failed for %s: %s", package, reason)
        self.warnings.warn(
            "conda-search",
            "conda search failed (%s); conda updates may be incomplete",
            reason,
        )

    def list_installed(self) -> List[Tuple[str, str]]:
        cmd = [self.executable, "list", "--name", self.env_name]
        result = run_command(cmd + ["--json"], self.list_timeout, self.name)
        if result.returncode == 0:
            packages = parsers.parse_conda_list_json(result.stdout)
            if packages is not None:
                return packages

        self._warn_text_fallback()
        result = run_command(cmd, self.list_timeout, self.name)
        if result.returncode != 0:
            raise SourceUnavailableError(self.name, result.stderr.strip() or "conda list failed")
        return parsers.parse_conda_list_text(result.stdout)

    def search_latest(self, package: str) -> Optional[str]:
        """Newest available version, or None if the package is not found."""
        cmd = [self.executable, "search", package]
        try:
            result = run_command(cmd + ["--json"], self.list_timeout, self.name)
        except SourceUnavailableError as e:
            self._warn_search_failure(package, e.reason)
            return None

        latest = parsers.parse_conda_search_json(result.stdout, package)
        if latest is not None or result.returncode != 0:
            return latest
        if parsers.load_json(result.stdout) is not None:
            return None

        self._warn_text_fallback()
        try:
            result = run_command(cmd, self.list_timeout, self.name)
        except SourceUnavailableError as e:
            self._warn_search_failure(package, e.reason)
            return None
        if result.returncode != 0:
            return None
        return parsers.parse_conda_search_text(result.stdout, package)

    def dry_run_install(self, package: str, version: str) -> str:
        cmd = [
            self.executable, "install", "--dry-run", "--name", self.env_name,
            f"{package}={version}", "--json",
        ]
        result = run_command(cmd, self.probe_timeout, self.name)
        if result.returncode != 0:
            raise SourceUnavailableError(
                self.name, f"dry-run for {package}={version} exited {result.returncode}"
            )
        return result.stdout

    def install_pinned(self, package: str, version: str) -> Tuple[bool, str]:
        cmd = [
            self.executable, "install", "--name", self.env_name, "--yes",
            f"{package}={version}",
        ]
        try:
            result = run_command(cmd, self.install_timeout, self.name)
        except SourceUnavailableError as e:
            return False, str(e)
        return result.returncode == 0, _combined_output(result)


class PipSource:
    """Simple installer source: pip, run inside the target environment."""

    name = "pip"

    def __init__(
        self,
        pip_command: Sequence[str],
        warnings: Optional[WarningRegistry] = None,
        list_timeout: float = 30.0,
        probe_timeout: float = 10.0,
        install_timeout: float = 600.0,
    ) -> None:
        self.pip_command = list(pip_command)
        self.warnings = warnings or WarningRegistry()
        self.list_timeout = list_timeout
        self.probe_timeout = probe_timeout
        self.install_timeout = install_timeout

    def list_installed(self) -> List[Tuple[str, str]]:
        result = run_command(
            self.pip_command + ["list", "--format=json"], self.list_timeout, self.name
        )
        if result.returncode != 0:
            raise SourceUnavailableError(self.name, result.stderr.strip() or "pip list failed")
        return parsers.parse_pip_list_json(result.stdout) or []

    def list_outdated(self) -> List[Tuple[str, str, str]]:
        cmd = self.pip_command + ["list", "--outdated"]
        result = run_command(cmd + ["--format=json"], self.list_timeout, self.name)
        if result.returncode == 0:
            rows = parsers.parse_pip_outdated_json(result.stdout)
            if rows is not None:
                return rows

        self.warnings.warn(
            "pip-json-unavailable",
            "pip JSON output unavailable; parsing column output (less reliable)",
        )
        result = run_command(cmd, self.list_timeout, self.name)
        if result.returncode != 0:
            raise SourceUnavailableError(
                self.name, result.stderr.strip() or "pip list --outdated failed"
            )
        return parsers.parse_pip_outdated_text(result.stdout)

    def show_dependencies(self, package: str) -> List[str]:
        result = run_command(
            self.pip_command + ["show", package], self.probe_timeout, self.name
        )
        if result.returncode != 0:
            raise SourceUnavailableError(self.name, f"pip show {package} failed")
        return parsers.parse_pip_requires(result.stdout)

    def install_pinned(self, package: str, version: str) -> Tuple[bool, str]:
        cmd = self.pip_command + ["install", f"{package}=={version}"]
        try:
            result = run_command(cmd, self.install_timeout, self.name)
        except SourceUnavailableError as e:
            return False, str(e)
        return result.returncode == 0, _combined_output(result)


def pip_command_for(env_name: str, active_env: Optional[str]) -> List[str]:
    """pip invocation that targets ``env_name``."""
    if env_name == active_env:
        return ["python", "-m", "pip"]
    return ["conda", "run", "--name", env_name, "python", "-m", "pip"]
