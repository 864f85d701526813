"""
Run configuration, built once from parsed arguments.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Mapping, Optional

from .errors import ToolMissingError, UsageError
from .models import Verbosity


DEFAULT_CACHE_TTL = 3600
DEFAULT_REGISTRY_URL = "https://pypi.org/pypi"

INSTALL_HINTS = {
    "conda": "Download from: https://docs.conda.io/en/latest/miniconda.html",
    "python": "Install into the environment with: conda install python pip",
}

_CI_VARIABLES = ("CI", "GITHUB_ACTIONS", "GITLAB_CI")


@dataclass(frozen=True)
class RunConfig:
    """Immutable settings for one advisor run."""

    env_name: str
    verbosity: Verbosity = Verbosity.DEFAULT
    include_conda: bool = True
    include_pip: bool = True
    batch: bool = False
    check_duplicates: bool = False
    health_check_after: bool = False
    export_after: bool = False
    refresh: bool = False
    non_interactive: bool = False
    cache_ttl: int = DEFAULT_CACHE_TTL
    tools_dir: Optional[Path] = None
    use_color: bool = False
    registry_url: str = DEFAULT_REGISTRY_URL
    # Connect plus read stays within about five seconds.
    registry_connect_timeout: float = 3.0
    registry_read_timeout: float = 2.0
    probe_timeout: float = 10.0
    list_timeout: float = 30.0
    install_timeout: float = 600.0

    @property
    def interactive(self) -> bool:
        return not self.non_interactive


def supports_color(environ: Mapping[str, str], stream=None) -> bool:
    """Colour only on a TTY, outside CI, and when NO_COLOR is unset."""
    stream = stream if stream is not None else sys.stdout
    if environ.get("NO_COLOR"):
        return False
    if any(environ.get(name) for name in _CI_VARIABLES):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def require_tool(tool: str) -> str:
    """Return the path to ``tool`` or raise ToolMissingError."""
    path = shutil.which(tool)
    if path is None:
        raise ToolMissingError(tool, INSTALL_HINTS.get(tool, f"Package: {tool}"))
    return path


def list_conda_environments(timeout: float = 30.0) -> List[str]:
    """Names of environments known to conda, best effort."""
    try:
        result = subprocess.run(
            ["conda", "env", "list"],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return []
    if result.returncode != 0:
        return []
    names = []
    for line in result.stdout.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        names.append(line.split()[0])
    return names


def suggest_environments(name: str, available: Iterable[str]) -> List[str]:
    """Environments sharing the first three characters of ``name``."""
    prefix = name[:3].lower()
    if not prefix:
        return []
    return [env for env in available if prefix in env.lower()][:3]


def resolve_environment(
    requested: Optional[str],
    environ: Mapping[str, str],
    available: Optional[List[str]] = None,
) -> str:
    """Pick the target environment: ``--name`` or the active one."""
    if requested:
        if requested == "base":
            raise UsageError("Refusing to update the base environment")
        if available is None:
            available = list_conda_environments()
        if requested not in available:
            raise UsageError(
                f"Environment '{requested}' not found",
                alternatives=[env for env in available if env != "base"][:10],
                suggestions=suggest_environments(requested, available),
            )
        return requested

    active = environ.get("CONDA_DEFAULT_ENV", "")
    if not active or active == "base":
        raise UsageError(
            "No conda environment active (or in base). "
            "Activate an environment or use --name"
        )
    return active


def build_config(args, environ: Optional[Mapping[str, str]] = None,
                 available: Optional[List[str]] = None) -> RunConfig:
    """Build the run configuration from parsed CLI arguments."""
    environ = os.environ if environ is None else environ
    env_name = resolve_environment(args.name, environ, available)

    if args.verbose:
        verbosity = Verbosity.VERBOSE
    elif args.summary:
        verbosity = Verbosity.SUMMARY
    else:
        verbosity = Verbosity.DEFAULT

    if args.cache_ttl is not None and args.cache_ttl <= 0:
        raise UsageError("--cache-ttl must be a positive number of seconds")

    tools_dir = args.tools_dir or environ.get("UPDATE_ADVISOR_TOOLS_DIR")
    tools_dir = Path(tools_dir) if tools_dir else Path.cwd()

    return RunConfig(
        env_name=env_name,
        verbosity=verbosity,
        include_conda=not args.pip_only,
        include_pip=not args.conda_only,
        batch=args.batch,
        check_duplicates=args.check_duplicates,
        health_check_after=args.health_check_after,
        export_after=args.export_after,
        refresh=args.refresh,
        non_interactive=args.yes,
        cache_ttl=args.cache_ttl or DEFAULT_CACHE_TTL,
        tools_dir=tools_dir,
        use_color=supports_color(environ),
        registry_url=environ.get("UPDATE_ADVISOR_REGISTRY_URL", DEFAULT_REGISTRY_URL),
    )
