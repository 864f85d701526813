"""
Command-line interface for the update advisor.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .assessment import RiskAssessor, assess_all
from .cache import FileMetadataCache
from .config import RunConfig, build_config, require_tool
from .decisions import DecisionEngine
from .discovery import discover_updates
from .errors import ToolMissingError, UsageError
from .executor import UpdateExecutor
from .hooks import EXPORT_ENV, FIND_DUPLICATES, HEALTH_CHECK, run_hook
from .impact import DependencyImpactProber
from .registry import RegistryClient, SecurityClassifier
from .reporting import (
    WarningRegistry,
    format_tally,
    print_rollback_guidance,
    risk_counts,
)
from .sources import CondaSource, PipSource, pip_command_for


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        print(f"Error: {message}", file=sys.stderr)
        print("Use --help for usage information", file=sys.stderr)
        sys.exit(EXIT_FAILURE)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="update-advisor",
        description="Risk-assessed, interactive package updates for a conda environment",
    )

    detail = parser.add_mutually_exclusive_group()
    detail.add_argument(
        "--verbose",
        action="store_true",
        help="Show detailed risk breakdown"
    )
    detail.add_argument(
        "--summary",
        action="store_true",
        help="Show minimal one-line output"
    )

    parser.add_argument(
        "--name",
        default=None,
        help="Target a specific environment instead of the active one"
    )

    sources = parser.add_mutually_exclusive_group()
    sources.add_argument(
        "--conda-only",
        action="store_true",
        help="Only check conda packages"
    )
    sources.add_argument(
        "--pip-only",
        action="store_true",
        help="Only check pip packages"
    )

    parser.add_argument(
        "--batch",
        action="store_true",
        help="Show all updates first, then approve them in one step"
    )
    parser.add_argument(
        "--check-duplicates",
        action="store_true",
        help=f"Run {FIND_DUPLICATES} before starting"
    )
    parser.add_argument(
        "--health-check-after",
        action="store_true",
        help=f"Run {HEALTH_CHECK} after updates"
    )
    parser.add_argument(
        "--export-after",
        action="store_true",
        help=f"Run {EXPORT_ENV} after updates"
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Clear cached registry and dry-run data first"
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Non-interactive mode: approve every update"
    )
    parser.add_argument(
        "--cache-ttl",
        type=int,
        default=None,
        help="Cache lifetime in seconds. Default: 3600"
    )
    parser.add_argument(
        "--tools-dir",
        default=None,
        help="Directory holding safe_install.sh and the hook scripts. Default: current directory"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def configure_logging(verbose: bool, environ=os.environ) -> None:
    if environ.get("UPDATE_ADVISOR_DEBUG") == "1":
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def report_usage_error(error: UsageError) -> None:
    print(f"❌ {error}", file=sys.stderr)
    if error.suggestions:
        print("💡 Did you mean one of these?", file=sys.stderr)
        for name in error.suggestions:
            print(f"  - {name}", file=sys.stderr)
    if error.alternatives:
        print("📋 Available environments:", file=sys.stderr)
        for name in error.alternatives:
            print(f"  - {name}", file=sys.stderr)


def report_tool_missing(error: ToolMissingError) -> None:
    print(f"🚫 {error}", file=sys.stderr)
    if error.install_hint:
        print("📦 Installation instructions:", file=sys.stderr)
        print(f"  {error.install_hint}", file=sys.stderr)


def build_sources(config: RunConfig, warnings: WarningRegistry, environ=os.environ):
    """Instantiate the enabled sources, dropping those whose tool is missing."""
    conda = pip = None

    if config.include_conda:
        try:
            executable = require_tool("conda")
        except ToolMissingError as e:
            report_tool_missing(e)
        else:
            conda = CondaSource(
                config.env_name,
                warnings=warnings,
                list_timeout=config.list_timeout,
                probe_timeout=config.probe_timeout,
                install_timeout=config.install_timeout,
                executable=executable,
            )

    if config.include_pip:
        pip_command = pip_command_for(config.env_name, environ.get("CONDA_DEFAULT_ENV"))
        try:
            require_tool(pip_command[0])
        except ToolMissingError as e:
            report_tool_missing(e)
        else:
            pip = PipSource(
                pip_command,
                warnings=warnings,
                list_timeout=config.list_timeout,
                probe_timeout=config.probe_timeout,
                install_timeout=config.install_timeout,
            )

    return conda, pip


def run(config: RunConfig, cache, warnings: WarningRegistry,
        conda, pip, prompt=input, emit=print) -> int:
    """Discover, assess, decide and execute. Returns the exit status."""
    if config.check_duplicates:
        run_hook(config.tools_dir, FIND_DUPLICATES, [config.env_name],
                 env_name=config.env_name, warnings=warnings)

    emit("🔍 Checking for updates...")
    discovery = discover_updates(config, conda, pip, warnings)
    if discovery.undetermined:
        emit("❌ No updates could be determined: every package source failed")
        return EXIT_FAILURE
    candidates = discovery.candidates
    if not candidates:
        emit("✅ All packages are up to date")
        return EXIT_OK
    emit(f"Found {len(candidates)} available update(s)\n")

    prober = DependencyImpactProber(conda, pip, cache=cache, warnings=warnings)
    client = RegistryClient(
        config.registry_url,
        connect_timeout=config.registry_connect_timeout,
        read_timeout=config.registry_read_timeout,
    )
    classifier = SecurityClassifier(client, cache=cache, warnings=warnings)
    assessor = RiskAssessor(prober, classifier)
    engine = DecisionEngine(config, prompt=prompt, emit=emit)

    if config.batch:
        assessed = assess_all(assessor, candidates)
        counts = risk_counts(assessed)
        emit("Risk overview: " + ", ".join(f"{k}={v}" for k, v in counts.items()))
        decisions = engine.run_batch(assessed)
    else:
        assessor.prefetch(candidates)
        decisions = engine.run(assessor.iter_assessments(candidates))

    if decisions.cancelled:
        emit("🛑 Update cancelled by user. No changes were made.")
        return EXIT_OK
    if not decisions.approved:
        emit("No updates approved.")
        return EXIT_OK

    executor = UpdateExecutor(config, conda, pip, warnings=warnings,
                              confirm=prompt, emit=emit)
    tally = executor.execute(decisions.approved)
    for line in format_tally(tally, skipped=len(decisions.skipped)):
        emit(line)

    if config.health_check_after:
        run_hook(config.tools_dir, HEALTH_CHECK, [config.env_name, "--quick"],
                 env_name=config.env_name, warnings=warnings)
    if config.export_after:
        run_hook(config.tools_dir, EXPORT_ENV, ["--name", config.env_name],
                 env_name=config.env_name, warnings=warnings)

    return EXIT_OK if tally.ok else EXIT_FAILURE


def _prompt(question: str) -> str:
    try:
        return input(question)
    except EOFError:
        # Closed stdin cannot answer; treat as quit.
        return "q"


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = build_config(args)
    except UsageError as e:
        report_usage_error(e)
        return EXIT_FAILURE

    warnings = WarningRegistry()
    conda, pip = build_sources(config, warnings)
    if conda is None and pip is None:
        print("❌ No usable package source; nothing to check", file=sys.stderr)
        return EXIT_FAILURE

    print(f"🧭 Environment: {config.env_name}")
    cache = FileMetadataCache(config.env_name, ttl=config.cache_ttl)
    try:
        if config.refresh:
            cache.clear_all()
        return run(config, cache, warnings, conda, pip, prompt=_prompt)
    except KeyboardInterrupt:
        print("")
        print("⚠️  Interrupted by user")
        print_rollback_guidance()
        return EXIT_INTERRUPTED
    finally:
        cache.cleanup()


if __name__ == "__main__":
    sys.exit(main())
