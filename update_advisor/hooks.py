"""
Optional pre/post hooks that shell out to companion toolkit scripts.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from .reporting import WarningRegistry


logger = logging.getLogger(__name__)

FIND_DUPLICATES = "find_duplicates.sh"
HEALTH_CHECK = "health_check.sh"
EXPORT_ENV = "export_env.sh"


def run_hook(
    tools_dir: Optional[Path],
    script: str,
    args: Sequence[str] = (),
    env_name: Optional[str] = None,
    warnings: Optional[WarningRegistry] = None,
    timeout: float = 600.0,
) -> Optional[bool]:
    """Run ``script`` from ``tools_dir`` with inherited stdio.

    Returns None when the script is absent (a warning, not an error),
    otherwise whether it exited cleanly.
    """
    warnings = warnings or WarningRegistry()
    path = tools_dir / script if tools_dir else None
    if path is None or not path.is_file():
        warnings.warn(f"hook-{script}", "%s not found; skipping", script)
        return None

    cmd: List[str] = ["bash", str(path), *args]
    env = dict(os.environ)
    if env_name:
        env["CONDA_DEFAULT_ENV"] = env_name
    logger.info("Running hook: %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, timeout=timeout, env=env)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("%s failed to run: %s", script, e)
        return False
    if result.returncode != 0:
        logger.warning("%s exited with status %d", script, result.returncode)
    return result.returncode == 0
