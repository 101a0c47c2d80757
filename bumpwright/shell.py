"""Shell and git utilities.

Thin wrappers around subprocess for the handful of git commands the release
engine needs, plus an output formatting helper for phase headers.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from .exceptions import GitHistoryError

logger = logging.getLogger(__name__)


def git(*args: str, check: bool = True, cwd: Path | None = None) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "rev-list", "--parents", "HEAD").
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., tag lookup).
        cwd: Directory to run git in, defaults to the current directory.

    Returns:
        Stripped stdout from the git command.

    Raises:
        GitHistoryError: If git is missing, or the command fails and
            check is True.
    """
    logger.debug("git %s", " ".join(args))
    try:
        result = subprocess.run(["git", *args], capture_output=True, text=True, cwd=cwd)
    except OSError as err:
        raise GitHistoryError(f"Could not run git: {err}") from err
    if check and result.returncode != 0:
        raise GitHistoryError(f"git {' '.join(args)} failed: {result.stderr.strip()}")
    return result.stdout.strip()


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate the plan and apply phases of a release in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")
