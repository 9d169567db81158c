# git.py
# Small, focused wrapper around the Git CLI.
# This module centralizes all Git interactions so the rest of the codebase
# never needs to call subprocess("git ...") directly.

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Dict, List, Optional


def _git(args: list[str], cwd: Optional[str | Path] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    Raises subprocess.CalledProcessError on a non-zero exit, which is what
    callers that only read repository facts want.

    Args:
        args: List of git arguments (e.g. ["status", "--porcelain"])
        cwd: Optional working directory in which to run the git command.

    Returns:
        Stdout from the git command with surrounding whitespace removed.
    """
    out = subprocess.check_output(
        ["git", *args],
        cwd=str(cwd) if cwd is not None else None,
        text=True,
        stderr=subprocess.PIPE,
    )
    return out.strip()


def run_git(
    args: List[str],
    cwd: Optional[str | Path] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Execute a git command without raising on failure.

    Used where the caller must turn git's exit status and stderr into its
    own error type (checkout, publishing).
    """
    return subprocess.run(
        ["git", *args],
        cwd=str(cwd) if cwd is not None else None,
        env=env,
        text=True,
        capture_output=True,
        check=False,
    )


def repo_root(cwd: Optional[str | Path] = None) -> Path:
    """Absolute path to the root of the repository containing `cwd`."""
    return Path(_git(["rev-parse", "--show-toplevel"], cwd=cwd))


def is_repo(cwd: Optional[str | Path] = None) -> bool:
    try:
        repo_root(cwd)
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False
    return True


def current_branch(cwd: Optional[str | Path] = None) -> str:
    """Name of the checked out branch ("HEAD" when detached)."""
    return _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)


def get_remote_url(name: str = "origin", cwd: Optional[str | Path] = None) -> str:
    return _git(["remote", "get-url", name], cwd=cwd)
