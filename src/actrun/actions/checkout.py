# actions/checkout.py
from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any, Dict

from ..git_facts.git import is_repo, run_git
from ..model import EnvContext


def _failed(message: str) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=["checkout"], returncode=1, stdout="", stderr=message)


def run(params: Dict[str, Any], ctx: EnvContext) -> subprocess.CompletedProcess:
    """
    Make sure the workspace holds the repository at the requested ref.

    Params (all optional):
      repository: URL or path to clone when the target is not a repo yet
      ref:        branch, tag or commit to check out
      path:       directory under the workspace to check out into
    """
    target = (ctx.workspace / str(params.get("path") or ".")).resolve()
    repository = params.get("repository")
    ref = params.get("ref")
    env = dict(ctx.env)

    if not is_repo(target):
        if not repository:
            return _failed(f"{target} is not a git repository and no 'repository' was given")
        target.mkdir(parents=True, exist_ok=True)
        cloned = run_git(["clone", str(repository), str(target)], env=env)
        if cloned.returncode != 0:
            return cloned

    if not ref:
        return run_git(["rev-parse", "HEAD"], cwd=target, env=env)

    return run_git(["checkout", str(ref)], cwd=Path(target), env=env)
