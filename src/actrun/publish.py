# publish.py
from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional

from .errors import PublishError
from .git_facts.git import get_remote_url, run_git
from .model import PublishOutcome
from .settings import DEFAULT_AUTHOR_EMAIL, DEFAULT_AUTHOR_NAME


def _last_line(text: str | None) -> str:
    lines = [ln for ln in (text or "").splitlines() if ln.strip()]
    return lines[-1] if lines else "no output"


def _replace_tree(worktree: Path, source: Path) -> None:
    """Make `worktree` (minus .git) an exact copy of `source`."""
    for entry in worktree.iterdir():
        if entry.name == ".git":
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
    shutil.copytree(source, worktree, dirs_exist_ok=True, ignore=shutil.ignore_patterns(".git"))


class Publisher:
    """
    Pushes the content of a build folder to a branch of the hosting repo.

    The branch ends up holding exactly the folder's files. A publish that
    would not change the tree creates no commit.
    """

    def __init__(
        self,
        repo_root: str | Path = ".",
        *,
        remote: str = "origin",
        token: Optional[str] = None,
        author_name: str = DEFAULT_AUTHOR_NAME,
        author_email: str = DEFAULT_AUTHOR_EMAIL,
    ):
        self.repo_root = Path(repo_root).resolve()
        self.remote = remote
        self.token = token
        self.author_name = author_name
        self.author_email = author_email

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _redact(self, text: str) -> str:
        if self.token:
            return text.replace(self.token, "***")
        return text

    def _git(self, args: List[str], cwd: Path, folder: str, branch: str) -> subprocess.CompletedProcess:
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        try:
            proc = run_git(args, cwd=cwd, env=env)
        except FileNotFoundError:
            raise PublishError(folder=folder, branch=branch, reason="git command not found") from None
        if proc.returncode != 0:
            raise PublishError(
                folder=folder,
                branch=branch,
                reason=self._redact(f"git {args[0]} failed: {_last_line(proc.stderr)}"),
            )
        return proc

    def remote_url(self, folder: str = "", branch: str = "") -> str:
        remote = self.remote
        if "://" in remote or remote.startswith("git@"):
            url = remote
        else:
            candidate = Path(remote) if Path(remote).is_absolute() else self.repo_root / remote
            if candidate.exists():
                url = str(candidate.resolve())
            else:
                try:
                    url = get_remote_url(remote, cwd=self.repo_root)
                except FileNotFoundError:
                    raise PublishError(folder=folder, branch=branch, reason="git command not found") from None
                except subprocess.CalledProcessError as e:
                    raise PublishError(
                        folder=folder,
                        branch=branch,
                        reason=f"unknown remote '{remote}': {_last_line(e.stderr)}",
                    ) from None

        if self.token and url.startswith("https://"):
            host_and_path = url[len("https://"):].split("@", 1)[-1]
            url = f"https://x-access-token:{self.token}@{host_and_path}"
        return url

    def _commit_message(self, branch: str) -> str:
        # no HEAD outside a repository or before its first commit
        head = run_git(["rev-parse", "--verify", "--quiet", "HEAD"], cwd=self.repo_root)
        if head.returncode == 0 and head.stdout.strip():
            return f"Deploying to {branch} from @ {head.stdout.strip()}"
        return f"Deploying to {branch}"

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    def publish(self, source_folder: str, target_branch: str) -> PublishOutcome:
        source = (self.repo_root / source_folder).resolve()
        if not source.is_dir():
            raise PublishError(
                folder=source_folder,
                branch=target_branch,
                reason=f"source folder not found: {source}",
            )

        url = self.remote_url(source_folder, target_branch)
        worktree = Path(tempfile.mkdtemp(prefix="actrun-publish-"))

        def git(*args: str) -> subprocess.CompletedProcess:
            return self._git(list(args), worktree, source_folder, target_branch)

        try:
            heads = git("ls-remote", "--heads", url, target_branch)
            new_branch = not heads.stdout.strip()
            if new_branch:
                git("init", "--quiet")
                git("symbolic-ref", "HEAD", f"refs/heads/{target_branch}")
            else:
                git("clone", "--quiet", "--depth", "1", "--branch", target_branch, url, ".")

            _replace_tree(worktree, source)
            git("add", "--all")

            commit_args = ["commit", "--quiet", "-m", self._commit_message(target_branch)]
            if not git("status", "--porcelain").stdout.strip():
                if not new_branch:
                    commit = git("rev-parse", "HEAD").stdout.strip()
                    return PublishOutcome(branch=target_branch, changed=False, commit=commit)
                # an empty build folder still creates the branch
                commit_args.append("--allow-empty")

            git(
                "-c", f"user.name={self.author_name}",
                "-c", f"user.email={self.author_email}",
                "-c", "commit.gpgsign=false",
                *commit_args,
            )
            git("push", "--quiet", url, f"HEAD:refs/heads/{target_branch}")
            commit = git("rev-parse", "HEAD").stdout.strip()
            return PublishOutcome(branch=target_branch, changed=True, commit=commit)
        finally:
            shutil.rmtree(worktree, ignore_errors=True)
