"""Shared fixtures and fakes for the actrun test-suite."""

from __future__ import annotations

import io
import os
import shutil
import subprocess
from pathlib import Path

import pytest

from actrun.errors import ProvisionError, PublishError
from actrun.model import EnvContext, PublishOutcome, StepResult, ToolchainHandle
from actrun.ui.console import Console, set_console

needs_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not available")
needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not available")


@pytest.fixture
def console() -> Console:
    """Console writing into a buffer; read it back with `console._stream.getvalue()`."""
    c = Console(stream=io.StringIO())
    set_console(c)
    return c


@pytest.fixture
def ctx(tmp_path: Path) -> EnvContext:
    return EnvContext(workspace=tmp_path, env={"PATH": os.environ.get("PATH", "")})


@pytest.fixture
def bare_remote(tmp_path: Path) -> Path:
    remote = tmp_path / "remote.git"
    subprocess.run(["git", "init", "--quiet", "--bare", str(remote)], check=True)
    return remote


def remote_files(remote: Path, branch: str) -> list[str]:
    out = subprocess.check_output(
        ["git", "--git-dir", str(remote), "ls-tree", "-r", "--name-only", branch],
        text=True,
    )
    return sorted(out.split())


def remote_head(remote: Path, branch: str) -> str:
    return subprocess.check_output(
        ["git", "--git-dir", str(remote), "rev-parse", f"refs/heads/{branch}"],
        text=True,
    ).strip()


class FakeExecutor:
    """Records every step it is asked to run; fails the ones named in `fail_on`."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls: list[str] = []

    def run(self, step, ctx):
        self.calls.append(step.name)
        code = 1 if step.name in self.fail_on else 0
        return StepResult(step=step.name, exit_code=code, stderr="boom" if code else "")


class FakeProvisioner:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def provision(self, spec, ctx):
        self.calls.append(spec)
        if self.fail:
            raise ProvisionError(toolchain=spec.name, channel=spec.channel, reason="channel not found")
        handle = ToolchainHandle(name=spec.name, channel=spec.channel, version="rustc 1.0.0", override=spec.override)
        ctx.toolchain = handle
        return handle


class FakePublisher:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    def publish(self, source_folder, target_branch):
        self.calls.append((source_folder, target_branch))
        if self.fail:
            raise PublishError(folder=source_folder, branch=target_branch, reason="authentication failed")
        return PublishOutcome(branch=target_branch, changed=len(self.calls) == 1, commit="abc123")
