# provision.py
from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .errors import ProvisionError
from .model import EnvContext, ToolchainHandle, ToolchainSpec

CommandRunner = Callable[[List[str], EnvContext], subprocess.CompletedProcess]
Installer = Callable[[ToolchainSpec, EnvContext, CommandRunner], ToolchainHandle]

TOOL_HINTS = {
    "rustup": "Install rustup (https://rustup.rs) or fix PATH.",
    "rustc": "Install a Rust toolchain with rustup or fix PATH.",
}


def run_command(cmd: List[str], ctx: EnvContext) -> subprocess.CompletedProcess:
    return subprocess.run(
        cmd,
        cwd=str(ctx.workspace),
        env=ctx.env,
        text=True,
        capture_output=True,
    )


def _last_line(text: str | None) -> str:
    lines = [ln for ln in (text or "").splitlines() if ln.strip()]
    return lines[-1] if lines else "no output"


def _with_cargo_bin(ctx: EnvContext) -> None:
    # rustup installs proxies under ~/.cargo/bin which a fresh shell may not have on PATH
    cargo_home = ctx.env.get("CARGO_HOME") or str(Path(ctx.env.get("HOME", "~")).expanduser() / ".cargo")
    cargo_bin = str(Path(cargo_home) / "bin")
    path = ctx.env.get("PATH", "")
    if Path(cargo_bin).is_dir() and cargo_bin not in path.split(os.pathsep):
        ctx.env["PATH"] = os.pathsep.join([cargo_bin, path]) if path else cargo_bin


def install_rust(spec: ToolchainSpec, ctx: EnvContext, run: CommandRunner) -> ToolchainHandle:
    """
    Install a Rust channel through rustup.

    With `override`, every later step of the job resolves `cargo`/`rustc`
    to this channel.
    """
    _with_cargo_bin(ctx)

    cmd = ["rustup", "toolchain", "install", spec.channel, "--no-self-update"]
    if spec.profile:
        cmd.extend(["--profile", spec.profile])

    try:
        proc = run(cmd, ctx)
    except FileNotFoundError:
        raise ProvisionError(
            toolchain=spec.name,
            channel=spec.channel,
            reason="rustup not found",
            details={"hint": TOOL_HINTS["rustup"]},
        ) from None

    if proc.returncode != 0:
        raise ProvisionError(
            toolchain=spec.name,
            channel=spec.channel,
            reason=_last_line(proc.stderr or proc.stdout),
            details={"exit_code": proc.returncode, "cmd": " ".join(cmd)},
        )

    version: Optional[str] = None
    try:
        probe = run(["rustc", f"+{spec.channel}", "--version"], ctx)
        if probe.returncode == 0 and probe.stdout.strip():
            version = " ".join(probe.stdout.split())
    except FileNotFoundError:
        version = None

    if spec.override:
        ctx.env["RUSTUP_TOOLCHAIN"] = spec.channel

    return ToolchainHandle(
        name=spec.name,
        channel=spec.channel,
        version=version,
        override=spec.override,
    )


INSTALLERS: Dict[str, Installer] = {
    "rust": install_rust,
}


def register_installer(name: str, installer: Installer) -> None:
    INSTALLERS[name.lower()] = installer


class Provisioner:
    """Installs/selects the toolchain a job asks for, before its steps run."""

    def __init__(
        self,
        run_command: CommandRunner = run_command,
        installers: Optional[Dict[str, Installer]] = None,
    ):
        self.run_command = run_command
        self.installers = INSTALLERS if installers is None else installers

    def provision(self, spec: ToolchainSpec, ctx: EnvContext) -> ToolchainHandle:
        installer = self.installers.get(spec.name.lower())
        if installer is None:
            raise ProvisionError(
                toolchain=spec.name,
                channel=spec.channel,
                reason="no installer for this toolchain",
                details={"known": sorted(self.installers)},
            )

        handle = installer(spec, ctx, self.run_command)
        ctx.toolchain = handle
        return handle
