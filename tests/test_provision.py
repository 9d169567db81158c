from __future__ import annotations

import os
import subprocess

import pytest

from actrun.errors import ProvisionError
from actrun.model import ToolchainHandle, ToolchainSpec
from actrun.provision import INSTALLERS, Provisioner, register_installer


class FakeRustup:
    def __init__(self, install_code=0, stderr="", missing=False):
        self.install_code = install_code
        self.stderr = stderr
        self.missing = missing
        self.commands = []

    def __call__(self, cmd, ctx):
        self.commands.append(cmd)
        if self.missing:
            raise FileNotFoundError(cmd[0])
        if cmd[0] == "rustup":
            return subprocess.CompletedProcess(cmd, self.install_code, stdout="", stderr=self.stderr)
        return subprocess.CompletedProcess(cmd, 0, stdout="rustc 1.80.0-nightly (abc 2024-05-01)\n", stderr="")


def test_provision_nightly_with_override(ctx):
    rustup = FakeRustup()
    before = os.environ.get("RUSTUP_TOOLCHAIN")

    handle = Provisioner(run_command=rustup).provision(
        ToolchainSpec(name="rust", channel="nightly", override=True, profile="minimal"), ctx
    )

    assert handle.channel == "nightly"
    assert handle.override is True
    assert handle.version == "rustc 1.80.0-nightly (abc 2024-05-01)"
    assert ctx.toolchain == handle
    assert ctx.env["RUSTUP_TOOLCHAIN"] == "nightly"
    assert os.environ.get("RUSTUP_TOOLCHAIN") == before
    assert rustup.commands[0] == [
        "rustup", "toolchain", "install", "nightly", "--no-self-update", "--profile", "minimal",
    ]


def test_without_override_the_job_env_is_left_alone(ctx):
    Provisioner(run_command=FakeRustup()).provision(ToolchainSpec(name="rust", channel="stable"), ctx)

    assert "RUSTUP_TOOLCHAIN" not in ctx.env


def test_failed_install_raises_provision_error(ctx):
    rustup = FakeRustup(install_code=1, stderr="info: syncing\nerror: toolchain 'nightly-1999' not found\n")

    with pytest.raises(ProvisionError) as exc:
        Provisioner(run_command=rustup).provision(ToolchainSpec(name="rust", channel="nightly-1999"), ctx)

    assert "not found" in exc.value.reason
    assert exc.value.details["exit_code"] == 1
    assert ctx.toolchain is None


def test_missing_rustup_raises_provision_error_with_hint(ctx):
    with pytest.raises(ProvisionError) as exc:
        Provisioner(run_command=FakeRustup(missing=True)).provision(ToolchainSpec(name="rust"), ctx)

    assert exc.value.reason == "rustup not found"
    assert "rustup" in exc.value.details["hint"]


def test_unknown_toolchain_raises_provision_error(ctx):
    with pytest.raises(ProvisionError) as exc:
        Provisioner(run_command=FakeRustup()).provision(ToolchainSpec(name="zig", channel="master"), ctx)

    assert "no installer" in str(exc.value)


def test_registered_installer_is_used(ctx, monkeypatch):
    monkeypatch.setattr("actrun.provision.INSTALLERS", dict(INSTALLERS))
    calls = []

    def install_zig(spec, ctx, run):
        calls.append(spec.channel)
        return ToolchainHandle(name=spec.name, channel=spec.channel, version="0.13.0", override=spec.override)

    register_installer("Zig", install_zig)
    handle = Provisioner(run_command=FakeRustup()).provision(ToolchainSpec(name="zig", channel="master"), ctx)

    assert calls == ["master"]
    assert handle.version == "0.13.0"
    assert ctx.toolchain == handle
