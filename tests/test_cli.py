"""Integration tests for the `actrun` CLI commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from actrun.cli import cli

from conftest import needs_bash, needs_git, remote_files

runner = CliRunner()

BUILD_WORKFLOW = """
name: site
on:
  pull_request:
  push:
    branches: [master]
jobs:
  site:
    runs-on: ubuntu-latest
    steps:
      - name: install-deps
        run: {install}
      - name: build-docs
        run: |
          mkdir -p out
          echo "<h1>site</h1>" > out/index.html
"""


def _workflow(tmp_path: Path, install: str = "echo installing", deploy: bool = False) -> Path:
    text = BUILD_WORKFLOW.format(install=install)
    if deploy:
        text += (
            "      - uses: JamesIves/github-pages-deploy-action@4.1.9\n"
            "        with:\n"
            "          branch: docs\n"
            "          folder: out\n"
        )
    path = tmp_path / "site.yml"
    path.write_text(text, encoding="utf-8")
    return path


def _run(tmp_path: Path, workflow: Path, *extra: str):
    return runner.invoke(
        cli,
        ["run", "--workflow", str(workflow), "--workspace", str(tmp_path), *extra],
        env={"ACTRUN_FAIL_FAST": None, "GITHUB_TOKEN": None, "ACTRUN_TOKEN": None},
    )


@pytest.mark.parametrize(
    "event, branch, code",
    [("push", "master", 0), ("pull_request", "feature-x", 0), ("push", "feature-x", 1)],
)
def test_check_reports_trigger_decision(event, branch, code):
    result = runner.invoke(cli, ["check", "--event", event, "--branch", branch])

    assert result.exit_code == code
    assert ("run:" if code == 0 else "skip:") in result.output


def test_plan_lists_jobs_steps_and_deploy():
    workflow = Path(__file__).resolve().parent.parent / "examples" / "docs.yml"

    result = runner.invoke(cli, ["plan", "--workflow", str(workflow)])

    assert result.exit_code == 0
    assert "on push: master" in result.output
    assert "toolchain: rust@nightly override" in result.output
    assert "- Build docs" in result.output
    assert "deploy: editor/docs -> docs" in result.output


@needs_bash
def test_run_success_exits_zero(tmp_path):
    result = _run(tmp_path, _workflow(tmp_path), "--event", "push", "--branch", "master")

    assert result.exit_code == 0, result.output
    assert "STATUS: success" in result.output
    assert (tmp_path / "out" / "index.html").exists()


@needs_bash
def test_run_failing_step_exits_non_zero(tmp_path):
    result = _run(tmp_path, _workflow(tmp_path, install="exit 1"), "--event", "push", "--branch", "master")

    assert result.exit_code == 1
    assert "STEP FAILED: install-deps" in result.output
    assert "STEP: build-docs" not in result.output
    assert not (tmp_path / "out").exists()


def test_run_untriggered_event_does_nothing(tmp_path):
    result = _run(tmp_path, _workflow(tmp_path), "--event", "push", "--branch", "feature-x")

    assert result.exit_code == 0
    assert "SKIPPED" in result.output
    assert "RUN STARTED" not in result.output


def test_run_with_invalid_workflow_exits_one(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("on: push\njobs:\n  a:\n    steps:\n      - uses: acme/nope@v1\n", encoding="utf-8")

    result = _run(tmp_path, path, "--event", "push", "--branch", "master")

    assert result.exit_code == 1


def test_run_without_any_workflow_exits_one(tmp_path):
    result = runner.invoke(cli, ["run", "--workspace", str(tmp_path), "--event", "push", "--branch", "master"])

    assert result.exit_code == 1


@needs_bash
@needs_git
def test_run_builds_and_deploys_to_branch(tmp_path, bare_remote):
    workflow = _workflow(tmp_path, deploy=True)

    result = _run(tmp_path, workflow, "--event", "push", "--branch", "master", "--remote", str(bare_remote))

    assert result.exit_code == 0, result.output
    assert "DEPLOY: pushed" in result.output
    assert remote_files(bare_remote, "docs") == ["index.html"]

    again = _run(tmp_path, workflow, "--event", "push", "--branch", "master", "--remote", str(bare_remote))

    assert again.exit_code == 0, again.output
    assert "already up to date" in again.output


def test_run_with_bad_output_limit_reports_config_error(tmp_path):
    result = runner.invoke(
        cli,
        ["run", "--workflow", str(_workflow(tmp_path)), "--workspace", str(tmp_path)],
        env={"ACTRUN_OUTPUT_LIMIT": "lots"},
    )

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
    assert "ACTRUN_OUTPUT_LIMIT must be an integer" in result.output
    assert "Traceback" not in result.output
