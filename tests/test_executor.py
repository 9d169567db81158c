from __future__ import annotations

import subprocess

import pytest

from actrun.executor import EXIT_NOT_RUNNABLE, StepExecutor
from actrun.model import ActionStep, ShellStep

from conftest import needs_bash


@needs_bash
def test_shell_step_success_captures_output(ctx):
    result = StepExecutor().run(ShellStep(name="hello", run="echo hello"), ctx)

    assert result.step == "hello"
    assert result.exit_code == 0
    assert result.failed is False
    assert result.stdout.strip() == "hello"
    assert result.duration_ms >= 0


@needs_bash
def test_non_zero_exit_is_a_failed_result(ctx):
    result = StepExecutor().run(ShellStep(name="bad", run="echo oops >&2; exit 3"), ctx)

    assert result.exit_code == 3
    assert result.failed is True
    assert "oops" in result.stderr


@needs_bash
def test_multi_line_script_stops_at_first_failing_line(ctx):
    result = StepExecutor().run(ShellStep(name="script", run="echo before\nfalse\necho after"), ctx)

    assert result.failed
    assert "before" in result.stdout
    assert "after" not in result.stdout


@needs_bash
def test_step_runs_in_its_working_directory(ctx):
    (ctx.workspace / "editor").mkdir()
    result = StepExecutor().run(ShellStep(name="where", run="pwd", cwd="editor"), ctx)

    assert result.stdout.strip().endswith("editor")


def test_missing_working_directory_fails_without_running(ctx):
    result = StepExecutor().run(ShellStep(name="where", run="pwd", cwd="nope"), ctx)

    assert result.exit_code == EXIT_NOT_RUNNABLE
    assert "not found" in result.stderr


@needs_bash
def test_job_and_step_env_are_merged(ctx):
    ctx.env["FROM_JOB"] = "job"
    step = ShellStep(name="env", run='echo "$FROM_JOB-$FROM_STEP"', env={"FROM_STEP": "step"})

    result = StepExecutor().run(step, ctx)

    assert result.stdout.strip() == "job-step"
    assert "FROM_STEP" not in ctx.env


@needs_bash
def test_output_is_truncated_to_tail(ctx):
    result = StepExecutor(output_limit=5).run(ShellStep(name="long", run="printf 0123456789"), ctx)

    assert result.stdout == "56789"


def test_action_step_calls_its_handler(ctx):
    seen = {}

    def handler(params, step_ctx):
        seen["params"] = params
        seen["env"] = step_ctx.env
        return subprocess.CompletedProcess(args=["fake"], returncode=0, stdout="done", stderr="")

    step = ActionStep(name="act", uses="acme/fake@v1", action=handler, params={"ref": "main"}, env={"X": "1"})
    result = StepExecutor().run(step, ctx)

    assert result.exit_code == 0
    assert result.stdout == "done"
    assert seen["params"] == {"ref": "main"}
    assert seen["env"]["X"] == "1"


def test_failing_action_is_a_failed_result(ctx):
    def handler(params, step_ctx):
        return subprocess.CompletedProcess(args=["fake"], returncode=2, stdout="", stderr="nope")

    step = ActionStep(name="act", uses="acme/fake@v1", action=handler)
    assert StepExecutor().run(step, ctx).failed


def test_unknown_step_type_is_rejected(ctx):
    with pytest.raises(TypeError):
        StepExecutor().run(object(), ctx)


def test_raising_action_is_a_failed_result(ctx):
    def handler(params, step_ctx):
        raise FileNotFoundError("git")

    result = StepExecutor().run(ActionStep(name="checkout", uses="actions/checkout@v2", action=handler), ctx)

    assert result.exit_code == 1
    assert result.failed
    assert "FileNotFoundError: git" in result.stderr
