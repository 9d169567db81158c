# executor.py
from __future__ import annotations

import subprocess
import time
from functools import singledispatch

from .model import ActionStep, EnvContext, ShellStep, Step, StepResult
from .settings import DEFAULT_OUTPUT_LIMIT

# Same invocation the hosted runners use for `run:` blocks: any failing line
# fails the whole script.
SHELL = ["bash", "--noprofile", "--norc", "-eo", "pipefail", "-c"]

EXIT_NOT_RUNNABLE = 127


def _tail(text: str | None, limit: int) -> str:
    text = text or ""
    return text[-limit:] if limit > 0 else text


@singledispatch
def _execute(step, ctx: EnvContext) -> subprocess.CompletedProcess:
    raise TypeError(f"Unsupported step type: {type(step).__name__}")


@_execute.register
def _(step: ShellStep, ctx: EnvContext) -> subprocess.CompletedProcess:
    cwd = (ctx.workspace / (step.cwd or ".")).resolve()
    if not cwd.is_dir():
        return subprocess.CompletedProcess(
            args=step.run,
            returncode=EXIT_NOT_RUNNABLE,
            stdout="",
            stderr=f"working directory not found: {cwd}",
        )

    try:
        return subprocess.run(
            [*SHELL, step.run],
            cwd=str(cwd),
            env=ctx.step_env(step),
            text=True,
            capture_output=True,
        )
    except FileNotFoundError as e:
        return subprocess.CompletedProcess(
            args=step.run, returncode=EXIT_NOT_RUNNABLE, stdout="", stderr=str(e)
        )


@_execute.register
def _(step: ActionStep, ctx: EnvContext) -> subprocess.CompletedProcess:
    step_ctx = EnvContext(workspace=ctx.workspace, env=ctx.step_env(step), toolchain=ctx.toolchain)
    try:
        return step.action(dict(step.params), step_ctx)
    except Exception as e:
        # a crashing action is a failed step like any other
        return subprocess.CompletedProcess(
            args=step.uses, returncode=1, stdout="", stderr=f"{type(e).__name__}: {e}"
        )


class StepExecutor:
    """Runs one step to completion and reports what happened."""

    def __init__(self, output_limit: int = DEFAULT_OUTPUT_LIMIT):
        self.output_limit = output_limit

    def run(self, step: Step, ctx: EnvContext) -> StepResult:
        started = time.monotonic()
        proc = _execute(step, ctx)
        duration_ms = int((time.monotonic() - started) * 1000)

        return StepResult(
            step=step.name,
            exit_code=int(proc.returncode),
            stdout=_tail(proc.stdout, self.output_limit),
            stderr=_tail(proc.stderr, self.output_limit),
            duration_ms=duration_ms,
        )
