"""Console output formatting utilities for actrun."""

from __future__ import annotations

import sys
from typing import Optional

from ..model import Job, JobResult, PublishOutcome, StepResult, ToolchainHandle, WorkflowRun


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False, stream=None):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
            stream: Where regular output goes (defaults to sys.stdout at call time)
        """
        self.debug = debug
        self._stream = stream

    def _out(self, text: str = "") -> None:
        print(text, file=self._stream or sys.stdout)

    def _err(self, text: str = "") -> None:
        print(text, file=sys.stderr)

    def print_header(self, title: str) -> None:
        """Print a section header."""
        self._out(f"\n{title}")
        self._out("-" * len(title))

    def print_run_started(
        self,
        workflow: str,
        event: str,
        branch: str,
        job_count: int,
        run_id: str,
    ) -> None:
        """Print run start information."""
        self._out("\nRUN STARTED")
        self._out(f"Workflow: {workflow}")
        self._out(f"Event: {event} ({branch or '-'})")
        self._out(f"Jobs: {job_count}")
        self._out(f"Run ID: {run_id}")
        self._out()

    def print_trigger_skipped(self, event: str, branch: str) -> None:
        self._out(f"SKIPPED: no trigger matches {event} on '{branch}'")

    def print_job_start(self, name: str, runs_on: Optional[str] = None) -> None:
        self._out(f"\nJOB STARTED: {name}")
        if runs_on:
            self._out(f"Runs on: {runs_on}")

    def print_job_skipped(self, name: str, reason: str) -> None:
        self._out(f"\nJOB SKIPPED: {name} ({reason})")

    def print_toolchain(self, handle: ToolchainHandle) -> None:
        suffix = " (override)" if handle.override else ""
        version = f" - {handle.version}" if handle.version else ""
        self._out(f"TOOLCHAIN: {handle.name}@{handle.channel}{suffix}{version}")

    def print_step(self, name: str) -> None:
        """Print step start message."""
        self._out(f"STEP: {name}")

    def print_step_result(self, result: StepResult) -> None:
        if not result.failed:
            self._out(f"  ok ({result.duration_ms} ms)")
            self.print_debug(result.stdout.rstrip())
            return

        self.print_failure(result.step, result.stderr or result.stdout, exit_code=result.exit_code)
        for stream_name, text in (("stdout", result.stdout), ("stderr", result.stderr)):
            if text.strip():
                self._out(f"--- {stream_name} (tail) ---")
                self._out(text.rstrip())

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
        is_job: bool = False,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Job or step name
            reason: Failure reason/error message
            exit_code: Optional exit code
            hint: Optional hint for user
            is_job: If True, print "JOB FAILED", otherwise "STEP FAILED"
        """
        prefix = "JOB FAILED" if is_job else "STEP FAILED"
        self._out(f"{prefix}: {name}")
        if exit_code is not None:
            self._out(f"Exit code: {exit_code}")
        if hint:
            self._out(f"Hint: {hint}")
        if self.debug:
            self._out(f"Error details: {reason}")
        else:
            error_line = reason.strip().split("\n")[0] if reason else ""
            if error_line:
                self._out(f"Error: {error_line}")

    def print_published(self, outcome: PublishOutcome) -> None:
        if outcome.changed:
            self._out(f"DEPLOY: pushed {(outcome.commit or '')[:12]} to {outcome.branch}")
        else:
            self._out(f"DEPLOY: {outcome.branch} already up to date")

    def print_plan_job(self, job: Job) -> None:
        """Print what a job would do."""
        needs = f" (needs: {', '.join(job.needs)})" if job.needs else ""
        self._out(f"  {job.name}{needs}")
        if job.toolchain:
            tc = job.toolchain
            self._out(f"    toolchain: {tc.name}@{tc.channel}{' override' if tc.override else ''}")
        for step in job.steps:
            self._out(f"    - {step.name}")
        if job.deploy:
            self._out(f"    deploy: {job.deploy.folder} -> {job.deploy.branch}")

    def print_results(self, run: WorkflowRun) -> None:
        """Print final results summary."""
        self._out("\n" + "=" * 40)
        self._out("RESULTS")
        self._out("=" * 40)
        for name, result in run.results.items():
            self._out(f"  {name}: {_job_line(result)}")
        self._out(f"STATUS: {run.status.value}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        self._err(f"\nERROR: {title}")
        self._err(f"{message}")
        if details:
            for detail in details:
                self._err(f"  {detail}")
        if suggestion:
            self._err(f"\n{suggestion}")

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            self._err(f"Error: {exc}")

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._out(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug and message:
            self._err(f"[DEBUG] {message}")


def _job_line(result: JobResult) -> str:
    line = result.status.value.upper()
    if result.publish_error is not None:
        line += " (deploy failed)"
    elif result.publish is not None:
        line += " (deployed)"
    return line


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
