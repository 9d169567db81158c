# runner.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Set

from .dag import downstream_of, topo_order
from .errors import ProvisionError, PublishError, StepExecutionError
from .executor import StepExecutor
from .model import (
    EnvContext,
    Job,
    JobResult,
    JobStatus,
    RunStatus,
    TriggerEvent,
    Workflow,
    WorkflowRun,
)
from .publish import Publisher
from .provision import Provisioner
from .triggers import should_run
from .ui.console import Console, get_console


class PipelineRunner:
    """
    Sequences jobs and their steps.

    Policy is fail-fast: the first failing step stops its job, and nothing
    already done is rolled back. Jobs run one at a time; a job whose
    upstream failed is skipped, and with `fail_fast` every remaining job is.
    """

    def __init__(
        self,
        *,
        workspace: str | Path = ".",
        executor: Optional[StepExecutor] = None,
        provisioner: Optional[Provisioner] = None,
        publisher: Optional[Publisher] = None,
        console: Optional[Console] = None,
        base_env: Optional[Dict[str, str]] = None,
        fail_fast: bool = True,
        deploy: bool = True,
    ):
        self.workspace = Path(workspace).resolve()
        self.executor = executor or StepExecutor()
        self.provisioner = provisioner or Provisioner()
        self.publisher = publisher
        self.base_env = base_env
        self.fail_fast = fail_fast
        self.deploy = deploy
        self._console = console

    @property
    def console(self) -> Console:
        return self._console or get_console()

    # ------------------------------------------------------------------
    # Single job
    # ------------------------------------------------------------------

    def execute(self, job: Job, ctx: Optional[EnvContext] = None) -> JobResult:
        console = self.console
        if ctx is None:
            ctx = EnvContext.for_job(job, self.workspace, self.base_env)

        console.print_job_start(job.name, job.runs_on)
        result = JobResult(job=job.name, status=JobStatus.SUCCESS)

        # ---- toolchain ----
        if job.toolchain is not None:
            try:
                result.toolchain = self.provisioner.provision(job.toolchain, ctx)
            except ProvisionError as e:
                console.print_failure(job.name, str(e), hint=e.details.get("hint"), is_job=True)
                result.status = JobStatus.FAILED
                result.error = e
                return result
            console.print_toolchain(result.toolchain)

        # ---- steps ----
        for step in job.steps:
            console.print_step(step.name)
            step_result = self.executor.run(step, ctx)
            result.steps.append(step_result)
            console.print_step_result(step_result)

            if step_result.failed:
                result.status = JobStatus.FAILED
                result.error = StepExecutionError(
                    job=job.name,
                    step=step.name,
                    cmd=step.display,
                    exit_code=step_result.exit_code,
                    stdout=step_result.stdout,
                    stderr=step_result.stderr,
                )
                return result

        # ---- deploy ----
        if job.deploy is not None and self.deploy:
            publisher = self.publisher or Publisher(ctx.workspace)
            try:
                result.publish = publisher.publish(job.deploy.folder, job.deploy.branch)
            except PublishError as e:
                # build status stays success; the run reports the failure
                result.publish_error = e
                console.print_failure(job.name, str(e), is_job=True)
            else:
                console.print_published(result.publish)

        return result

    # ------------------------------------------------------------------
    # Whole workflow
    # ------------------------------------------------------------------

    def run(self, workflow: Workflow, event: TriggerEvent) -> Optional[WorkflowRun]:
        """
        Run `workflow` for `event`.

        Returns None when no trigger rule matches: no run exists then.
        """
        console = self.console
        if not should_run(event.kind, event.branch, workflow.triggers or None):
            console.print_trigger_skipped(event.kind, event.branch)
            return None

        ordered = topo_order(workflow.jobs)
        run = WorkflowRun(event=event, jobs=ordered)
        run.status = RunStatus.RUNNING
        console.print_run_started(
            workflow=workflow.name,
            event=event.kind,
            branch=event.branch,
            job_count=len(ordered),
            run_id=run.run_id,
        )

        build_failed = False
        deploy_failed = False
        blocked: Set[str] = set()

        for job in ordered:
            if build_failed and self.fail_fast:
                run.results[job.name] = JobResult(job=job.name, status=JobStatus.SKIPPED)
                console.print_job_skipped(job.name, "fail-fast")
                continue
            if job.name in blocked:
                run.results[job.name] = JobResult(job=job.name, status=JobStatus.SKIPPED)
                console.print_job_skipped(job.name, "upstream job failed")
                continue

            result = self.execute(job)
            run.results[job.name] = result

            if not result.success:
                build_failed = True
                blocked |= downstream_of(ordered, job.name)
            elif result.publish_error is not None:
                deploy_failed = True

        run.status = RunStatus.FAILED if (build_failed or deploy_failed) else RunStatus.SUCCESS
        console.print_results(run)
        return run


def exit_code(run: Optional[WorkflowRun]) -> int:
    """0 iff the run succeeded. An untriggered run (None) is not a failure."""
    if run is None:
        return 0
    return 0 if run.status is RunStatus.SUCCESS else 1


def run_workflow(workflow: Workflow, event: TriggerEvent, **kwargs) -> Optional[WorkflowRun]:
    """Convenience: PipelineRunner(**kwargs).run(workflow, event)"""
    return PipelineRunner(**kwargs).run(workflow, event)
