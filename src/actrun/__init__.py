from .dsl import action, build, deploy, job, pull_request, push, sh, toolchain, wf, JobBuilder
from .loader import load_workflow
from .model import Job, ShellStep, ActionStep, Workflow, WorkflowRun
from .runner import PipelineRunner, exit_code, run_workflow
from .triggers import should_run

__all__ = [
    "action", "build", "deploy", "job", "pull_request", "push", "sh", "toolchain", "wf", "JobBuilder",
    "load_workflow",
    "Job", "ShellStep", "ActionStep", "Workflow", "WorkflowRun",
    "PipelineRunner", "exit_code", "run_workflow",
    "should_run",
]
