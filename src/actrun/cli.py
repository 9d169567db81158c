# cli.py
from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import click

from actrun.dag import topo_order
from actrun.errors import ConfigError, WorkflowError
from actrun.executor import StepExecutor
from actrun.git_facts.git import current_branch
from actrun.loader import YAML_SUFFIXES, load_workflow
from actrun.model import TriggerEvent
from actrun.publish import Publisher
from actrun.runner import PipelineRunner, exit_code
from actrun.settings import Settings
from actrun.triggers import PULL_REQUEST, PUSH, normalize_branch, should_run
from actrun.ui.console import Console, get_console, set_console

PY_WORKFLOW = "actrun_workflow.py"


def find_workflow_files(root: Path) -> list[Path]:
    """
    Find all workflow files under `root`.

    Looks at .github/workflows/*.yml|*.yaml and actrun_workflow.py.
    """
    workflow_files = []
    wf_dir = root / ".github" / "workflows"
    if wf_dir.is_dir():
        for path in wf_dir.iterdir():
            if path.suffix in YAML_SUFFIXES:
                workflow_files.append(path)

    py_workflow = root / PY_WORKFLOW
    if py_workflow.exists():
        workflow_files.append(py_workflow)

    return sorted(workflow_files)


def discover_workflow(workflow_arg: str | None, root: Path) -> Path:
    """
    Discover workflow file from argument or default.

    Raises:
        SystemExit: If workflow cannot be found or multiple workflows exist
    """
    console = get_console()

    if workflow_arg:
        workflow_path = Path(workflow_arg)
        if not workflow_path.exists():
            console.print_error(
                "Workflow file not found",
                f"Could not find workflow file: {workflow_arg}",
                suggestion="Specify an existing file:\n  actrun run --workflow .github/workflows/docs.yml",
            )
            sys.exit(1)
        return workflow_path

    workflow_files = find_workflow_files(root)

    if len(workflow_files) == 0:
        console.print_error(
            "No workflow file found",
            "Could not find any workflow files.",
            details=[
                "Looked for:",
                "  .github/workflows/*.yml",
                f"  {PY_WORKFLOW}",
            ],
            suggestion="Specify a workflow explicitly:\n  actrun run --workflow my_workflow.yml",
        )
        sys.exit(1)

    if len(workflow_files) > 1:
        file_list = "\n".join(f"  {f}" for f in workflow_files)
        console.print_error(
            "Multiple workflow files found",
            "Found multiple workflow files. Please specify which one to use:",
            details=[file_list],
            suggestion="Specify a workflow explicitly:\n  actrun run --workflow .github/workflows/docs.yml",
        )
        sys.exit(1)

    return workflow_files[0]


def resolve_event(kind: str | None, branch: str | None, settings: Settings, workspace: Path) -> TriggerEvent:
    """
    CLI options first, then the CI service's variables. Locally, with
    nothing set, this is a push of the checked out branch.
    """
    kind = kind or settings.event_name or PUSH

    if branch is None:
        if kind == PULL_REQUEST:
            branch = settings.base_ref or settings.ref
        else:
            branch = settings.ref
    if branch is None:
        try:
            branch = current_branch(workspace)
        except (subprocess.CalledProcessError, FileNotFoundError):
            branch = ""

    return TriggerEvent(kind=kind, branch=normalize_branch(branch))


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """actrun: run CI workflows (trigger, toolchain, steps, deploy) locally."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option("--workflow", default=None, help="Workflow file (.yml/.yaml/.py); discovered when omitted")
@click.option("--event", "event_kind", default=None, help="Trigger event kind (push, pull_request)")
@click.option("--branch", default=None, help="Branch the event refers to")
@click.option("--workspace", default=None, help="Directory the steps run in")
@click.option("--remote", default=None, help="Git remote name or URL to deploy to")
@click.option(
    "--fail-fast/--no-fail-fast",
    default=True,
    show_default=True,
    envvar="ACTRUN_FAIL_FAST",
    help="Skip every remaining job after the first failure",
)
@click.option("--deploy/--no-deploy", default=True, show_default=True, help="Run deployment on success")
def run(workflow, event_kind, branch, workspace, remote, fail_fast, deploy):
    """Run a workflow for one trigger event."""
    console = get_console()
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        console.print_error("Invalid configuration", str(e))
        sys.exit(1)
    workspace_p = Path(workspace or settings.workspace).resolve()

    workflow_path = discover_workflow(workflow, workspace_p)

    try:
        wf = load_workflow(workflow_path)
        event = resolve_event(event_kind, branch, settings, workspace_p)

        runner = PipelineRunner(
            workspace=workspace_p,
            executor=StepExecutor(output_limit=settings.output_limit),
            publisher=Publisher(
                workspace_p,
                remote=remote or settings.remote,
                token=settings.token,
                author_name=settings.author_name,
                author_email=settings.author_email,
            ),
            fail_fast=fail_fast,
            deploy=deploy,
        )
        result = runner.run(wf, event)
    except WorkflowError as e:
        console.print_error("Invalid workflow", str(e), details=[str(workflow_path)])
        sys.exit(1)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)

    sys.exit(exit_code(result))


@cli.command()
@click.option("--workflow", default=None, help="Workflow file (.yml/.yaml/.py); discovered when omitted")
@click.option("--workspace", default=".", help="Directory to discover the workflow in")
def plan(workflow, workspace):
    """Print triggers, jobs and steps without running anything."""
    console = get_console()
    workflow_path = discover_workflow(workflow, Path(workspace).resolve())

    try:
        wf = load_workflow(workflow_path)
        ordered = topo_order(wf.jobs)
    except WorkflowError as e:
        console.print_error("Invalid workflow", str(e), details=[str(workflow_path)])
        sys.exit(1)

    console.print_header(f"{wf.name} ({workflow_path.name})")
    for rule in wf.triggers:
        branches = ", ".join(rule.branches) if rule.branches else "any branch"
        console.print_info(f"on {rule.event}: {branches}")
    console.print_info("jobs:")
    for j in ordered:
        console.print_plan_job(j)


@cli.command()
@click.option("--event", "event_kind", required=True, help="Trigger event kind (push, pull_request)")
@click.option("--branch", required=True, help="Branch the event refers to")
@click.option("--workflow", default=None, help="Use this workflow's triggers instead of the defaults")
def check(event_kind, branch, workflow):
    """Tell whether an event would start a run (exit 0) or not (exit 1)."""
    console = get_console()
    rules = None
    if workflow:
        try:
            rules = load_workflow(workflow).triggers or None
        except (WorkflowError, FileNotFoundError) as e:
            console.print_error("Invalid workflow", str(e))
            sys.exit(2)

    if should_run(event_kind, branch, rules):
        console.print_info(f"run: {event_kind} on '{branch}' matches")
        sys.exit(0)
    console.print_info(f"skip: {event_kind} on '{branch}' matches no trigger")
    sys.exit(1)


if __name__ == "__main__":
    cli()
