# loader.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .actions import DEPLOY_ACTIONS, TOOLCHAIN_ACTIONS, action_name, resolve_action
from .errors import WorkflowError
from .model import ActionStep, DeployTarget, Job, ShellStep, Step, ToolchainSpec, TriggerRule, Workflow
from .triggers import DEFAULT_TRIGGERS

YAML_SUFFIXES = (".yml", ".yaml")


# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------

def load_workflow(path: str | Path) -> Workflow:
    """
    Load a workflow from a YAML file or a python file.

    YAML files use the hosted CI syntax (on / jobs / steps). Python files
    must define either:
      - workflow() -> Workflow | List[Job]
      - WORKFLOW = Workflow(...) or JOBS = [Job, ...]
    """
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.exists():
        raise FileNotFoundError(f"Workflow file not found: {wf_path}")

    if wf_path.suffix in YAML_SUFFIXES:
        try:
            data = yaml.safe_load(wf_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise WorkflowError(f"Invalid YAML in {wf_path.name}: {e}") from e
        return parse_workflow(data, default_name=wf_path.stem)

    if wf_path.suffix == ".py":
        return _load_python_workflow(wf_path)

    raise WorkflowError(f"Workflow must be a .py, .yml or .yaml file, got: {wf_path.name}")


def _load_python_workflow(wf_path: Path) -> Workflow:
    module_name = f"actrun_workflow_{wf_path.stem}"
    globals_dict = runpy.run_path(str(wf_path), run_name=module_name)

    loaded: Any = None
    if "workflow" in globals_dict and callable(globals_dict["workflow"]):
        loaded = globals_dict["workflow"]()
    elif "WORKFLOW" in globals_dict:
        loaded = globals_dict["WORKFLOW"]
    elif "JOBS" in globals_dict:
        loaded = globals_dict["JOBS"]

    if isinstance(loaded, Workflow):
        return loaded
    if isinstance(loaded, list) and all(isinstance(j, Job) for j in loaded):
        return Workflow(name=wf_path.stem, jobs=loaded, triggers=list(DEFAULT_TRIGGERS))

    raise WorkflowError(
        "Workflow must return/define a Workflow or a List[Job]. "
        "Define workflow() -> Workflow, WORKFLOW = wf(...) or JOBS = [Job, ...]."
    )


# ----------------------------------------------------------------------
# YAML mapping
# ----------------------------------------------------------------------

def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "on")
    return bool(value)


def _as_list(value: Any, what: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(v) for v in value]
    raise WorkflowError(f"{what} must be a string or a list, got {type(value).__name__}")


def _as_env(value: Any, what: str) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise WorkflowError(f"{what} must be a mapping")
    return {str(k): str(v) for k, v in value.items()}


def parse_triggers(on: Any) -> List[TriggerRule]:
    if on is None:
        raise WorkflowError("Workflow has no 'on' section")
    if isinstance(on, str):
        return [TriggerRule(event=on)]
    if isinstance(on, list):
        return [TriggerRule(event=str(e)) for e in on]
    if not isinstance(on, dict):
        raise WorkflowError("'on' must be a string, a list or a mapping")

    rules: List[TriggerRule] = []
    for event, cfg in on.items():
        branches: Optional[Tuple[str, ...]] = None
        if isinstance(cfg, dict) and cfg.get("branches") is not None:
            branches = tuple(_as_list(cfg["branches"], f"on.{event}.branches"))
        rules.append(TriggerRule(event=str(event), branches=branches))
    return rules


def _toolchain_from(uses: str, params: Dict[str, Any]) -> ToolchainSpec:
    name = action_name(uses)
    if name == "dtolnay/rust-toolchain":
        # the channel may be the action ref itself: dtolnay/rust-toolchain@nightly
        ref = uses.split("@", 1)[1] if "@" in uses else "stable"
        channel = str(params.get("toolchain") or ref)
        return ToolchainSpec(name="rust", channel=channel, override=True, profile="minimal")

    return ToolchainSpec(
        name="rust",
        channel=str(params.get("toolchain") or "stable"),
        override=_as_bool(params.get("override", False)),
        profile=str(params["profile"]) if params.get("profile") else None,
    )


def _deploy_from(uses: str, params: Dict[str, Any]) -> DeployTarget:
    name = action_name(uses)
    if name == "peaceiris/actions-gh-pages":
        return DeployTarget(
            folder=str(params.get("publish_dir") or "public"),
            branch=str(params.get("publish_branch") or "gh-pages"),
        )

    if not params.get("folder"):
        raise WorkflowError(f"{uses}: 'folder' is required")
    return DeployTarget(folder=str(params["folder"]), branch=str(params.get("branch") or "gh-pages"))


def _step_name(raw: Dict[str, Any]) -> str:
    if raw.get("name"):
        return str(raw["name"])
    if raw.get("run"):
        return "Run " + str(raw["run"]).strip().splitlines()[0]
    return "Run " + str(raw.get("uses"))


def parse_job(job_id: str, raw: Any) -> Job:
    if not isinstance(raw, dict):
        raise WorkflowError(f"Job '{job_id}' must be a mapping")

    raw_steps = raw.get("steps") or []
    if not isinstance(raw_steps, list):
        raise WorkflowError(f"Job '{job_id}': 'steps' must be a list")

    steps: List[Step] = []
    toolchain: Optional[ToolchainSpec] = None
    deploy: Optional[DeployTarget] = None

    for idx, s in enumerate(raw_steps):
        where = f"jobs.{job_id}.steps[{idx}]"
        if not isinstance(s, dict):
            raise WorkflowError(f"{where} must be a mapping")
        uses, run = s.get("uses"), s.get("run")
        if bool(uses) == bool(run):
            raise WorkflowError(f"{where} needs exactly one of 'uses' or 'run'")
        if deploy is not None:
            raise WorkflowError(f"{where}: no step may follow the deploy step")

        name = _step_name(s)
        env = _as_env(s.get("env"), f"{where}.env")
        params = s.get("with") or {}
        if not isinstance(params, dict):
            raise WorkflowError(f"{where}.with must be a mapping")

        if run:
            steps.append(ShellStep(name=name, run=str(run), cwd=s.get("working-directory"), env=env))
            continue

        uses = str(uses)
        if action_name(uses) in TOOLCHAIN_ACTIONS:
            if toolchain is not None:
                raise WorkflowError(f"{where}: job '{job_id}' already selects a toolchain")
            toolchain = _toolchain_from(uses, params)
        elif action_name(uses) in DEPLOY_ACTIONS:
            deploy = _deploy_from(uses, params)
        else:
            steps.append(
                ActionStep(name=name, uses=uses, action=resolve_action(uses), params=dict(params), env=env)
            )

    runs_on = raw.get("runs-on")
    return Job(
        name=str(job_id),
        steps=steps,
        runs_on=", ".join(_as_list(runs_on, "runs-on")) if runs_on is not None else None,
        toolchain=toolchain,
        deploy=deploy,
        needs=_as_list(raw.get("needs"), f"jobs.{job_id}.needs"),
        env=_as_env(raw.get("env"), f"jobs.{job_id}.env"),
    )


def parse_workflow(data: Any, default_name: str = "workflow") -> Workflow:
    if not isinstance(data, dict):
        raise WorkflowError("Workflow root must be a mapping")

    # YAML 1.1 reads a bare `on` key as boolean True
    on = data["on"] if "on" in data else data.get(True)
    triggers = parse_triggers(on)

    jobs_raw = data.get("jobs")
    if not isinstance(jobs_raw, dict) or not jobs_raw:
        raise WorkflowError("Workflow must define at least one job under 'jobs'")

    workflow_env = _as_env(data.get("env"), "env")
    jobs = []
    for job_id, raw in jobs_raw.items():
        parsed = parse_job(str(job_id), raw)
        parsed.env = {**workflow_env, **parsed.env}
        jobs.append(parsed)

    return Workflow(name=str(data.get("name") or default_name), jobs=jobs, triggers=triggers)
