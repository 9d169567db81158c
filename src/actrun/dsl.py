# src/actrun/dsl.py
from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional

from .actions import resolve_action
from .model import ActionStep, DeployTarget, Job, ShellStep, Step, ToolchainSpec, TriggerRule, Workflow
from .triggers import DEFAULT_TRIGGERS, PULL_REQUEST, PUSH


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def sh(name: str, cmd: str, *, cwd: str | None = None, env: Optional[Dict[str, str]] = None) -> ShellStep:
    """Create a shell step."""
    return ShellStep(name=name, run=cmd, cwd=cwd, env={k: str(v) for k, v in (env or {}).items()})


def action(
    name: str,
    uses: str,
    params: Optional[Dict[str, Any]] = None,
    *,
    env: Optional[Dict[str, str]] = None,
) -> ActionStep:
    """Create a step backed by a built-in action, e.g. action("Checkout", "actions/checkout@v2")."""
    return ActionStep(
        name=name,
        uses=uses,
        action=resolve_action(uses),
        params=dict(params or {}),
        env={k: str(v) for k, v in (env or {}).items()},
    )


def toolchain(
    name: str = "rust",
    channel: str = "stable",
    *,
    override: bool = False,
    profile: str | None = None,
) -> ToolchainSpec:
    return ToolchainSpec(name=name, channel=channel, override=override, profile=profile)


def deploy(folder: str, branch: str) -> DeployTarget:
    return DeployTarget(folder=folder, branch=branch)


# ---------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------

def push(*branches: str) -> TriggerRule:
    """push(), push("master"), push("release/*")"""
    return TriggerRule(event=PUSH, branches=tuple(branches) or None)


def pull_request(*branches: str) -> TriggerRule:
    return TriggerRule(event=PULL_REQUEST, branches=tuple(branches) or None)


# ---------------------------------------------------------------------
# Functional Job helper
# ---------------------------------------------------------------------

def job(
    name: str,
    *steps: Step,  # allow: job("x", sh(...), sh(...))
    steps_list: Optional[List[Step]] = None,  # allow: job("x", steps_list=[...])
    needs: Optional[List[str]] = None,
    env: Optional[Dict[str, str]] = None,
    runs_on: str | None = None,
    toolchain: Optional[ToolchainSpec] = None,
    deploy: Optional[DeployTarget] = None,
    cwd: str | None = None,  # default cwd applied to shell steps missing cwd
) -> Job:
    steps_final: List[Step] = []
    if steps_list:
        steps_final.extend(list(steps_list))
    steps_final.extend(list(steps))

    if cwd is not None:
        steps_final = [
            replace(s, cwd=cwd) if isinstance(s, ShellStep) and s.cwd is None else s
            for s in steps_final
        ]

    return Job(
        name=name,
        steps=steps_final,
        needs=list(needs or []),
        env={k: str(v) for k, v in (env or {}).items()},
        runs_on=runs_on,
        toolchain=toolchain,
        deploy=deploy,
    )


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class JobBuilder:
    def __init__(self, name: str):
        self.name = name
        self._needs: list[str] = []
        self._steps: list[Step] = []
        self._env: dict[str, str] = {}
        self._runs_on: str | None = None
        self._toolchain: Optional[ToolchainSpec] = None
        self._deploy: Optional[DeployTarget] = None

    def depends_on(self, *job_names: str):
        self._needs.extend(job_names)
        return self

    def runs_on(self, image: str):
        self._runs_on = image
        return self

    def define_step(self, name: str, run: str, cwd: str | None = None):
        self._steps.append(ShellStep(name=name, run=run, cwd=cwd))
        return self

    def use_action(self, name: str, uses: str, **params: Any):
        self._steps.append(action(name, uses, params))
        return self

    def with_toolchain(self, name: str, channel: str = "stable", *, override: bool = False, profile: str | None = None):
        self._toolchain = ToolchainSpec(name=name, channel=channel, override=override, profile=profile)
        return self

    def deploy_to(self, branch: str, folder: str):
        self._deploy = DeployTarget(folder=folder, branch=branch)
        return self

    def with_env(self, **env):
        # force values to str for env compatibility
        self._env.update({k: str(v) for k, v in env.items()})
        return self

    def build(self) -> Job:
        return Job(
            name=self.name,
            steps=list(self._steps),
            needs=list(self._needs),
            env=dict(self._env),
            runs_on=self._runs_on,
            toolchain=self._toolchain,
            deploy=self._deploy,
        )


def build(name: str) -> JobBuilder:
    """Convenience: build('docs').define_step(...).build()"""
    return JobBuilder(name)


# ---------------------------------------------------------------------
# Workflow helper (single-file story)
# ---------------------------------------------------------------------

def wf(*jobs: Job, name: str = "workflow", on: Optional[List[TriggerRule]] = None) -> Workflow:
    """
    Workflow definition helper.

    Users can write:
        from actrun import wf, job, sh, push, pull_request

        def workflow():
            return wf(
                job("docs", sh("Build", "make docs")),
                on=[pull_request(), push("master")],
            )

    Without `on`, pull requests and pushes to master trigger the run.
    """
    return Workflow(name=name, jobs=list(jobs), triggers=list(on) if on is not None else list(DEFAULT_TRIGGERS))
