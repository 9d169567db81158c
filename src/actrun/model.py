# model.py
from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union


# ---------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ShellStep:
    """A single shell script inside a CI job."""
    name: str
    run: str
    cwd: str | None = None
    env: Dict[str, str] = field(default_factory=dict)

    @property
    def display(self) -> str:
        return self.run


@dataclass(frozen=True)
class ActionStep:
    """
    A step backed by a reusable action.

    `action` is resolved when the workflow is loaded, so the executor never
    looks an action up by name.
    """
    name: str
    uses: str
    action: Callable[[Dict[str, Any], "EnvContext"], Any] = field(compare=False, repr=False)
    params: Dict[str, Any] = field(default_factory=dict)
    env: Dict[str, str] = field(default_factory=dict)

    @property
    def display(self) -> str:
        return f"uses: {self.uses}"


Step = Union[ShellStep, ActionStep]


@dataclass(frozen=True)
class ToolchainSpec:
    name: str
    channel: str = "stable"
    override: bool = False
    profile: str | None = None


@dataclass(frozen=True)
class DeployTarget:
    folder: str
    branch: str


@dataclass
class Job:
    """
    A CI job: ordered steps plus the environment they share.

    `runs_on` is recorded for reporting; the OS image itself is provided by
    whoever launches actrun.
    """
    name: str
    steps: list[Step] = field(default_factory=list)
    runs_on: str | None = None
    toolchain: Optional[ToolchainSpec] = None
    deploy: Optional[DeployTarget] = None
    needs: list[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TriggerRule:
    """Matches an event kind, optionally restricted to branch globs."""
    event: str
    branches: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class TriggerEvent:
    kind: str
    branch: str


@dataclass
class Workflow:
    name: str
    jobs: List[Job]
    triggers: List[TriggerRule] = field(default_factory=list)


# ---------------------------------------------------------------------
# Execution state
# ---------------------------------------------------------------------

class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class JobStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ToolchainHandle:
    name: str
    channel: str
    version: str | None = None
    override: bool = False


@dataclass
class EnvContext:
    """
    Per-job execution environment.

    The provisioner mutates this object instead of the process environment,
    so two jobs (or two tests) never see each other's toolchain.
    """
    workspace: Path
    env: Dict[str, str] = field(default_factory=dict)
    toolchain: Optional[ToolchainHandle] = None

    @classmethod
    def for_job(
        cls,
        job: Job,
        workspace: str | Path = ".",
        base_env: Optional[Dict[str, str]] = None,
    ) -> "EnvContext":
        env = dict(os.environ if base_env is None else base_env)
        env.update(job.env or {})
        return cls(workspace=Path(workspace).resolve(), env=env)

    def step_env(self, step: Step) -> Dict[str, str]:
        env = dict(self.env)
        env.update(step.env or {})
        return env


@dataclass(frozen=True)
class StepResult:
    step: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def failed(self) -> bool:
        return self.exit_code != 0


@dataclass(frozen=True)
class PublishOutcome:
    branch: str
    changed: bool
    commit: str | None = None


@dataclass
class JobResult:
    job: str
    status: JobStatus
    steps: List[StepResult] = field(default_factory=list)
    error: Optional[Exception] = None
    toolchain: Optional[ToolchainHandle] = None
    publish: Optional[PublishOutcome] = None
    publish_error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.status is JobStatus.SUCCESS


@dataclass
class WorkflowRun:
    event: TriggerEvent
    jobs: List[Job]
    status: RunStatus = RunStatus.PENDING
    results: Dict[str, JobResult] = field(default_factory=dict)
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
