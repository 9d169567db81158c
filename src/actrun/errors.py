# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


class CIError(Exception):
    """Base class for every error actrun raises on purpose."""


class WorkflowError(CIError):
    """Raised when a workflow file or definition is malformed."""
    pass


class ConfigError(CIError):
    """Raised when an environment setting has an unusable value."""
    pass


@dataclass
class ProvisionError(CIError):
    """
    The requested toolchain could not be installed or selected.

    Fatal to the job: no step runs after it.
    """
    toolchain: str
    channel: str
    reason: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"toolchain {self.toolchain}@{self.channel} unavailable: {self.reason}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


@dataclass
class StepExecutionError(CIError):
    job: str
    step: str
    cmd: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    def __str__(self) -> str:
        return f"[{self.job}] step '{self.step}' failed (exit={self.exit_code}): {self.cmd}"


@dataclass
class PublishError(CIError):
    """Deployment failed. Reported, never retried."""
    folder: str
    branch: str
    reason: str

    def __str__(self) -> str:
        return f"publish of '{self.folder}' to branch '{self.branch}' failed: {self.reason}"
