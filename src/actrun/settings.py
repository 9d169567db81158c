# settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError

DEFAULT_OUTPUT_LIMIT = 4000
DEFAULT_AUTHOR_NAME = "actrun"
DEFAULT_AUTHOR_EMAIL = "actrun@users.noreply.github.com"


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration read from the environment.

    ACTRUN_* variables win over the ones the hosted CI service exports.
    """
    workspace: str = "."
    remote: str = "origin"
    token: Optional[str] = None
    event_name: Optional[str] = None
    ref: Optional[str] = None
    base_ref: Optional[str] = None
    output_limit: int = DEFAULT_OUTPUT_LIMIT
    author_name: str = DEFAULT_AUTHOR_NAME
    author_email: str = DEFAULT_AUTHOR_EMAIL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            workspace=env.get("ACTRUN_WORKSPACE") or env.get("GITHUB_WORKSPACE") or ".",
            remote=env.get("ACTRUN_REMOTE", "origin"),
            token=env.get("ACTRUN_TOKEN") or env.get("GITHUB_TOKEN") or None,
            event_name=env.get("ACTRUN_EVENT") or env.get("GITHUB_EVENT_NAME") or None,
            ref=env.get("ACTRUN_BRANCH") or env.get("GITHUB_REF") or None,
            base_ref=env.get("GITHUB_BASE_REF") or None,
            output_limit=_int_setting(env, "ACTRUN_OUTPUT_LIMIT", DEFAULT_OUTPUT_LIMIT),
            author_name=env.get("ACTRUN_AUTHOR_NAME", DEFAULT_AUTHOR_NAME),
            author_email=env.get("ACTRUN_AUTHOR_EMAIL", DEFAULT_AUTHOR_EMAIL),
        )
