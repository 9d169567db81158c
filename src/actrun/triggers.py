# triggers.py
from __future__ import annotations

from fnmatch import fnmatch
from typing import Iterable, Mapping, Optional

from .model import TriggerEvent, TriggerRule

PUSH = "push"
PULL_REQUEST = "pull_request"
KNOWN_EVENTS = (PUSH, PULL_REQUEST)

DEFAULT_BRANCH = "master"

# pull requests against any branch, pushes to the default branch only
DEFAULT_TRIGGERS: tuple[TriggerRule, ...] = (
    TriggerRule(event=PULL_REQUEST),
    TriggerRule(event=PUSH, branches=(DEFAULT_BRANCH,)),
)


def normalize_branch(ref: str) -> str:
    """'refs/heads/master' -> 'master'. Plain branch names pass through."""
    for prefix in ("refs/heads/", "heads/"):
        if ref.startswith(prefix):
            return ref[len(prefix):]
    return ref


def rule_matches(rule: TriggerRule, event_kind: str, branch_name: str) -> bool:
    if rule.event != event_kind:
        return False
    if rule.branches is None:
        return True
    branch = normalize_branch(branch_name)
    return any(fnmatch(branch, pattern) for pattern in rule.branches)


def should_run(
    event_kind: object,
    branch_name: object,
    rules: Optional[Iterable[TriggerRule]] = None,
) -> bool:
    """
    Decide whether an event starts a run.

    Rules are OR-ed: any match triggers. Malformed input (non-string values,
    unknown event kinds) never triggers.
    """
    if not isinstance(event_kind, str) or not isinstance(branch_name, str):
        return False
    if event_kind not in KNOWN_EVENTS:
        return False

    active = DEFAULT_TRIGGERS if rules is None else tuple(rules)
    return any(rule_matches(r, event_kind, branch_name) for r in active)


def event_from_env(environ: Mapping[str, str]) -> Optional[TriggerEvent]:
    """
    Build the trigger event the hosted CI service describes in its env vars.

    For pull requests the branch is the base branch the PR targets.
    """
    kind = environ.get("GITHUB_EVENT_NAME")
    if not kind:
        return None

    if kind == PULL_REQUEST:
        branch = environ.get("GITHUB_BASE_REF") or environ.get("GITHUB_REF", "")
    else:
        branch = environ.get("GITHUB_REF", "")

    return TriggerEvent(kind=kind, branch=normalize_branch(branch))
