from __future__ import annotations

from typing import Any, Callable, Dict

from ..errors import WorkflowError
from . import checkout

ActionHandler = Callable[..., Any]

BUILTIN_ACTIONS: Dict[str, ActionHandler] = {
    "actions/checkout": checkout.run,
}

# Handled by the runner itself rather than as steps.
TOOLCHAIN_ACTIONS = ("actions-rs/toolchain", "dtolnay/rust-toolchain")
DEPLOY_ACTIONS = ("jamesives/github-pages-deploy-action", "peaceiris/actions-gh-pages")


def action_name(uses: str) -> str:
    """'actions/checkout@v2' -> 'actions/checkout'"""
    return uses.split("@", 1)[0].strip().lower()


def resolve_action(uses: str) -> ActionHandler:
    name = action_name(uses)
    try:
        return BUILTIN_ACTIONS[name]
    except KeyError:
        raise WorkflowError(
            f"Unsupported action {uses!r}. Known actions: {sorted(BUILTIN_ACTIONS)}"
        ) from None


def register_action(name: str, handler: ActionHandler) -> None:
    BUILTIN_ACTIONS[action_name(name)] = handler
