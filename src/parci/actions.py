# actions.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Tuple

from .errors import StepLaunchFailure
from .model import Step

# An action gets the step, its effective env and the workspace, and returns
# (exit_code, output text). It may raise StepLaunchFailure.
Action = Callable[[Step, Mapping[str, str], Path], Tuple[int, str]]


def parse_action_ref(ref: str) -> Tuple[str, Optional[str]]:
    """
    Split an action reference into (name, version).

        "actions/checkout@v3" -> ("actions/checkout", "v3")
        "actions/checkout"    -> ("actions/checkout", None)
    """
    name, sep, version = ref.strip().partition("@")
    return name, (version if sep else None)


def checkout(step: Step, env: Mapping[str, str], workspace: Path) -> Tuple[int, str]:
    """
    Built-in `actions/checkout`.

    The host provides the checkout; this only confirms the workspace is
    there so later steps fail for the right reason.
    """
    if not workspace.is_dir():
        return 1, f"Workspace not found: {workspace}\n"
    lines = [f"Using host checkout at {workspace}"]
    if not (workspace / ".git").exists():
        lines.append("warning: workspace is not a git repository")
    return 0, "\n".join(lines) + "\n"


@dataclass
class ActionRegistry:
    """Reusable actions addressed by `owner/name`, version ignored."""
    actions: Dict[str, Action]

    @classmethod
    def default(cls) -> ActionRegistry:
        return cls(actions={"actions/checkout": checkout})

    def register(self, name: str, action: Action) -> None:
        self.actions[name] = action

    def resolve(self, step: Step) -> Action:
        name, _version = parse_action_ref(step.uses or "")
        try:
            return self.actions[name]
        except KeyError:
            raise StepLaunchFailure(
                step=step.display_name,
                message=f"unknown action '{step.uses}'. Known actions: {sorted(self.actions)}",
            ) from None
