# trigger.py
from __future__ import annotations

from fnmatch import fnmatchcase

from .model import Event, Workflow


def branch_matches(branch: str, patterns: tuple[str, ...]) -> bool:
    """Glob-match a branch name; an empty pattern list admits every branch."""
    if not patterns:
        return True
    return any(fnmatchcase(branch, p) for p in patterns)


def should_run(event: Event, workflow: Workflow) -> bool:
    """
    True only if the workflow declares `event.kind` and the branch matches.

    Pure evaluation: never raises, never launches anything. A plain pattern
    like "main" is an exact match.
    """
    for rule in workflow.triggers:
        if rule.event == event.kind:
            return branch_matches(event.branch, rule.branches)
    return False
