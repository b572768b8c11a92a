# model.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from .errors import DefinitionError

EVENT_KINDS = ("push", "pull_request")


def _freeze(mapping: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    # force values to str for env compatibility
    return MappingProxyType({str(k): str(v) for k, v in (mapping or {}).items()})


def normalize_branch(ref: str) -> str:
    """Strip a leading ``refs/heads/`` so full refs compare like branch names."""
    prefix = "refs/heads/"
    return ref[len(prefix):] if ref.startswith(prefix) else ref


# ---------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------

class FailurePolicy(enum.Enum):
    """What a non-zero step exit means for the owning job."""
    FATAL = "fatal"
    TOLERATE = "tolerate"


@dataclass(frozen=True)
class Step:
    """
    A single step inside a CI job.

    Exactly one of `run` (inline shell command) or `uses` (reusable action
    reference such as ``actions/checkout@v3``) is set.
    """
    name: Optional[str] = None
    run: Optional[str] = None
    uses: Optional[str] = None
    continue_on_error: bool = False
    env: Mapping[str, str] = field(default_factory=dict)
    with_: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if (self.run is None) == (self.uses is None):
            label = self.name or "<unnamed>"
            raise DefinitionError(f"Step '{label}' must define exactly one of 'run' or 'uses'")
        if self.run is not None and not self.run.strip():
            raise DefinitionError(f"Step '{self.name or '<unnamed>'}' has an empty 'run' command")
        object.__setattr__(self, "env", _freeze(self.env))
        object.__setattr__(self, "with_", _freeze(self.with_))

    @property
    def policy(self) -> FailurePolicy:
        return FailurePolicy.TOLERATE if self.continue_on_error else FailurePolicy.FATAL

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.uses:
            return f"Run {self.uses}"
        # first line of the command, like most CI UIs
        return f"Run {self.run.strip().splitlines()[0]}"


@dataclass(frozen=True)
class Job:
    """
    A CI job: an ordered list of steps plus an opaque execution target.

    Jobs never depend on each other; every job of a workflow is a
    parallel sibling.
    """
    name: str
    steps: Tuple[Step, ...]
    runs_on: str = "ubuntu-latest"
    env: Mapping[str, str] = field(default_factory=dict)

    # Git diff based selection
    paths: Optional[Tuple[str, ...]] = None     # e.g. ("src/**", "Cargo.toml")

    def __post_init__(self) -> None:
        if not self.name:
            raise DefinitionError("Job name must be a non-empty string")
        steps = tuple(self.steps)
        if not steps:
            raise DefinitionError(f"Job '{self.name}' has no steps")
        object.__setattr__(self, "steps", steps)
        object.__setattr__(self, "env", _freeze(self.env))
        if self.paths is not None:
            object.__setattr__(self, "paths", tuple(self.paths))


@dataclass(frozen=True)
class TriggerRule:
    """Admit `event` kinds whose branch matches one of `branches` (empty = any)."""
    event: str
    branches: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.event not in EVENT_KINDS:
            raise DefinitionError(
                f"Unknown event kind '{self.event}'. Known kinds: {list(EVENT_KINDS)}"
            )
        object.__setattr__(self, "branches", tuple(self.branches))


@dataclass(frozen=True)
class Workflow:
    """A parsed workflow definition. Read-only once constructed."""
    name: str
    jobs: Tuple[Job, ...]
    triggers: Tuple[TriggerRule, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        jobs = tuple(self.jobs)
        if not jobs:
            raise DefinitionError(f"Workflow '{self.name}' defines no jobs")

        names = [j.name for j in jobs]
        if len(set(names)) != len(names):
            dupes = sorted({n for n in names if names.count(n) > 1})
            raise DefinitionError(f"Duplicate job names found: {dupes}")

        kinds = [t.event for t in self.triggers]
        if len(set(kinds)) != len(kinds):
            raise DefinitionError(f"Workflow '{self.name}' declares an event kind more than once")

        object.__setattr__(self, "jobs", jobs)
        object.__setattr__(self, "triggers", tuple(self.triggers))
        object.__setattr__(self, "env", _freeze(self.env))

    def job(self, name: str) -> Job:
        for j in self.jobs:
            if j.name == name:
                return j
        raise KeyError(name)


@dataclass(frozen=True)
class Event:
    """
    A repository event that may trigger a run.

    `branch` is the pushed branch for ``push`` and the target (base) branch
    for ``pull_request``. `changed_files` is None when unknown, in which case
    job path filters are not applied.
    """
    kind: str
    branch: str
    changed_files: Optional[Tuple[str, ...]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "branch", normalize_branch(self.branch))
        if self.changed_files is not None:
            object.__setattr__(self, "changed_files", tuple(self.changed_files))

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> Optional[Event]:
        """
        Build an event from host-provided variables.

        Prefers PARCI_EVENT / PARCI_BRANCH, then the GitHub-style
        GITHUB_EVENT_NAME with GITHUB_BASE_REF (pull requests) or
        GITHUB_REF_NAME / GITHUB_REF (pushes). Returns None when no
        event kind is set.
        """
        kind = environ.get("PARCI_EVENT") or environ.get("GITHUB_EVENT_NAME")
        if not kind:
            return None

        branch = environ.get("PARCI_BRANCH")
        if not branch:
            if kind == "pull_request":
                branch = environ.get("GITHUB_BASE_REF")
            branch = branch or environ.get("GITHUB_REF_NAME") or environ.get("GITHUB_REF")
        if not branch:
            return None
        return cls(kind=kind, branch=branch)


# ---------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------

class StepStatus(enum.Enum):
    SUCCESS = "success"
    FAILED_FATAL = "failed_fatal"
    FAILED_TOLERATED = "failed_tolerated"
    SKIPPED = "skipped"


class JobStatus(enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunStatus(enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """
    Outcome of one step.

    `output` points at the captured stdout/stderr log; the result does not
    hold the content itself. Skipped steps have no exit code and no output.
    """
    index: int
    name: str
    status: StepStatus
    exit_code: Optional[int] = None
    output: Optional[Path] = None
    duration: float = 0.0
    error: Optional[str] = None

    def read_output(self) -> str:
        if self.output is None or not self.output.exists():
            return ""
        return self.output.read_text(encoding="utf-8", errors="replace")

    def to_dict(self) -> Dict:
        return {
            "index": self.index,
            "name": self.name,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "output": str(self.output) if self.output else None,
            "duration": round(self.duration, 3),
            "error": self.error,
        }


@dataclass(frozen=True)
class JobResult:
    name: str
    status: JobStatus
    steps: Tuple[StepResult, ...] = ()
    duration: float = 0.0
    skip_reason: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "status": self.status.value,
            "duration": round(self.duration, 3),
            "skip_reason": self.skip_reason,
            "steps": [s.to_dict() for s in self.steps],
        }


@dataclass(frozen=True)
class RunResult:
    """One triggered run: a JobResult per job, in declaration order."""
    run_id: str
    workflow: str
    event: Event
    jobs: Tuple[JobResult, ...]
    duration: float = 0.0

    @property
    def status(self) -> RunStatus:
        if any(j.status is JobStatus.FAILED for j in self.jobs):
            return RunStatus.FAILED
        return RunStatus.SUCCESS

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.SUCCESS

    def job(self, name: str) -> JobResult:
        for j in self.jobs:
            if j.name == name:
                return j
        raise KeyError(name)

    def to_dict(self) -> Dict:
        return {
            "run_id": self.run_id,
            "workflow": self.workflow,
            "event": {"kind": self.event.kind, "branch": self.event.branch},
            "status": self.status.value,
            "duration": round(self.duration, 3),
            "jobs": [j.to_dict() for j in self.jobs],
        }
