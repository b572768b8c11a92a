# src/parci/dsl.py
from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .model import Job, Step, TriggerRule, Workflow


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def sh(
    name: Optional[str],
    cmd: str,
    *,
    continue_on_error: bool = False,
    env: Optional[Dict[str, Any]] = None,
) -> Step:
    """Create a shell step."""
    return Step(name=name, run=cmd, continue_on_error=continue_on_error, env=env or {})


def uses(
    ref: str,
    *,
    name: Optional[str] = None,
    with_: Optional[Dict[str, Any]] = None,
    continue_on_error: bool = False,
    env: Optional[Dict[str, Any]] = None,
) -> Step:
    """Create a step that invokes a reusable action, e.g. uses("actions/checkout@v3")."""
    return Step(
        name=name,
        uses=ref,
        continue_on_error=continue_on_error,
        env=env or {},
        with_=with_ or {},
    )


def checkout() -> Step:
    return uses("actions/checkout@v3")


# ---------------------------------------------------------------------
# Functional Job helper
# ---------------------------------------------------------------------

def job(
    name: str,
    *steps: Step,  # allow: job("x", sh(...), sh(...))
    steps_list: Optional[List[Step]] = None,  # allow: job("x", steps_list=[...])
    runs_on: str = "ubuntu-latest",
    env: Optional[Dict[str, Any]] = None,
    paths: Optional[List[str]] = None,
) -> Job:
    steps_final: List[Step] = []
    if steps_list:
        steps_final.extend(steps_list)
    steps_final.extend(steps)

    return Job(
        name=name,
        steps=tuple(steps_final),
        runs_on=runs_on,
        env=env or {},
        paths=tuple(paths) if paths is not None else None,
    )


# ---------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------

def on(
    *,
    push: Optional[Sequence[str]] = None,
    pull_request: Optional[Sequence[str]] = None,
) -> List[TriggerRule]:
    """
    Declare trigger rules by event kind.

        on(push=["main"], pull_request=["main"])

    Pass an empty list to admit every branch for that event; leave an
    event out (None) to not trigger on it at all.
    """
    rules: List[TriggerRule] = []
    if push is not None:
        rules.append(TriggerRule(event="push", branches=tuple(push)))
    if pull_request is not None:
        rules.append(TriggerRule(event="pull_request", branches=tuple(pull_request)))
    return rules


# ---------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------

class Matrix:
    """
    Minimal matrix expander.

    Each built job gets MATRIX_<KEY> set to its value in the job env.

    Example:
        matrix("toolchain", ["stable", "nightly"]).jobs(
            lambda v: job(f"test-{v}", sh("Test", f"cargo +{v} test"))
        )
    """
    def __init__(self, key: str, values: Iterable[Any]):
        self.key = key
        self.values = list(values)

    def jobs(self, builder: Callable[[Any], Job]) -> List[Job]:
        var = f"MATRIX_{self.key.upper()}"
        jobs = []
        for v in self.values:
            j = builder(v)
            jobs.append(replace(j, env={**j.env, var: str(v)}))
        return jobs


def matrix(key: str, values: Iterable[Any]) -> Matrix:
    return Matrix(key, values)


# ---------------------------------------------------------------------
# Workflow helper (single-file story)
# ---------------------------------------------------------------------

def wf(
    name: str,
    *jobs: Job | List[Job],
    on: Optional[Iterable[TriggerRule]] = None,
    env: Optional[Dict[str, Any]] = None,
) -> Workflow:
    """
    Workflow definition helper.

    Users can write:
        from parci.dsl import wf, job, sh, on, checkout

        def workflow():
            return wf(
                "ci",
                job("build", checkout(), sh("Build", "make")),
                on=on(push=["main"]),
            )

    Or use WORKFLOW directly:
        WORKFLOW = wf("ci", job(...), on=on(push=["main"]))

    Lists of jobs (e.g. from matrix(...).jobs(...)) are flattened in place.
    """
    flat: List[Job] = []
    for j in jobs:
        if isinstance(j, list):
            flat.extend(j)
        else:
            flat.append(j)
    return Workflow(name=name, jobs=tuple(flat), triggers=tuple(on or ()), env=env or {})
