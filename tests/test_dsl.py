"""Tests for the Python workflow DSL."""

from __future__ import annotations

import pytest

from parci.dsl import checkout, job, matrix, on, sh, uses, wf
from parci.errors import DefinitionError
from parci.model import TriggerRule


def test_job_collects_positional_and_listed_steps():
    j = job("build", sh("one", "true"), steps_list=[sh("zero", "true")])
    assert [s.name for s in j.steps] == ["zero", "one"]


def test_job_without_steps_is_rejected():
    with pytest.raises(DefinitionError):
        job("empty")


def test_uses_and_checkout():
    assert checkout().uses == "actions/checkout@v3"
    step = uses("acme/deploy@v1", name="Deploy", with_={"env": "prod"})
    assert step.run is None
    assert dict(step.with_) == {"env": "prod"}


def test_on_builds_rules():
    assert on(push=["main"]) == [TriggerRule("push", ("main",))]
    assert on(push=[], pull_request=["main"]) == [
        TriggerRule("push", ()),
        TriggerRule("pull_request", ("main",)),
    ]
    assert on() == []


def test_matrix_jobs_are_flattened_into_workflow():
    jobs = matrix("toolchain", ["stable", "nightly"]).jobs(
        lambda v: job(f"test-{v}", sh("Test", f"cargo +{v} test"))
    )
    w = wf("ci", job("lint", sh("Lint", "true")), jobs, on=on(push=["main"]))
    assert [j.name for j in w.jobs] == ["lint", "test-stable", "test-nightly"]


def test_wf_rejects_duplicate_names():
    with pytest.raises(DefinitionError, match="Duplicate"):
        wf("ci", job("a", sh("A", "true")), job("a", sh("A", "true")))


def test_sh_continue_on_error():
    assert sh("maybe", "exit 1", continue_on_error=True).continue_on_error


def test_matrix_value_is_exported_to_job_env():
    jobs = matrix("toolchain", ["stable", "nightly"]).jobs(
        lambda v: job(f"test-{v}", sh("Test", "cargo +$MATRIX_TOOLCHAIN test"), env={"CI": "1"})
    )
    assert dict(jobs[0].env) == {"CI": "1", "MATRIX_TOOLCHAIN": "stable"}
    assert jobs[1].env["MATRIX_TOOLCHAIN"] == "nightly"
