"""Tests for running whole workflows."""

from __future__ import annotations

import os
import threading
from dataclasses import replace

import pytest

from parci.actions import ActionRegistry
from parci.coordinator import build_context, run_workflow
from parci.errors import DefinitionError
from parci.loader import load_workflow
from parci.model import Event, Job, JobStatus, RunStatus, Step, StepStatus, TriggerRule, Workflow
from parci.settings import Settings

PUSH_MAIN = Event(kind="push", branch="main")


def _workflow(*jobs: Job, **kwargs) -> Workflow:
    kwargs.setdefault("triggers", (TriggerRule("push", ("main",)), TriggerRule("pull_request", ("main",))))
    return Workflow(name="ci", jobs=jobs, **kwargs)


def _job(name: str, *commands: str) -> Job:
    return Job(name=name, steps=tuple(Step(name=f"{name}-{i}", run=c) for i, c in enumerate(commands)))


def test_trigger_mismatch_launches_nothing(context, monkeypatch):
    def forbidden(*args, **kwargs):
        raise AssertionError("no process may be launched")

    monkeypatch.setattr("parci.executor.subprocess.run", forbidden)
    wf = _workflow(_job("a", "true"), _job("b", "true"))

    assert run_workflow(wf, Event(kind="push", branch="develop"), context=context) is None
    assert not context.log_dir.exists()


def test_all_jobs_succeed(context):
    result = run_workflow(_workflow(_job("a", "true"), _job("b", "true", "true")), PUSH_MAIN, context=context)

    assert result.status is RunStatus.SUCCESS
    assert result.ok
    assert [j.name for j in result.jobs] == ["a", "b"]
    assert result.run_id == "test-run"


def test_failed_job_does_not_cancel_siblings(context):
    wf = _workflow(
        _job("one", "true", "true"),
        _job("two", "exit 1", "true"),
        _job("three", "true", "true"),
    )
    result = run_workflow(wf, PUSH_MAIN, context=context)

    assert result.status is RunStatus.FAILED
    assert result.job("two").status is JobStatus.FAILED
    assert [s.status for s in result.job("two").steps] == [StepStatus.FAILED_FATAL, StepStatus.SKIPPED]
    for name in ("one", "three"):
        job = result.job(name)
        assert job.status is JobStatus.SUCCESS
        assert [s.status for s in job.steps] == [StepStatus.SUCCESS, StepStatus.SUCCESS]


def test_results_follow_declaration_order(context):
    # the first job finishes last
    wf = _workflow(_job("slow", "sleep 0.3"), _job("fast", "true"))
    result = run_workflow(wf, PUSH_MAIN, context=context)
    assert [j.name for j in result.jobs] == ["slow", "fast"]


def test_jobs_run_concurrently(context):
    barrier = threading.Barrier(3, timeout=10)

    def rendezvous(step, env, workspace):
        # only passes if all three jobs are in flight together
        barrier.wait()
        return 0, "met\n"

    registry = ActionRegistry.default()
    registry.register("test/rendezvous", rendezvous)
    ctx = replace(context, actions=registry)
    wf = _workflow(*(Job(name=f"job{i}", steps=(Step(uses="test/rendezvous"),)) for i in range(3)))

    result = run_workflow(wf, PUSH_MAIN, context=ctx)
    assert result.status is RunStatus.SUCCESS


def test_crashing_action_fails_only_its_job(context):
    def explode(step, env, workspace):
        raise RuntimeError("action blew up")

    registry = ActionRegistry.default()
    registry.register("test/explode", explode)
    ctx = replace(context, actions=registry)
    bad = Job(name="bad", steps=(Step(uses="test/explode"), Step(run="true")))
    wf = _workflow(bad, _job("good", "true"))

    result = run_workflow(wf, PUSH_MAIN, context=ctx)
    assert result.job("bad").status is JobStatus.FAILED
    assert [s.status for s in result.job("bad").steps] == [StepStatus.FAILED_FATAL, StepStatus.SKIPPED]
    assert "action blew up" in result.job("bad").steps[0].error
    assert result.job("good").status is JobStatus.SUCCESS
    assert result.status is RunStatus.FAILED


def test_skipped_jobs_do_not_fail_the_run(context):
    docs = Job(name="docs", paths=("docs/**",), steps=(Step(run="exit 1"),))
    wf = _workflow(docs, _job("build", "true"))
    event = Event(kind="push", branch="main", changed_files=("src/lib.rs",))

    result = run_workflow(wf, event, context=context)
    assert result.job("docs").status is JobStatus.SKIPPED
    assert result.status is RunStatus.SUCCESS


def test_rerun_yields_same_shape(context):
    wf = _workflow(
        _job("a", "true", "exit 1", "true"),
        Job(name="b", steps=(Step(run="exit 2", continue_on_error=True), Step(run="echo $RANDOM"))),
    )

    def shape(result):
        return [(j.name, j.status, [(s.status, s.exit_code) for s in j.steps]) for j in result.jobs]

    first = run_workflow(wf, PUSH_MAIN, context=context)
    second = run_workflow(wf, PUSH_MAIN, context=replace(context, run_id="test-run-2"))
    assert shape(first) == shape(second)


def test_workers_cap_still_runs_every_job(context):
    wf = _workflow(_job("a", "true"), _job("b", "true"), _job("c", "true"))
    result = run_workflow(wf, PUSH_MAIN, context=context, max_workers=1)
    assert all(j.status is JobStatus.SUCCESS for j in result.jobs)


def test_duplicate_job_names_rejected_before_running(tmp_path, workspace):
    marker = workspace / "ran"
    path = tmp_path / "dupes.yml"
    path.write_text(
        "on: push\n"
        "jobs:\n"
        f"  a:\n    steps:\n      - run: touch {marker}\n"
        f"  a:\n    steps:\n      - run: touch {marker}\n"
    )
    with pytest.raises(DefinitionError):
        load_workflow(path)
    assert not marker.exists()


def test_build_context_resolves_log_dir_inside_workspace(workspace):
    settings = Settings.from_env({"PARCI_WORKSPACE": str(workspace)})
    ctx = build_context(settings, run_id="r1")
    assert ctx.workspace == workspace.resolve()
    assert ctx.log_dir == workspace.resolve() / ".parci" / "logs"
    assert ctx.run_id == "r1"


def test_rust_example_with_stub_cargo(rust_yaml, context, workspace, tmp_path):
    # a fake cargo: everything passes except `cargo outdated`
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    cargo = bin_dir / "cargo"
    cargo.write_text('#!/bin/sh\nif [ "$1" = "outdated" ]; then echo "outdated deps"; exit 1; fi\nexit 0\n')
    cargo.chmod(0o755)

    wf = load_workflow(rust_yaml)
    wf = replace(wf, env={**wf.env, "PATH": f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}"})

    result = run_workflow(wf, Event(kind="pull_request", branch="main"), context=context)

    assert result.status is RunStatus.FAILED
    assert result.job("build-and-test").status is JobStatus.SUCCESS
    assert result.job("linting").status is JobStatus.SUCCESS
    deps = result.job("dependency-checking")
    assert deps.status is JobStatus.FAILED
    assert [s.status for s in deps.steps] == [
        StepStatus.SUCCESS, StepStatus.SUCCESS, StepStatus.FAILED_FATAL,
    ]


def test_similar_job_names_keep_separate_logs(context):
    wf = _workflow(_job("a b", "echo from-space"), _job("a_b", "echo from-underscore"))
    result = run_workflow(wf, PUSH_MAIN, context=context)

    spaced, underscored = result.job("a b").steps[0], result.job("a_b").steps[0]
    assert spaced.output != underscored.output
    assert spaced.read_output() == "from-space\n"
    assert underscored.read_output() == "from-underscore\n"
