# parci_workflow.py
# CI for parci itself: tests and a self-check of the bundled examples.
from __future__ import annotations

from parci.dsl import checkout, job, on, sh, wf


def workflow():
    return wf(
        "parci",
        job(
            "test",
            checkout(),
            sh("Install package", "python -m pip install -e '.[test]'"),
            sh("Run pytest", "python -m pytest -q"),
        ),
        job(
            "examples",
            checkout(),
            sh("Check YAML example", "parci check --workflow examples/rust-ci.yml"),
            sh("Check Python example", "parci check --workflow examples/rust_ci_workflow.py"),
        ),
        # advisory only
        job(
            "type-check",
            sh("Type check", "python -m mypy src/parci --ignore-missing-imports", continue_on_error=True),
        ),
        on=on(push=["main"], pull_request=["main"]),
        env={"PYTHONUNBUFFERED": "1"},
    )
