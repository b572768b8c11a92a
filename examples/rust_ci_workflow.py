# rust_ci_workflow.py
# The Rust pipeline from rust-ci.yml, written with the Python DSL.
from __future__ import annotations

from parci.dsl import checkout, job, on, sh, wf


def workflow():
    return wf(
        "Rust",
        job(
            "build-and-test",
            checkout(),
            sh("Build", "cargo build --verbose"),
            sh("Run tests", "cargo test --verbose"),
        ),
        job(
            "linting",
            checkout(),
            sh("Lint with clippy", "cargo clippy -- -Dwarnings"),
        ),
        job(
            "dependency-checking",
            checkout(),
            # best effort: the install may fail, the check below may not
            sh("Install cargo dependency check tools", "cargo install --locked cargo-outdated || true"),
            sh("Check dependency state", "cargo outdated --exit-code 1"),
        ),
        on=on(push=["main"], pull_request=["main"]),
        env={"CARGO_TERM_COLOR": "always"},
    )
