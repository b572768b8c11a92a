"""Shared fixtures for the parci test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from parci.executor import ExecutionContext
from parci.ui.console import Console, set_console

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


@pytest.fixture(autouse=True)
def quiet_console():
    """Fresh non-debug console per test so state never leaks between tests."""
    console = Console(debug=False)
    set_console(console)
    return console


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """An empty directory standing in for the host checkout."""
    ws = tmp_path / "workspace"
    ws.mkdir()
    return ws


@pytest.fixture
def context(workspace: Path, tmp_path: Path) -> ExecutionContext:
    return ExecutionContext(
        workspace=workspace,
        log_dir=tmp_path / "logs",
        run_id="test-run",
    )


@pytest.fixture
def rust_yaml() -> Path:
    return EXAMPLES_DIR / "rust-ci.yml"


@pytest.fixture
def rust_python() -> Path:
    return EXAMPLES_DIR / "rust_ci_workflow.py"
