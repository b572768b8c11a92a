# cli.py
from __future__ import annotations

import json
import os
import subprocess
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from .coordinator import build_context, run_workflow
from .errors import ConfigError, DefinitionError
from .git import changed_files_since, current_branch
from .loader import load_workflow
from .model import EVENT_KINDS, Event, Workflow
from .settings import Settings
from .trigger import should_run
from .ui.console import Console, get_console, set_console

EXIT_SUCCESS = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

WORKFLOW_SUFFIXES = (".py", ".yml", ".yaml")


def find_workflow_files(directory: Path = Path(".")) -> list[Path]:
    """
    Find all workflow files in a directory.

    Returns parci_workflow.* first if present, then any other *_workflow.*
    """
    found: list[Path] = []
    for suffix in WORKFLOW_SUFFIXES:
        default = directory / f"parci_workflow{suffix}"
        if default.exists():
            found.append(default)
    for suffix in WORKFLOW_SUFFIXES:
        for path in sorted(directory.glob(f"*_workflow{suffix}")):
            if path not in found:
                found.append(path)
    return found


def discover_workflow(workflow_arg: str | None) -> Path:
    """
    Discover workflow file from argument or default.

    Raises:
        SystemExit: If workflow cannot be found or multiple workflows exist
    """
    console = get_console()

    if workflow_arg:
        workflow_path = Path(workflow_arg)
        if not workflow_path.exists():
            console.print_error(
                "Workflow file not found",
                f"Could not find workflow file: {workflow_arg}",
                suggestion="Create a workflow file or specify a different path:\n  parci run --workflow ci.yml",
            )
            sys.exit(EXIT_USAGE)
        return workflow_path

    workflow_files = find_workflow_files()

    if len(workflow_files) == 0:
        console.print_error(
            "No workflow file found",
            "Could not find any workflow files.",
            details=["Looked for:", "  parci_workflow.py / .yml / .yaml", "  *_workflow.py / .yml / .yaml"],
            suggestion="Create a workflow file or specify one explicitly:\n  parci run --workflow ci.yml",
        )
        sys.exit(EXIT_USAGE)

    if len(workflow_files) > 1:
        console.print_error(
            "Multiple workflow files found",
            "Found multiple workflow files. Please specify which one to use:",
            details=[str(f) for f in workflow_files],
            suggestion=f"Specify a workflow explicitly:\n  parci run --workflow {workflow_files[0]}",
        )
        sys.exit(EXIT_USAGE)

    return workflow_files[0]


def _load_or_exit(workflow_path: Path) -> Workflow:
    console = get_console()
    try:
        return load_workflow(workflow_path)
    except DefinitionError as e:
        console.print_error(
            "Invalid workflow definition",
            f"Could not load workflow from {workflow_path}",
            details=str(e).splitlines(),
        )
        sys.exit(EXIT_USAGE)


def _settings_or_exit() -> Settings:
    try:
        return Settings.from_env()
    except ConfigError as e:
        get_console().print_error("Invalid configuration", str(e))
        sys.exit(EXIT_USAGE)


def resolve_event(kind: Optional[str], branch: Optional[str], workspace: Path) -> Event:
    """
    Work out which event this run answers to.

    Explicit options win, then host variables, then the workspace's
    checked out branch as a push.
    """
    console = get_console()
    from_env = Event.from_env(os.environ)

    if kind is None and from_env is not None:
        kind = from_env.kind
    kind = kind or "push"

    if branch is None and from_env is not None and from_env.kind == kind:
        branch = from_env.branch
    if branch is None:
        try:
            branch = current_branch(cwd=workspace)
            console.print_debug(f"Using git branch: {branch}")
        except (subprocess.CalledProcessError, FileNotFoundError):
            console.print_error(
                "Could not determine branch",
                "No --branch given and the workspace is not a git checkout.",
                suggestion="Specify the branch explicitly:\n  parci run --branch main",
            )
            sys.exit(EXIT_USAGE)

    return Event(kind=kind, branch=branch)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and full step output)",
)
@click.pass_context
def cli(ctx, debug):
    """parci: run a declarative CI workflow locally, jobs in parallel."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option("--workflow", default=None, help="Workflow file (.py, .yml, .yaml, .json)")
@click.option("--event", "event_kind", type=click.Choice(EVENT_KINDS), default=None, help="Event kind [default: from env, else push]")
@click.option("--branch", default=None, help="Branch (target branch for pull_request) [default: from env or git]")
@click.option("--workspace", default=None, type=click.Path(file_okay=False), help="Checkout directory [default: PARCI_WORKSPACE, GITHUB_WORKSPACE or cwd]")
@click.option("--log-dir", default=None, help="Where step output is captured [default: .parci/logs]")
@click.option("--workers", default=None, type=click.IntRange(min=1), help="Cap on jobs running at once [default: all jobs]")
@click.option("--git-diff/--no-git-diff", default=False, help="Skip jobs whose paths match no changed file")
@click.option("--compare-ref", default="origin/main", show_default=True, help="Git ref to diff against")
@click.option("--report", default=None, type=click.Path(dir_okay=False), help="Write the run result as JSON")
@click.pass_context
def run(ctx, workflow, event_kind, branch, workspace, log_dir, workers, git_diff, compare_ref, report):
    """Run a workflow and exit 0 only if every job succeeded."""
    console = get_console()

    workflow_path = discover_workflow(workflow)
    wf = _load_or_exit(workflow_path)

    try:
        settings = _settings_or_exit()
        if workspace:
            settings = replace(settings, workspace=Path(workspace).resolve())
        if log_dir:
            settings = replace(settings, log_dir=Path(log_dir))
        if workers is not None:
            settings = replace(settings, max_workers=workers)

        event = resolve_event(event_kind, branch, settings.workspace)
        if git_diff:
            event = replace(event, changed_files=tuple(changed_files_since(compare_ref, cwd=settings.workspace)))
            console.print_debug(f"Changed files: {len(event.changed_files)}")

        if not should_run(event, wf):
            console.print_run_skipped(wf.name, event.kind, event.branch)
            sys.exit(EXIT_SUCCESS)

        context = build_context(settings)
        console.print_run_started(
            workflow=wf.name,
            event=event.kind,
            branch=event.branch,
            job_count=len(wf.jobs),
            workspace=str(settings.workspace),
        )
        console.print_debug(f"Run {context.run_id}, logs in {context.log_dir / context.run_id}")

        result = run_workflow(wf, event, context=context, max_workers=settings.max_workers)
        console.print_results(result)

        if report:
            Path(report).write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
            console.print_info(f"Report written to {report}")

        sys.exit(EXIT_SUCCESS if result.ok else EXIT_FAILED)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        console.print_error("Git command failed", str(e), suggestion="Run without --git-diff or check the workspace.")
        sys.exit(EXIT_USAGE)
    except Exception as e:
        console.print_exception(e)
        sys.exit(EXIT_FAILED)


@cli.command()
@click.option("--workflow", default=None, help="Workflow file (.py, .yml, .yaml, .json)")
def check(workflow):
    """Validate a workflow definition without running it."""
    console = get_console()
    workflow_path = discover_workflow(workflow)
    wf = _load_or_exit(workflow_path)

    console.print_info(f"OK: {workflow_path} defines workflow '{wf.name}'")
    for rule in wf.triggers:
        branches = ", ".join(rule.branches) if rule.branches else "any branch"
        console.print_plan_job(f"on {rule.event}", branches)
    for j in wf.jobs:
        console.print_plan_job(j.name, f"{len(j.steps)} step(s), runs-on {j.runs_on}")


@cli.command()
@click.option("--workflow", default=None, help="Workflow file (.py, .yml, .yaml, .json)")
@click.option("--event", "event_kind", type=click.Choice(EVENT_KINDS), default=None)
@click.option("--branch", default=None)
def plan(workflow, event_kind, branch):
    """Show whether an event triggers the workflow and what would run."""
    console = get_console()
    workflow_path = discover_workflow(workflow)
    wf = _load_or_exit(workflow_path)
    event = resolve_event(event_kind, branch, _settings_or_exit().workspace)

    if not should_run(event, wf):
        console.print_run_skipped(wf.name, event.kind, event.branch)
        return

    console.print_header(f"{wf.name}: {event.kind} -> {event.branch}")
    for j in wf.jobs:
        console.print_plan_job(j.name, f"runs-on {j.runs_on}")
        for i, step in enumerate(j.steps):
            policy = " [continue-on-error]" if step.continue_on_error else ""
            console.print_info(f"    {i + 1}. {step.display_name}{policy}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
