# coordinator.py
from __future__ import annotations

import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Optional

from .actions import ActionRegistry
from .executor import ExecutionContext
from .job import run_job
from .model import Event, Job, JobResult, JobStatus, RunResult, Workflow
from .settings import Settings
from .trigger import should_run
from .ui.console import get_console


def new_run_id() -> str:
    return time.strftime("%Y%m%d-%H%M%S") + "-" + uuid.uuid4().hex[:8]


def build_context(
    settings: Settings,
    *,
    run_id: Optional[str] = None,
    actions: Optional[ActionRegistry] = None,
) -> ExecutionContext:
    log_dir = settings.log_dir
    if not log_dir.is_absolute():
        log_dir = settings.workspace / log_dir
    return ExecutionContext(
        workspace=settings.workspace,
        log_dir=Path(log_dir),
        run_id=run_id or new_run_id(),
        shell=settings.shell,
        actions=actions or ActionRegistry.default(),
    )


def _run_job_safely(job: Job, workflow: Workflow, event: Event, context: ExecutionContext) -> JobResult:
    try:
        return run_job(job, workflow.env, context, changed_files=event.changed_files)
    except Exception as e:
        # a crash in one job must not take its siblings down
        console = get_console()
        console.print_error(f"Job '{job.name}' crashed", str(e))
        return JobResult(name=job.name, status=JobStatus.FAILED)


def run_workflow(
    workflow: Workflow,
    event: Event,
    *,
    context: Optional[ExecutionContext] = None,
    max_workers: Optional[int] = None,
) -> Optional[RunResult]:
    """
    Run every job of `workflow` concurrently and reduce to one RunResult.

    Returns None (and launches nothing) when the event does not trigger the
    workflow. Jobs never cancel each other: a failed job only fails the run
    once all siblings have reported.
    """
    if not should_run(event, workflow):
        return None

    if context is None:
        context = build_context(Settings.from_env())

    start = time.monotonic()
    results: Dict[str, JobResult] = {}

    # one worker per job unless capped
    workers = len(workflow.jobs) if max_workers is None else max(1, max_workers)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="parci-job") as pool:
        futures = {
            pool.submit(_run_job_safely, job, workflow, event, context): job.name
            for job in workflow.jobs
        }
        for future in as_completed(futures):
            results[futures[future]] = future.result()

    return RunResult(
        run_id=context.run_id,
        workflow=workflow.name,
        event=event,
        jobs=tuple(results[job.name] for job in workflow.jobs),
        duration=time.monotonic() - start,
    )
