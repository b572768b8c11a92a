# job.py
from __future__ import annotations

import time
from fnmatch import fnmatch
from typing import List, Mapping, Optional, Sequence

from .executor import ExecutionContext, merge_env, run_step
from .model import Job, JobResult, JobStatus, StepResult, StepStatus
from .ui.console import get_console


def _matches_any(path: str, patterns: Sequence[str]) -> bool:
    return any(fnmatch(path, p) for p in patterns)


def select_job(job: Job, changed_files: Optional[Sequence[str]]) -> Optional[str]:
    """
    Decide whether a job's path filter excludes it.

    Returns a skip reason, or None if the job should run. Jobs without
    `paths`, and events without a changed-file list, always run.
    """
    if not job.paths or changed_files is None:
        return None
    if any(_matches_any(f, job.paths) for f in changed_files):
        return None
    return f"no changed files match {list(job.paths)}"


def run_job(
    job: Job,
    workflow_env: Mapping[str, str],
    context: ExecutionContext,
    *,
    changed_files: Optional[Sequence[str]] = None,
) -> JobResult:
    """
    Run a job's steps in order, one at a time.

    A FAILED_FATAL step stops the job: every later step is recorded as
    SKIPPED without being launched and the job is FAILED. Tolerated
    failures do not fail the job.
    """
    console = get_console()

    skip_reason = select_job(job, changed_files)
    if skip_reason is not None:
        console.print_job_skipped(job.name, skip_reason)
        return JobResult(name=job.name, status=JobStatus.SKIPPED, skip_reason=skip_reason)

    console.print_job_start(job.name, job.runs_on)
    start = time.monotonic()
    job_env = merge_env(workflow_env, job.env)

    results: List[StepResult] = []
    aborted = False
    for index, step in enumerate(job.steps):
        if aborted:
            results.append(StepResult(index=index, name=step.display_name, status=StepStatus.SKIPPED))
            continue

        console.print_step(job.name, step.display_name)
        result = run_step(step, merge_env(job_env, step.env), context, job_name=job.name, index=index)
        console.print_step_result(job.name, result)
        results.append(result)

        if result.status is StepStatus.FAILED_FATAL:
            aborted = True

    job_result = JobResult(
        name=job.name,
        status=JobStatus.FAILED if aborted else JobStatus.SUCCESS,
        steps=tuple(results),
        duration=time.monotonic() - start,
    )
    console.print_job_finished(job_result)
    return job_result
