"""Console output formatting utilities for parci."""

from __future__ import annotations

import sys
import threading
from typing import Optional

from ..model import JobResult, JobStatus, RunResult, StepResult, StepStatus

STATUS_LABELS = {
    StepStatus.SUCCESS: "success",
    StepStatus.FAILED_FATAL: "failed",
    StepStatus.FAILED_TOLERATED: "failed (continue-on-error)",
    StepStatus.SKIPPED: "skipped",
}

OUTPUT_TAIL_LINES = 20


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug
        # jobs report from worker threads
        self._lock = threading.Lock()

    def _emit(self, *lines: str, err: bool = False) -> None:
        stream = sys.stderr if err else sys.stdout
        with self._lock:
            for line in lines:
                print(line, file=stream)

    def print_header(self, title: str) -> None:
        """Print a section header."""
        self._emit(f"\n{title}", "-" * len(title))

    def print_run_started(
        self,
        workflow: str,
        event: str,
        branch: str,
        job_count: int,
        workspace: str,
    ) -> None:
        """Print run start information."""
        self._emit(
            "\nRUN STARTED",
            f"Workflow: {workflow}",
            f"Event: {event} -> {branch}",
            f"Workspace: {workspace}",
            f"Jobs: {job_count}",
            "",
        )

    def print_run_skipped(self, workflow: str, event: str, branch: str) -> None:
        """Print a trigger mismatch; nothing was run."""
        self._emit(
            "\nRUN SKIPPED",
            f"Workflow '{workflow}' is not triggered by {event} on '{branch}'",
        )

    def print_job_start(self, name: str, runs_on: str) -> None:
        """Print job start message."""
        self._emit(f"[{name}] JOB STARTED (runs-on: {runs_on})")

    def print_job_skipped(self, name: str, reason: str) -> None:
        """Print job skipped message."""
        self._emit(f"[{name}] JOB SKIPPED ({reason})")

    def print_job_finished(self, result: JobResult) -> None:
        self._emit(f"[{result.name}] JOB {result.status.value.upper()} ({result.duration:.1f}s)")

    def print_step(self, job: str, name: str) -> None:
        """Print step start message."""
        self._emit(f"[{job}] ▶ {name}")

    def print_step_result(self, job: str, result: StepResult) -> None:
        """
        Print a finished step.

        Fatal failures also show the tail of the captured output, and the
        launch error if the command never started.
        """
        label = STATUS_LABELS[result.status]
        lines = [f"[{job}]   {label} (exit={result.exit_code}, {result.duration:.1f}s)"]
        if result.status is StepStatus.FAILED_FATAL:
            if result.error:
                lines.append(f"[{job}]   Error: {result.error}")
            output = result.read_output().rstrip()
            if output:
                tail = output.splitlines()
                if not self.debug:
                    tail = tail[-OUTPUT_TAIL_LINES:]
                lines.extend(f"[{job}]   | {line}" for line in tail)
            if result.output is not None:
                lines.append(f"[{job}]   Log: {result.output}")
        self._emit(*lines)

    def print_plan_job(self, name: str, reason: str) -> None:
        """Print job selection plan."""
        self._emit(f"  {name} ({reason})")

    def print_results(self, result: RunResult) -> None:
        """Print final results summary: every job and its ordered step outcomes."""
        lines = ["", "=" * 40, "RESULTS", "=" * 40]
        for job in result.jobs:
            suffix = f" ({job.skip_reason})" if job.status is JobStatus.SKIPPED and job.skip_reason else ""
            lines.append(f"  {job.name}: {job.status.value.upper()}{suffix}")
            for step in job.steps:
                lines.append(f"    {step.index + 1}. {step.name}: {STATUS_LABELS[step.status]}")
        lines.append("")
        lines.append(f"RUN {result.status.value.upper()} ({result.duration:.1f}s)")
        self._emit(*lines)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        lines = [f"\nERROR: {title}", message]
        if details:
            lines.extend(f"  {detail}" for detail in details)
        if suggestion:
            lines.append(f"\n{suggestion}")
        self._emit(*lines, err=True)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            self._emit(f"Error: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._emit(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._emit(f"[DEBUG] {message}", err=True)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
