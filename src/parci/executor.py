# executor.py
from __future__ import annotations

import hashlib
import os
import re
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from .actions import ActionRegistry
from .errors import StepLaunchFailure
from .model import Step, StepResult, StepStatus
from .settings import DEFAULT_SHELL

# Shell convention for "command not found"; used for every launch failure.
LAUNCH_FAILURE_EXIT_CODE = 127


@dataclass(frozen=True)
class ExecutionContext:
    """Everything a step needs besides its own definition and env."""
    workspace: Path
    log_dir: Path
    run_id: str
    shell: Tuple[str, ...] = tuple(DEFAULT_SHELL.split())
    actions: ActionRegistry = field(default_factory=ActionRegistry.default)
    inherit_host_env: bool = True

    def step_log(self, job_name: str, index: int, step: Step) -> Path:
        slug = re.sub(r"[^A-Za-z0-9._-]+", "-", step.display_name).strip("-").lower() or "step"
        return self.log_dir / self.run_id / job_dir(job_name) / f"{index + 1:02d}-{slug[:60]}.log"


def job_dir(name: str) -> str:
    """
    Directory name for a job's logs.

    Sanitized names can collide ("a b" vs "a_b"), so a digest of the real
    name keeps every job in its own directory. The suffix also keeps names
    like ".." from resolving outside the run directory.
    """
    readable = re.sub(r"[^A-Za-z0-9._-]+", "_", name)[:40]
    digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:10]
    return f"{readable}-{digest}"


def merge_env(*layers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Merge env mappings left to right; later layers win on conflict."""
    merged: Dict[str, str] = {}
    for layer in layers:
        merged.update(layer or {})
    return merged


def _process_env(env: Mapping[str, str], context: ExecutionContext, job_name: str) -> Dict[str, str]:
    base = os.environ.copy() if context.inherit_host_env else {}
    base.update({
        "CI": "true",
        "PARCI_WORKSPACE": str(context.workspace),
        "PARCI_JOB": job_name,
        "PARCI_RUN_ID": context.run_id,
    })
    # declared env wins over host and defaults
    base.update(env)
    return base


def _run_command(step: Step, env: Dict[str, str], context: ExecutionContext, log_path: Path) -> int:
    if not context.workspace.is_dir():
        raise StepLaunchFailure(step=step.display_name, message=f"workspace not found: {context.workspace}")

    with log_path.open("wb") as log:
        try:
            proc = subprocess.run(
                [*context.shell, step.run],
                cwd=str(context.workspace),
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=subprocess.STDOUT,
            )
        except (OSError, ValueError) as e:
            # missing shell binary, bad cwd, invalid env
            raise StepLaunchFailure(step=step.display_name, message=str(e)) from e
    return proc.returncode


def _run_action(step: Step, env: Dict[str, str], context: ExecutionContext, log_path: Path) -> int:
    action = context.actions.resolve(step)
    # action inputs are visible the way runners expose them
    inputs = {f"INPUT_{k.upper().replace('-', '_')}": v for k, v in step.with_.items()}
    exit_code, output = action(step, merge_env(env, inputs), context.workspace)
    log_path.write_text(output, encoding="utf-8")
    return exit_code


def _append_log(log_path: Path, text: str) -> None:
    try:
        with log_path.open("a", encoding="utf-8") as log:
            log.write(text)
    except OSError:
        # the failure is still recorded in StepResult.error
        pass


def derive_status(exit_code: int, step: Step) -> StepStatus:
    """Exit 0 is success; anything else is fatal unless the step tolerates failure."""
    if exit_code == 0:
        return StepStatus.SUCCESS
    if step.continue_on_error:
        return StepStatus.FAILED_TOLERATED
    return StepStatus.FAILED_FATAL


def run_step(
    step: Step,
    env: Mapping[str, str],
    context: ExecutionContext,
    *,
    job_name: str,
    index: int,
) -> StepResult:
    """
    Run one step with its effective environment and capture its outcome.

    `env` is the declared environment already merged down to this step
    (workflow, then job, then step). Output goes to a per-step log file whose
    path is returned as the output handle. A step that cannot be launched is
    reported as exit code 127 and goes through the same status derivation
    as any other non-zero exit. That includes an action raising, or the log
    file not being writable.
    """
    log_path = context.step_log(job_name, index, step)
    proc_env = _process_env(env, context, job_name)

    start = time.monotonic()
    error: Optional[str] = None
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        if step.uses is not None:
            exit_code = _run_action(step, proc_env, context, log_path)
        else:
            exit_code = _run_command(step, proc_env, context, log_path)
    except StepLaunchFailure as e:
        exit_code = LAUNCH_FAILURE_EXIT_CODE
        error = e.message
        _append_log(log_path, f"{e}\n")
    except Exception as e:
        exit_code = LAUNCH_FAILURE_EXIT_CODE
        error = f"{type(e).__name__}: {e}"
        _append_log(log_path, f"step '{step.display_name}' crashed: {error}\n")

    return StepResult(
        index=index,
        name=step.display_name,
        status=derive_status(exit_code, step),
        exit_code=exit_code,
        output=log_path,
        duration=time.monotonic() - start,
        error=error,
    )
