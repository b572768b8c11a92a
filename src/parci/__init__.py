from .dsl import checkout, job, matrix, on, sh, uses, wf
from .coordinator import run_workflow
from .errors import DefinitionError, ParciError
from .loader import load_workflow
from .model import (
    Event,
    Job,
    JobResult,
    JobStatus,
    RunResult,
    RunStatus,
    Step,
    StepResult,
    StepStatus,
    TriggerRule,
    Workflow,
)
from .trigger import should_run

__all__ = [
    "checkout", "job", "matrix", "on", "sh", "uses", "wf",
    "run_workflow", "should_run", "load_workflow",
    "DefinitionError", "ParciError",
    "Event", "Job", "JobResult", "JobStatus", "RunResult", "RunStatus",
    "Step", "StepResult", "StepStatus", "TriggerRule", "Workflow",
]
