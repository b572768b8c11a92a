# schema.py
# Validation schema for mapping-shaped workflow files (YAML / JSON).
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import DefinitionError
from .model import Job, Step, TriggerRule, Workflow

Scalar = Union[str, int, float, bool]


def _env_value(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _env(values: Dict[str, Scalar]) -> Dict[str, str]:
    return {k: _env_value(v) for k, v in values.items()}


class StepSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    run: Optional[str] = None
    uses: Optional[str] = None
    continue_on_error: bool = Field(default=False, alias="continue-on-error")
    env: Dict[str, Scalar] = Field(default_factory=dict)
    with_: Dict[str, Scalar] = Field(default_factory=dict, alias="with")

    def to_step(self) -> Step:
        return Step(
            name=self.name,
            run=self.run,
            uses=self.uses,
            continue_on_error=self.continue_on_error,
            env=_env(self.env),
            with_=_env(self.with_),
        )


class JobSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    runs_on: Union[str, List[str]] = Field(default="ubuntu-latest", alias="runs-on")
    steps: List[StepSpec] = Field(default_factory=list)
    env: Dict[str, Scalar] = Field(default_factory=dict)
    paths: Optional[List[str]] = None

    def to_job(self, name: str) -> Job:
        runs_on = self.runs_on if isinstance(self.runs_on, str) else ",".join(self.runs_on)
        return Job(
            name=name,
            steps=tuple(s.to_step() for s in self.steps),
            runs_on=runs_on,
            env=_env(self.env),
            paths=tuple(self.paths) if self.paths is not None else None,
        )


class TriggerSpec(BaseModel):
    # unsupported filters (branches-ignore, tags, paths) are errors
    model_config = ConfigDict(extra="forbid")

    branches: List[str] = Field(default_factory=list)


class WorkflowSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    on: Union[str, List[str], Dict[str, Optional[TriggerSpec]]] = Field(default_factory=dict)
    env: Dict[str, Scalar] = Field(default_factory=dict)
    jobs: Dict[str, JobSpec] = Field(default_factory=dict)

    def triggers(self) -> List[TriggerRule]:
        if isinstance(self.on, str):
            return [TriggerRule(event=self.on)]
        if isinstance(self.on, list):
            return [TriggerRule(event=kind) for kind in self.on]
        return [
            TriggerRule(event=kind, branches=tuple(spec.branches) if spec else ())
            for kind, spec in self.on.items()
        ]

    def to_workflow(self, default_name: str) -> Workflow:
        return Workflow(
            name=self.name or default_name,
            jobs=tuple(spec.to_job(name) for name, spec in self.jobs.items()),
            triggers=tuple(self.triggers()),
            env=_env(self.env),
        )


def _format_errors(exc: ValidationError) -> str:
    lines = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        lines.append(f"{loc}: {err['msg']}")
    return "\n".join(lines)


def workflow_from_dict(data: Any, *, default_name: str = "workflow") -> Workflow:
    """
    Validate a mapping-shaped definition and build a Workflow.

    Raises DefinitionError for any structural problem.
    """
    if not isinstance(data, dict):
        raise DefinitionError(f"Workflow definition must be a mapping, got {type(data).__name__}")
    try:
        spec = WorkflowSpec.model_validate(data)
    except ValidationError as e:
        raise DefinitionError(f"Invalid workflow definition:\n{_format_errors(e)}") from e
    return spec.to_workflow(default_name)
