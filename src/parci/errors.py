# errors.py
from __future__ import annotations

from dataclasses import dataclass


class ParciError(Exception):
    """Base class for errors raised by parci."""


class DefinitionError(ParciError):
    """
    The workflow definition is malformed.

    Raised while loading or constructing a workflow, always before any job
    starts, so a bad definition never produces a partial run.
    """


@dataclass
class StepLaunchFailure(ParciError):
    """
    A step's command or action could not be started at all.

    Only raised inside the step executor, which folds it into a failed
    StepResult; it never escapes a job.
    """
    step: str
    message: str

    def __str__(self) -> str:
        return f"step '{self.step}' could not be launched: {self.message}"


class ConfigError(ParciError):
    """A setting read from the environment has an invalid value."""
