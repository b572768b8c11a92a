# loader.py
from __future__ import annotations

import json
import runpy
from collections.abc import Hashable
from pathlib import Path
from typing import Any

import yaml

from .errors import DefinitionError
from .model import Workflow
from .schema import workflow_from_dict

MAPPING_SUFFIXES = (".yml", ".yaml", ".json")


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects duplicate mapping keys instead of keeping the last one."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _value_node in node.value:
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                # SafeLoader reports unhashable keys itself
                continue
            if key in seen:
                raise DefinitionError(
                    f"Duplicate key {key!r} at line {key_node.start_mark.line + 1}"
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def parse_mapping(text: str, *, source: str = "<string>") -> Any:
    """
    Parse YAML into plain Python data.

    YAML 1.1 reads a bare `on:` key as boolean True; it is mapped back
    to "on" so GitHub-style files keep their trigger block.
    """
    try:
        data = yaml.load(text, Loader=_UniqueKeyLoader)
    except yaml.YAMLError as e:
        raise DefinitionError(f"Could not parse {source}: {e}") from e

    if isinstance(data, dict) and True in data and "on" not in data:
        data["on"] = data.pop(True)
    return data


def _unique_pairs(pairs: list[tuple[str, Any]]) -> dict:
    data: dict = {}
    for key, value in pairs:
        if key in data:
            raise DefinitionError(f"Duplicate key {key!r}")
        data[key] = value
    return data


def parse_json(text: str, *, source: str = "<string>") -> Any:
    """Parse JSON, rejecting duplicate object keys like the YAML loader does."""
    try:
        return json.loads(text, object_pairs_hook=_unique_pairs)
    except json.JSONDecodeError as e:
        raise DefinitionError(f"Could not parse {source}: {e}") from e


def load_workflow(path: str | Path) -> Workflow:
    """
    Load a workflow from a file.

    Supported forms:
      - .yml / .yaml / .json: a mapping with name, on, env and jobs
      - .py: a module defining workflow() -> Workflow, or WORKFLOW = Workflow(...)

    A workflow must declare at least one trigger; one that never runs
    would otherwise pass silently as "skipped".

    Raises:
      DefinitionError if the file is missing, unreadable or malformed.
    """
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.exists():
        raise DefinitionError(f"Workflow file not found: {wf_path}")

    if wf_path.suffix in MAPPING_SUFFIXES:
        text = wf_path.read_text(encoding="utf-8")
        if wf_path.suffix == ".json":
            data = parse_json(text, source=wf_path.name)
        else:
            data = parse_mapping(text, source=wf_path.name)
        wf = workflow_from_dict(data, default_name=wf_path.stem)
    elif wf_path.suffix == ".py":
        wf = _load_python_workflow(wf_path)
    else:
        raise DefinitionError(
            f"Unsupported workflow file type: {wf_path.name} "
            f"(expected .py or one of {list(MAPPING_SUFFIXES)})"
        )

    if not wf.triggers:
        raise DefinitionError(
            f"Workflow '{wf.name}' declares no triggers; add an 'on' section (push / pull_request)"
        )
    return wf


def _load_python_workflow(wf_path: Path) -> Workflow:
    module_name = f"parci_workflow_{wf_path.stem}"
    try:
        globals_dict = runpy.run_path(str(wf_path), run_name=module_name)
    except SyntaxError as e:
        raise DefinitionError(f"Could not parse {wf_path.name}: {e}") from e

    wf = None
    if callable(globals_dict.get("workflow")):
        wf = globals_dict["workflow"]()
    elif "WORKFLOW" in globals_dict:
        wf = globals_dict["WORKFLOW"]

    if not isinstance(wf, Workflow):
        raise DefinitionError(
            f"{wf_path.name} must define workflow() -> Workflow or WORKFLOW = wf(...)."
        )
    return wf
