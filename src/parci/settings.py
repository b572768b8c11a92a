from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .errors import ConfigError

DEFAULT_LOG_DIR = ".parci/logs"
DEFAULT_SHELL = "bash --noprofile --norc -eo pipefail -c"


@dataclass(frozen=True)
class Settings:
    workspace: Path
    log_dir: Path
    shell: Tuple[str, ...]
    max_workers: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        env = os.environ if environ is None else environ

        # host-provided checkout location
        workspace = env.get("PARCI_WORKSPACE") or env.get("GITHUB_WORKSPACE") or os.getcwd()
        max_workers = _positive_int(env, "PARCI_MAX_WORKERS")

        return cls(
            workspace=Path(workspace).expanduser().resolve(),
            log_dir=Path(env.get("PARCI_LOG_DIR", DEFAULT_LOG_DIR)).expanduser(),
            shell=tuple(shlex.split(env.get("PARCI_SHELL", DEFAULT_SHELL))),
            max_workers=max_workers,
        )


def _positive_int(env: Mapping[str, str], name: str) -> Optional[int]:
    raw = env.get(name)
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a positive integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{name} must be a positive integer, got {raw!r}")
    return value
