# git.py
# Small, focused wrapper around the Git CLI.
# All Git interactions live here so the rest of the codebase never needs to
# call subprocess("git ...") directly.

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional


def _git(args: list[str], cwd: Optional[Path] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    Raises subprocess.CalledProcessError on a non-zero exit and
    FileNotFoundError if git is not installed.
    """
    out = subprocess.check_output(
        ["git", *args],
        cwd=str(cwd) if cwd else None,
        text=True,
        stderr=subprocess.DEVNULL,
    )
    return out.strip()


def _lines(out: str) -> List[str]:
    return out.splitlines() if out else []


def current_branch(cwd: Optional[Path] = None) -> str:
    """
    Return the checked out branch name.

    On a detached HEAD this returns "HEAD", which matches no branch pattern
    other than a wildcard.
    """
    return _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)


def merge_base(with_ref: str = "origin/main", cwd: Optional[Path] = None) -> str:
    """Return the merge-base (common ancestor) between HEAD and another ref."""
    return _git(["merge-base", "HEAD", with_ref], cwd=cwd)


def changed_files(base: str, head: str = "HEAD", cwd: Optional[Path] = None) -> List[str]:
    """Return files changed between two refs, relative to the repository root."""
    return _lines(_git(["diff", "--name-only", f"{base}..{head}"], cwd=cwd))


def working_tree_changes(cwd: Optional[Path] = None) -> List[str]:
    """Staged, unstaged and untracked files not yet committed."""
    files = set(_lines(_git(["diff", "--name-only", "HEAD"], cwd=cwd)))
    files.update(_lines(_git(["ls-files", "--others", "--exclude-standard"], cwd=cwd)))
    return sorted(files)


def changed_files_since(compare_ref: str = "origin/main", cwd: Optional[Path] = None) -> List[str]:
    """
    Files changed on this branch relative to `compare_ref`, plus any
    uncommitted changes.

    Falls back to HEAD~1 if the merge-base can't be found (no remote,
    shallow clone) and to every tracked file on a first commit.
    """
    try:
        base = merge_base(compare_ref, cwd=cwd)
    except subprocess.CalledProcessError:
        base = "HEAD~1"

    try:
        committed = changed_files(base, "HEAD", cwd=cwd)
    except subprocess.CalledProcessError:
        committed = _lines(_git(["ls-files"], cwd=cwd))

    return sorted(set(committed) | set(working_tree_changes(cwd=cwd)))
