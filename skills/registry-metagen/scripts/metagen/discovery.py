"""Find the Python sources of a repo.

``fd`` and ``rg`` list big trees much faster than Python can walk them;
when neither is installed (or both fail) an ``os.walk`` over the repo gives
the same list.
"""
from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set

from .console import progress
from .constants import EXCLUDE_DIRS, FD_EXCLUDES, RG_EXCLUDES


@dataclass
class ToolState:
    """External listers that turned out to be missing, so a process asks only once."""

    missing: Set[str] = field(default_factory=set)


def fd_command() -> List[str]:
    cmd = ["fd", "--type", "f", "--hidden", "--no-ignore-vcs", "--extension", "py"]
    for name in FD_EXCLUDES:
        cmd.extend(["--exclude", name])
    return cmd


def rg_command() -> List[str]:
    cmd = ["rg", "--files", "--hidden", "--no-ignore-vcs", "-g", "*.py"]
    for glob in RG_EXCLUDES:
        cmd.extend(["-g", glob])
    return cmd


def in_excluded_dir(path: str) -> bool:
    parts = Path(path).parts[:-1]
    return any(part in EXCLUDE_DIRS or part.endswith(".egg-info") for part in parts)


def run_lister(
    cmd: Sequence[str], repo: Path, warnings: List[str], tools: ToolState
) -> Optional[List[str]]:
    """Output lines of an external file lister, or None when the next lister should be tried."""
    tool = cmd[0]
    if tool in tools.missing:
        return None
    try:
        result = subprocess.run(
            list(cmd),
            cwd=str(repo),
            check=False,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError:
        tools.missing.add(tool)
        return None
    except OSError as exc:
        warnings.append(f"could not run {tool} to list sources ({exc})")
        return None
    if result.returncode != 0:
        detail = result.stderr.strip().splitlines()[:1]
        suffix = f": {detail[0]}" if detail else ""
        warnings.append(f"{tool} exited with status {result.returncode} while listing sources{suffix}")
        return None
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def list_repo_files(repo: Path, warnings: List[str], tools: ToolState) -> List[str]:
    progress("Discovering Python sources...")
    for cmd in (fd_command(), rg_command()):
        lines = run_lister(cmd, repo, warnings, tools)
        if lines is None:
            continue
        files = [path for path in python_files(lines) if not in_excluded_dir(path)]
        progress(f"Found {len(files)} Python sources with {cmd[0]}", done=True)
        return files
    return list_repo_files_fallback(repo)


def list_repo_files_fallback(repo: Path) -> List[str]:
    files: List[str] = []
    for root, dirs, filenames in os.walk(repo):
        dirs[:] = sorted(d for d in dirs if d not in EXCLUDE_DIRS and not d.endswith(".egg-info"))
        for filename in filenames:
            if not filename.endswith(".py"):
                continue
            full = Path(root) / filename
            # a symlinked module would be scanned twice
            if full.is_symlink():
                continue
            files.append(full.relative_to(repo).as_posix())
    progress(f"Found {len(files)} Python sources (directory walk)", done=True)
    return sorted(files)


def python_files(files: Iterable[str]) -> List[str]:
    results = set()
    for path in files:
        path = path.replace("\\", "/")
        if path.startswith("./"):
            path = path[2:]
        if path.endswith(".py"):
            results.add(path)
    return sorted(results)
