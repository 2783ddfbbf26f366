from __future__ import annotations

from pathlib import Path
from typing import Sequence

from .imports import match_globs


def is_test_path(path: str) -> bool:
    lower = path.lower()
    name = Path(path).name.lower()
    if "/test/" in lower or lower.startswith("test/") or "/tests/" in lower or lower.startswith("tests/"):
        return True
    if name.startswith("test_") or name.endswith("_test.py") or name == "conftest.py":
        return True
    return False


def is_irrelevant_path(
    path: str,
    *,
    exclude_globs: Sequence[str],
    include_tests: bool,
) -> bool:
    if match_globs(path, exclude_globs):
        return True
    if not include_tests and is_test_path(path):
        return True
    return False
