from __future__ import annotations

import fnmatch
import posixpath
from pathlib import Path
from typing import Optional, Sequence, Tuple


def match_globs(path: str, globs: Sequence[str]) -> bool:
    if not globs:
        return False
    lower_path = path.lower()
    lower_name = Path(path).name.lower()
    for pattern in globs:
        lowered = pattern.lower()
        if any(token in lowered for token in ("*", "?", "[")):
            if fnmatch.fnmatch(lower_path, lowered) or fnmatch.fnmatch(lower_name, lowered):
                return True
            continue
        if lowered in lower_path or lowered == lower_name:
            return True
    return False


def dotted_suffix_match(value: str, suffix: str) -> bool:
    """True when ``suffix`` names the trailing dotted components of ``value``."""
    if not value or not suffix:
        return False
    return value == suffix or value.endswith(f".{suffix}")


def source_root_for(path: str, roots: Sequence[str]) -> Optional[str]:
    best: Optional[str] = None
    for root in roots:
        normalized = posixpath.normpath(root).strip("/")
        if normalized in ("", "."):
            prefix = ""
        else:
            prefix = f"{normalized}/"
            if not path.startswith(prefix):
                continue
        if best is None or len(prefix) > len(best):
            best = prefix
    return best


def module_name_for_path(path: str, roots: Sequence[str]) -> Tuple[str, bool]:
    """Map ``pkg/sub/mod.py`` to ``("pkg.sub.mod", False)``; packages map to their ``__init__``."""
    prefix = source_root_for(path, roots) or ""
    rel = path[len(prefix) :]
    if rel.endswith(".py"):
        rel = rel[: -len(".py")]
    parts = [part for part in rel.split("/") if part]
    is_package = bool(parts) and parts[-1] == "__init__"
    if is_package:
        parts = parts[:-1]
    return ".".join(parts), is_package


def package_for_module(module: str, is_package: bool) -> str:
    if is_package:
        return module
    return module.rpartition(".")[0]


def absolute_import_name(module: Optional[str], level: int, package: str) -> Optional[str]:
    """Resolve ``from ..x import y`` against the importing module's package."""
    if level <= 0:
        return module or None
    base = package.split(".") if package else []
    drop = level - 1
    if drop > len(base):
        return None
    if drop:
        base = base[:-drop]
    if module:
        base = base + module.split(".")
    return ".".join(base) or None
