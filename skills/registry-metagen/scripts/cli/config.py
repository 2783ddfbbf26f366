from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from metagen import ScanOptions, load_repo_config
from metagen.constants import DEFAULT_OUTPUT


def parse_csv(values: Optional[Sequence[str]]) -> Tuple[str, ...]:
    """Flatten repeatable, comma-separated flag values."""
    parts: List[str] = []
    for value in values or []:
        parts.extend(part.strip() for part in value.split(",") if part.strip())
    return tuple(parts)


def resolve_path(base: Path, value: str) -> Path:
    path = Path(value)
    if path.is_absolute():
        return path
    return (base / path).resolve()


def build_scan_options(
    args: argparse.Namespace, repo: Path, warnings: List[str]
) -> Tuple[ScanOptions, Path, Optional[str]]:
    """Merge defaults, the repo's metagen config file, then CLI flags (highest wins)."""
    config, config_name = load_repo_config(repo, warnings)
    options = ScanOptions()
    overrides: Dict[str, object] = {}
    for key in ("registry_module", "register_function", "metadata_type", "existing_id_policy"):
        if key in config:
            overrides[key] = config[key]
    for key in ("init_functions", "exclude_globs", "source_roots"):
        if key in config:
            overrides[key] = tuple(config[key])  # type: ignore[arg-type]
    if "search_paths" in config:
        overrides["search_paths"] = tuple(
            str(resolve_path(repo, path)) for path in config["search_paths"]  # type: ignore[attr-defined]
        )
    if "include_tests" in config:
        overrides["include_tests"] = bool(config["include_tests"])

    for key in ("registry_module", "register_function", "metadata_type", "existing_id_policy"):
        value = getattr(args, key, None)
        if value:
            overrides[key] = value
    init_functions = parse_csv(getattr(args, "init_function", None))
    if init_functions:
        overrides["init_functions"] = init_functions
    source_roots = parse_csv(getattr(args, "source_root", None))
    if source_roots:
        overrides["source_roots"] = source_roots
    search_paths = parse_csv(getattr(args, "search_path", None))
    if search_paths:
        overrides["search_paths"] = tuple(str(resolve_path(Path.cwd(), path)) for path in search_paths)
    extra_excludes = parse_csv(getattr(args, "exclude", None))
    if extra_excludes:
        base = overrides.get("exclude_globs", options.exclude_globs)
        overrides["exclude_globs"] = tuple(base) + extra_excludes  # type: ignore[arg-type]
    if getattr(args, "include_tests", False):
        overrides["include_tests"] = True

    output_arg = getattr(args, "output", None) or config.get("output") or DEFAULT_OUTPUT
    output = resolve_path(repo, str(output_arg))
    return replace(options, **overrides), output, config_name
