from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .conflicts import check_conflicts
from .console import progress
from .constants import (
    DEFAULT_EXCLUDE_GLOBS,
    DEFAULT_INIT_FUNCTIONS,
    DEFAULT_METADATA_TYPE,
    DEFAULT_REGISTER_FUNCTION,
    DEFAULT_REGISTRY_MODULE,
    DEFAULT_SOURCE_ROOTS,
)
from .discovery import ToolState
from .extractor import find_metadata
from .filters import is_irrelevant_path
from .loader import CompilationUnit, SourceSet, default_search_paths, load_source_set
from .locator import find_registration_sites
from .records import MetadataRecord, save_snapshot, sort_records
from .tracer import find_constructor


@dataclass
class ScanOptions:
    registry_module: str = DEFAULT_REGISTRY_MODULE
    register_function: str = DEFAULT_REGISTER_FUNCTION
    metadata_type: str = DEFAULT_METADATA_TYPE
    init_functions: Tuple[str, ...] = DEFAULT_INIT_FUNCTIONS
    exclude_globs: Tuple[str, ...] = DEFAULT_EXCLUDE_GLOBS
    source_roots: Tuple[str, ...] = DEFAULT_SOURCE_ROOTS
    include_tests: bool = False
    existing_id_policy: str = "warn"
    # None means the running interpreter's site-packages
    search_paths: Optional[Tuple[str, ...]] = None

    def resolved_search_paths(self) -> Sequence[str]:
        if self.search_paths is None:
            return default_search_paths()
        return self.search_paths

    @property
    def metadata_qualname(self) -> str:
        return f"{self.registry_module}.{self.metadata_type}"


@dataclass
class ScanResult:
    records: List[MetadataRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    units_scanned: int = 0
    units_skipped: int = 0


def is_irrelevant_unit(unit: CompilationUnit, options: ScanOptions) -> bool:
    if unit.is_empty:
        return True
    return is_irrelevant_path(
        unit.path,
        exclude_globs=options.exclude_globs,
        include_tests=options.include_tests,
    )


def scan_unit(
    unit: CompilationUnit,
    source_set: SourceSet,
    options: ScanOptions,
    warnings: List[str],
) -> Optional[MetadataRecord]:
    """Locate -> trace -> extract for one module; the first initializer that yields a record wins."""
    for site in find_registration_sites(unit, source_set, options, warnings):
        constructor = find_constructor(site, warnings)
        if constructor is None:
            continue
        record = find_metadata(
            constructor.declaration.body,
            constructor.unit,
            source_set,
            options.metadata_qualname,
        )
        if record is None:
            warnings.append(
                f"{constructor.unit.location(constructor.declaration)}: constructor "
                f"{constructor.name} has no {options.metadata_type} literal with a non-empty id"
            )
            continue
        return record
    return None


def scan_source_set(source_set: SourceSet, options: ScanOptions) -> ScanResult:
    result = ScanResult()
    result.units_skipped += len(source_set.failed)
    for unit in source_set.units:
        if is_irrelevant_unit(unit, options):
            result.units_skipped += 1
            continue
        result.units_scanned += 1
        try:
            record = scan_unit(unit, source_set, options, result.warnings)
        except RecursionError:
            result.warnings.append(f"{unit.path}: expression nesting too deep to trace")
            continue
        if record is None:
            continue
        result.records.append(record)
        progress(f"Found metadata for adapter: {record.id}", done=True)
    result.warnings.extend(source_set.external_failures)
    return result


def run_scan(
    repo: Path,
    options: ScanOptions,
    output: Path,
    *,
    tools: Optional[ToolState] = None,
) -> ScanResult:
    """Scan ``repo`` and write the sorted snapshot to ``output``; nothing is written on failure."""
    load_warnings: List[str] = []
    progress(f"Starting metadata scan in: {repo}")
    source_set = load_source_set(
        repo,
        roots=options.source_roots,
        warnings=load_warnings,
        tools=tools,
        search_paths=options.resolved_search_paths(),
    )
    result = scan_source_set(source_set, options)
    result.warnings[:0] = load_warnings

    check_conflicts(
        result.records,
        output,
        policy=options.existing_id_policy,
        warnings=result.warnings,
    )
    progress("Conflict check passed.", done=True)

    records = sort_records(result.records)
    save_snapshot(output, records)
    result.records = records
    progress(f"Successfully generated metadata for {len(records)} adapters into {output}", done=True)
    return result
