from __future__ import annotations

from .console import progress
from .constants import (
    DEFAULT_OUTPUT,
    DEFAULT_REPORT,
    EXCLUDE_DIRS,
    EXISTING_ID_POLICIES,
    METADATA_FIELDS,
    METAGEN_CONFIG_FILES,
    SNAPSHOT_KEYS,
)
from .discovery import ToolState, list_repo_files, list_repo_files_fallback, python_files
from .errors import (
    ConfigError,
    ConflictError,
    DuplicateIdError,
    MetagenError,
    OutputError,
    SnapshotError,
)
from .filters import is_irrelevant_path, is_test_path
from .imports import (
    absolute_import_name,
    dotted_suffix_match,
    match_globs,
    module_name_for_path,
)
from .loader import (
    CompilationUnit,
    SourceSet,
    build_unit,
    default_search_paths,
    load_source_set,
    parse_unit,
)
from .names import canonical, lookup_symbol, matches_target, qualified_name
from .records import (
    MetadataRecord,
    RegistrationSite,
    ResolvedConstructor,
    dump_snapshot,
    load_snapshot,
    parse_snapshot,
    save_snapshot,
    sort_records,
)
from .repo_config import load_repo_config
from .resolver import constant_value, resolve_string
from .extractor import find_metadata, iter_preorder, parse_metadata_call
from .locator import find_registration_sites, initializer_entries, iter_executed
from .tracer import find_constructor
from .conflicts import check_conflicts, check_duplicate_ids
from .core import (
    ScanOptions,
    ScanResult,
    is_irrelevant_unit,
    run_scan,
    scan_source_set,
    scan_unit,
)
