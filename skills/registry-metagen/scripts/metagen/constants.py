from __future__ import annotations

from typing import Dict, Tuple

EXCLUDE_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "env",
    ".tox",
    ".nox",
    ".mypy_cache",
    ".pytest_cache",
    ".ruff_cache",
    "__pycache__",
    "node_modules",
    "build",
    "dist",
    "site-packages",
}

FD_EXCLUDES = sorted(EXCLUDE_DIRS)
RG_EXCLUDES = [f"!**/{name}/**" for name in sorted(EXCLUDE_DIRS)]

METAGEN_CONFIG_FILES = (".metagen.json", "metagen.json")

DEFAULT_OUTPUT = "adapters.yaml"
DEFAULT_REPORT = "changes.json"

DEFAULT_REGISTRY_MODULE = "meloshub.adapter"
DEFAULT_REGISTER_FUNCTION = "register"
DEFAULT_METADATA_TYPE = "Metadata"
DEFAULT_INIT_FUNCTIONS: Tuple[str, ...] = ("init",)
DEFAULT_SOURCE_ROOTS: Tuple[str, ...] = ("src", ".")
DEFAULT_EXCLUDE_GLOBS: Tuple[str, ...] = ("tools/*", "*/tools/*")

EXISTING_ID_POLICIES = ("warn", "error", "ignore")

# keyword argument -> record field
METADATA_FIELDS: Dict[str, str] = {
    "id": "id",
    "title": "title",
    "type": "type",
    "kind": "type",
    "version": "version",
    "author": "author",
    "description": "description",
}

# record field -> serialized key
SNAPSHOT_KEYS: Dict[str, str] = {
    "id": "Id",
    "title": "Title",
    "type": "Type",
    "version": "Version",
    "author": "Author",
    "description": "Description",
}
