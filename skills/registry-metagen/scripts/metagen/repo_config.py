from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .constants import EXISTING_ID_POLICIES, METAGEN_CONFIG_FILES


def normalize_str_list(value: Any) -> List[str]:
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    if isinstance(value, list):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return []


def load_repo_config(repo: Path, warnings: List[str]) -> Tuple[Dict[str, object], Optional[str]]:
    for filename in METAGEN_CONFIG_FILES:
        path = repo / filename
        if not path.exists():
            continue
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            warnings.append(f"Failed to parse {filename}: {exc}")
            return {}, filename
        if not isinstance(payload, dict):
            warnings.append(f"Invalid {filename}: expected a JSON object")
            return {}, filename

        def as_str(key: str) -> Optional[str]:
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            return None

        config: Dict[str, object] = {}
        for key in ("registry_module", "register_function", "metadata_type", "output"):
            value = as_str(key)
            if value:
                config[key] = value
        for key in ("init_functions", "exclude_globs", "source_roots", "search_paths"):
            if key in payload:
                config[key] = normalize_str_list(payload.get(key))
        if isinstance(payload.get("include_tests"), bool):
            config["include_tests"] = payload["include_tests"]
        policy = as_str("existing_id_policy")
        if policy:
            if policy in EXISTING_ID_POLICIES:
                config["existing_id_policy"] = policy
            else:
                warnings.append(f"Invalid {filename}: unknown existing_id_policy {policy!r}")
        return config, filename
    return {}, None
