from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Set

from .console import progress
from .constants import EXISTING_ID_POLICIES
from .errors import ConfigError, ConflictError, DuplicateIdError
from .records import MetadataRecord, load_snapshot


def check_duplicate_ids(records: Iterable[MetadataRecord]) -> None:
    seen: Set[str] = set()
    for record in records:
        if record.id in seen:
            raise DuplicateIdError(record.id)
        seen.add(record.id)


def check_conflicts(
    records: List[MetadataRecord],
    existing_path: Path,
    *,
    policy: str = "warn",
    warnings: List[str],
) -> None:
    """Validate freshly scanned records against themselves and the published snapshot.

    Ids repeated within the scan are always fatal. Ids already published are
    expected (the snapshot is regenerated in place); one whose Author changed
    means another adapter claimed a published id and is handled per ``policy``.
    """
    if policy not in EXISTING_ID_POLICIES:
        raise ConfigError(f"unknown existing-id policy {policy!r}; expected one of {', '.join(EXISTING_ID_POLICIES)}")
    check_duplicate_ids(records)

    try:
        existing = load_snapshot(existing_path)
    except FileNotFoundError:
        progress(f"No existing {existing_path.name} file found, skipping conflict check.", done=True)
        return

    published: Dict[str, MetadataRecord] = {record.id: record for record in existing}
    for record in records:
        previous = published.get(record.id)
        if previous is None or previous.author == record.author:
            continue
        message = (
            f"adapter Id '{record.id}' is already published by author "
            f"'{previous.author}' but is now claimed by '{record.author}'"
        )
        if policy == "error":
            raise ConflictError(message)
        if policy == "warn":
            warnings.append(message)
