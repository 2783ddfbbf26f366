"""Change report between two published metadata snapshots."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from _fs import write_json
from metagen.console import progress
from metagen.errors import ConfigError, OutputError
from metagen.records import MetadataRecord, load_snapshot


@dataclass(frozen=True)
class UpdateEntry:
    before: MetadataRecord
    after: MetadataRecord

    def to_dict(self) -> Dict[str, object]:
        return {"before": self.before.to_dict(), "after": self.after.to_dict()}


@dataclass
class ChangeReport:
    added: List[MetadataRecord] = field(default_factory=list)
    removed: List[MetadataRecord] = field(default_factory=list)
    updated: List[UpdateEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "added": [record.to_dict() for record in self.added],
            "removed": [record.to_dict() for record in self.removed],
            "updated": [entry.to_dict() for entry in self.updated],
        }

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.updated)


def index_by_id(records: Iterable[MetadataRecord]) -> Dict[str, MetadataRecord]:
    # a repeated id collapses onto the later record
    return {record.id: record for record in records}


def compare_metadata(
    old_records: Iterable[MetadataRecord], new_records: Iterable[MetadataRecord]
) -> ChangeReport:
    old_map = index_by_id(old_records)
    new_map = index_by_id(new_records)

    report = ChangeReport()
    report.added = [new_map[key] for key in sorted(set(new_map) - set(old_map))]
    report.removed = [old_map[key] for key in sorted(set(old_map) - set(new_map))]
    for key in sorted(set(old_map) & set(new_map)):
        before, after = old_map[key], new_map[key]
        if before.canonical() != after.canonical():
            report.updated.append(UpdateEntry(before=before, after=after))
    return report


def load_old_snapshot(path: Path) -> List[MetadataRecord]:
    try:
        return load_snapshot(path)
    except FileNotFoundError:
        progress(f"Old metadata file '{path}' not found. Assuming all new adapters are 'Added'.")
        return []


def load_new_snapshot(path: Path) -> List[MetadataRecord]:
    try:
        return load_snapshot(path)
    except FileNotFoundError as exc:
        raise ConfigError(f"Error reading new metadata file: {path} does not exist") from exc


def run_diff(old_path: Path, new_path: Path, output: Path) -> ChangeReport:
    old_records = load_old_snapshot(old_path)
    new_records = load_new_snapshot(new_path)
    report = compare_metadata(old_records, new_records)
    try:
        write_json(output, report.to_dict())
    except OSError as exc:
        raise OutputError(f"Error writing output report file {output}: {exc}") from exc
    progress(f"Successfully generated change report to {output}", done=True)
    return report
