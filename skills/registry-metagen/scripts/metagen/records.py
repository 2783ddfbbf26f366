from __future__ import annotations

import ast
from dataclasses import dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Union

import yaml

from _fs import write_text

from .constants import SNAPSHOT_KEYS
from .errors import OutputError, SnapshotError

if TYPE_CHECKING:
    from .loader import CompilationUnit
    from .symbols import Scope


@dataclass(frozen=True)
class MetadataRecord:
    id: str
    title: str = ""
    type: str = ""
    version: str = ""
    author: str = ""
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {SNAPSHOT_KEYS[f.name]: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MetadataRecord":
        values: Dict[str, str] = {}
        for name, key in SNAPSHOT_KEYS.items():
            raw = payload.get(key, payload.get(name))
            if raw is None:
                raw = ""
            if not isinstance(raw, (str, int, float)) or isinstance(raw, bool):
                raise SnapshotError(f"field {key!r} must be a string, got {type(raw).__name__}")
            values[name] = str(raw)
        return cls(**values)

    def canonical(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=True, allow_unicode=True)


@dataclass
class RegistrationSite:
    unit: "CompilationUnit"
    entry: str
    scope: "Scope"
    call: ast.Call
    argument: ast.expr


@dataclass
class ResolvedConstructor:
    declaration: Union[ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef]
    unit: "CompilationUnit"

    @property
    def name(self) -> str:
        return self.declaration.name


def sort_records(records: Iterable[MetadataRecord]) -> List[MetadataRecord]:
    return sorted(records, key=lambda record: record.id)


def dump_snapshot(records: Iterable[MetadataRecord]) -> str:
    payload = [record.to_dict() for record in records]
    return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True, default_flow_style=False)


def parse_snapshot(text: str, *, source: str = "<snapshot>") -> List[MetadataRecord]:
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SnapshotError(f"could not parse existing yaml file {source}: {exc}") from exc
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise SnapshotError(f"{source}: expected a list of metadata records, got {type(payload).__name__}")
    records: List[MetadataRecord] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise SnapshotError(f"{source}: entry {index} is not a mapping")
        try:
            records.append(MetadataRecord.from_dict(item))
        except SnapshotError as exc:
            raise SnapshotError(f"{source}: entry {index}: {exc}") from exc
    return records


def load_snapshot(path: Path) -> List[MetadataRecord]:
    """Read a snapshot; a missing file raises FileNotFoundError for the caller to judge."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except (OSError, UnicodeDecodeError) as exc:
        raise SnapshotError(f"could not read existing file {path}: {exc}") from exc
    return parse_snapshot(text, source=str(path))


def save_snapshot(path: Path, records: Iterable[MetadataRecord]) -> Path:
    text = dump_snapshot(records)
    try:
        return write_text(path, text)
    except OSError as exc:
        raise OutputError(f"Error writing output file {path}: {exc}") from exc
