from __future__ import annotations

import ast
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, Optional, Sequence

from .constants import METADATA_FIELDS
from .names import matches_target, qualified_name
from .records import MetadataRecord
from .resolver import resolve_string

if TYPE_CHECKING:
    from .loader import CompilationUnit, SourceSet


def iter_preorder(nodes: Iterable[ast.AST]) -> Iterator[ast.AST]:
    """Depth-first, source-order walk (``ast.walk`` is breadth-first)."""
    stack = list(reversed(list(nodes)))
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(ast.iter_child_nodes(current))))


def is_metadata_call(
    node: ast.AST, unit: "CompilationUnit", source_set: "SourceSet", target: str
) -> bool:
    if not isinstance(node, ast.Call):
        return False
    return matches_target(qualified_name(node.func, unit, source_set), target, source_set)


def parse_metadata_call(
    call: ast.Call, unit: "CompilationUnit", source_set: "SourceSet"
) -> Optional[MetadataRecord]:
    values: Dict[str, str] = {}
    for keyword in call.keywords:
        if keyword.arg is None:
            continue
        field_name = METADATA_FIELDS.get(keyword.arg)
        if field_name is None:
            continue
        values[field_name] = resolve_string(keyword.value, unit, source_set)
    if not values.get("id"):
        return None
    return MetadataRecord(**values)


def find_metadata(
    body: Sequence[ast.AST],
    unit: "CompilationUnit",
    source_set: "SourceSet",
    target: str,
) -> Optional[MetadataRecord]:
    """Return the first metadata literal in ``body`` that carries a non-empty id."""
    for node in iter_preorder(body):
        if not is_metadata_call(node, unit, source_set, target):
            continue
        record = parse_metadata_call(node, unit, source_set)
        if record is not None:
            return record
    return None
