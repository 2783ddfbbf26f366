"""String values of metadata field expressions.

A field resolves when it is a string literal, a name bound to a named
constant, or a qualified reference (``versions.V1``, ``AdapterType.MUSIC``)
to a constant in another loaded module or class body. Anything else resolves
to the empty string; callers read that as "field not set".
"""
from __future__ import annotations

import ast
from typing import TYPE_CHECKING, Optional, Set

from .names import canonical, lookup_symbol, qualified_name
from .symbols import Symbol

if TYPE_CHECKING:
    from .loader import CompilationUnit, SourceSet


def resolve_string(expr: ast.AST, unit: "CompilationUnit", source_set: "SourceSet") -> str:
    value = _reference_value(expr, unit, source_set, set())
    return value if isinstance(value, str) else ""


def _reference_value(
    expr: ast.AST, unit: "CompilationUnit", source_set: "SourceSet", seen: Set[Symbol]
) -> Optional[str]:
    if isinstance(expr, ast.Constant):
        return expr.value if isinstance(expr.value, str) else None
    if isinstance(expr, ast.Name):
        symbol = unit.symbol_for(expr)
        if symbol is None:
            return _qualified_value(qualified_name(expr, unit, source_set), source_set, seen)
        return constant_value(symbol, unit, source_set, seen)
    if isinstance(expr, ast.Attribute):
        return _qualified_value(qualified_name(expr, unit, source_set), source_set, seen)
    return None


def _qualified_value(qualname: Optional[str], source_set: "SourceSet", seen: Set[Symbol]) -> Optional[str]:
    if not qualname:
        return None
    found = lookup_symbol(qualname, source_set)
    if found is None:
        return None
    owner, symbol = found
    return constant_value(symbol, owner, source_set, seen)


def constant_value(
    symbol: Symbol,
    unit: "CompilationUnit",
    source_set: "SourceSet",
    seen: Optional[Set[Symbol]] = None,
) -> Optional[str]:
    """Evaluate a named constant: a name bound once, to a string-valued expression."""
    seen = set() if seen is None else seen
    if symbol in seen:
        return None
    binding = symbol.definite_binding()
    if binding is None:
        return None
    seen = seen | {symbol}
    if binding.kind == "import":
        return _qualified_value(canonical(binding.target, source_set), source_set, seen)
    if binding.kind != "assign" or binding.value is None:
        return None
    return _definition_value(binding.value, unit, source_set, seen)


def _definition_value(
    expr: ast.AST, unit: "CompilationUnit", source_set: "SourceSet", seen: Set[Symbol]
) -> Optional[str]:
    # constant definitions may fold string concatenation; field sites may not
    if isinstance(expr, ast.BinOp) and isinstance(expr.op, ast.Add):
        left = _definition_value(expr.left, unit, source_set, seen)
        right = _definition_value(expr.right, unit, source_set, seen)
        if isinstance(left, str) and isinstance(right, str):
            return left + right
        return None
    return _reference_value(expr, unit, source_set, seen)
