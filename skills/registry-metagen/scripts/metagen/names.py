"""Qualified-name resolution across the loaded source set.

``qualified_name`` answers "which declared entity does this expression
denote", following import bindings, simple aliases (``Meta = adapter.Metadata``)
and re-exports in loaded modules. Modules outside the source set keep the
name the import spelled out, which is all the identity they have.
"""
from __future__ import annotations

import ast
from typing import TYPE_CHECKING, Optional, Set, Tuple

from .imports import dotted_suffix_match
from .symbols import Symbol

if TYPE_CHECKING:
    from .loader import CompilationUnit, SourceSet


def scope_qualname(symbol: Symbol, unit: "CompilationUnit") -> str:
    scope = symbol.scope
    parts = [symbol.name]
    while scope.parent is not None:
        parts.append(scope.name)
        scope = scope.parent
    parts.append(unit.module)
    return ".".join(part for part in reversed(parts) if part)


def canonical(qualname: str, source_set: "SourceSet", seen: Optional[Set[str]] = None) -> str:
    """Follow re-exports until ``qualname`` names its defining module."""
    seen = set() if seen is None else seen
    while qualname not in seen:
        seen.add(qualname)
        found = source_set.split_qualname(qualname)
        if found is None:
            return qualname
        unit, rest = found
        if not rest:
            return qualname
        symbol = unit.scope.symbols.get(rest[0])
        if symbol is None:
            star_target = _star_import_target(unit, rest[0], source_set)
            if star_target is None:
                return qualname
            qualname = ".".join([star_target] + rest[1:])
            continue
        binding = symbol.definite_binding()
        if binding is None or binding.kind != "import":
            return qualname
        qualname = ".".join([binding.target] + rest[1:])
    return qualname


def _star_import_target(unit: "CompilationUnit", name: str, source_set: "SourceSet") -> Optional[str]:
    for module in unit.scope.star_imports:
        origin = source_set.unit_for_module(module)
        if origin is not None and name in origin.scope.symbols and not name.startswith("_"):
            return f"{module}.{name}"
    return None


def symbol_qualname(
    symbol: Symbol,
    unit: "CompilationUnit",
    source_set: "SourceSet",
    seen: Optional[Set[Symbol]] = None,
) -> Optional[str]:
    binding = symbol.definite_binding()
    if binding is None:
        return None
    if binding.kind == "import":
        return canonical(binding.target, source_set)
    if binding.kind in ("def", "class"):
        return scope_qualname(symbol, unit)
    if binding.kind == "assign" and isinstance(binding.value, (ast.Name, ast.Attribute)):
        seen = set() if seen is None else seen
        if symbol in seen:
            return None
        seen.add(symbol)
        return qualified_name(binding.value, unit, source_set, seen)
    return None


def qualified_name(
    expr: ast.AST,
    unit: "CompilationUnit",
    source_set: "SourceSet",
    seen: Optional[Set[Symbol]] = None,
) -> Optional[str]:
    if isinstance(expr, ast.Name):
        symbol = unit.symbol_for(expr)
        if symbol is None:
            return _star_import_target(unit, expr.id, source_set)
        return symbol_qualname(symbol, unit, source_set, seen)
    if isinstance(expr, ast.Attribute):
        base = qualified_name(expr.value, unit, source_set, seen)
        if not base:
            return None
        return canonical(f"{base}.{expr.attr}", source_set)
    return None


def lookup_symbol(
    qualname: str, source_set: "SourceSet"
) -> Optional[Tuple["CompilationUnit", Symbol]]:
    """Find the symbol a qualified name declares, descending into class bodies."""
    found = source_set.split_qualname(canonical(qualname, source_set))
    if found is None:
        return None
    unit, rest = found
    if not rest:
        return None
    symbol = unit.scope.symbols.get(rest[0])
    if symbol is None:
        return None
    for attr in rest[1:]:
        binding = symbol.definite_binding()
        if binding is None or binding.kind != "class":
            return None
        class_scope = unit.scope_of_node(binding.node)
        if class_scope is None:
            return None
        symbol = class_scope.symbols.get(attr)
        if symbol is None:
            return None
    return unit, symbol



def matches_target(qualname: Optional[str], target: str, source_set: "SourceSet") -> bool:
    """True when ``qualname`` denotes ``target`` as configured or where ``target`` is re-exported from.

    A registry package may expose ``register`` from ``pkg/__init__.py`` while
    defining it in a submodule; ``qualname`` then names the submodule, so the
    configured target is followed through the same re-exports before comparing.
    """
    if not qualname:
        return False
    if dotted_suffix_match(qualname, target):
        return True
    resolved = canonical(target, source_set)
    return resolved != target and dotted_suffix_match(qualname, resolved)
