from __future__ import annotations

import ast
from typing import TYPE_CHECKING, List, Optional

from .extractor import iter_preorder
from .records import RegistrationSite, ResolvedConstructor

if TYPE_CHECKING:
    from .loader import CompilationUnit

DECLARATION_NODES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)


def _callee_name(value: Optional[ast.AST]) -> Optional[ast.Name]:
    if isinstance(value, ast.Call) and isinstance(value.func, ast.Name):
        return value.func
    return None


def assigned_callee(name: ast.Name, unit: "CompilationUnit") -> Optional[ast.Name]:
    """Callee of the first ``name = f()`` bound to the same symbol as ``name``."""
    symbol = unit.symbol_for(name)
    if symbol is None:
        return None
    for node in iter_preorder(symbol.scope.body):
        if isinstance(node, ast.Assign):
            if len(node.targets) != 1:
                continue
            target, value = node.targets[0], node.value
        elif isinstance(node, ast.AnnAssign) and node.value is not None:
            target, value = node.target, node.value
        else:
            continue
        if not isinstance(target, ast.Name) or unit.symbol_for(target) is not symbol:
            continue
        callee = _callee_name(value)
        if callee is not None:
            return callee
    return None


def declaration_for(callee: ast.Name, unit: "CompilationUnit", warnings: List[str]) -> Optional[ast.AST]:
    symbol = unit.symbol_for(callee)
    if symbol is None:
        warnings.append(f"{unit.location(callee)}: constructor {callee.id}() is not declared in {unit.path}")
        return None
    declarations = [b.node for b in symbol.bindings if b.kind in ("def", "class")]
    others = [b for b in symbol.bindings if b.kind not in ("def", "class")]
    if others:
        if any(b.kind == "import" for b in others):
            warnings.append(
                f"{unit.location(callee)}: constructor {callee.id}() is imported; "
                "constructors declared in other modules are not traced"
            )
        else:
            warnings.append(f"{unit.location(callee)}: constructor {callee.id}() is rebound and cannot be traced")
        return None
    if not declarations:
        return None
    return declarations[0]


def find_constructor(
    site: RegistrationSite, warnings: List[str]
) -> Optional[ResolvedConstructor]:
    """Resolve the register() argument to the declaration that builds the adapter.

    Every untraceable site gets exactly one diagnostic: the specific one from
    ``declaration_for`` when the name resolved to something unusable, a
    generic one for any other argument shape.
    """
    unit = site.unit
    reported = len(warnings)
    argument = site.argument
    callee: Optional[ast.Name] = None
    if isinstance(argument, ast.Call):
        callee = _callee_name(argument)
    elif isinstance(argument, ast.Name):
        callee = assigned_callee(argument, unit)
    declaration = declaration_for(callee, unit, warnings) if callee is not None else None
    if isinstance(declaration, DECLARATION_NODES):
        return ResolvedConstructor(declaration=declaration, unit=unit)
    if len(warnings) == reported:
        warnings.append(
            f"{unit.location(site.call)}: found a registration call but could not trace its constructor function"
        )
    return None
