from __future__ import annotations

import ast
from typing import TYPE_CHECKING, Iterator, List, Optional, Sequence, Tuple

from .names import matches_target, qualified_name
from .records import RegistrationSite
from .symbols import Scope

if TYPE_CHECKING:
    from .core import ScanOptions
    from .loader import CompilationUnit, SourceSet


MODULE_ENTRY = "<module>"


def iter_executed(nodes: Sequence[ast.AST]) -> Iterator[ast.AST]:
    """Pre-order walk of what runs when ``nodes`` run; function bodies are deferred."""
    stack = list(reversed(list(nodes)))
    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, (ast.FunctionDef, ast.AsyncFunctionDef)):
            children = list(current.decorator_list)
            children.extend(current.args.defaults)
            children.extend(d for d in current.args.kw_defaults if d is not None)
        elif isinstance(current, ast.Lambda):
            children = list(current.args.defaults)
            children.extend(d for d in current.args.kw_defaults if d is not None)
        else:
            children = list(ast.iter_child_nodes(current))
        stack.extend(reversed(children))


def initializer_entries(
    unit: "CompilationUnit", init_functions: Sequence[str]
) -> List[Tuple[str, Scope, Sequence[ast.stmt]]]:
    entries: List[Tuple[str, Scope, Sequence[ast.stmt]]] = [(MODULE_ENTRY, unit.scope, unit.tree.body)]
    for stmt in unit.tree.body:
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)) and stmt.name in init_functions:
            scope = unit.scope_of_node(stmt)
            if scope is not None:
                entries.append((stmt.name, scope, stmt.body))
    return entries


def is_registration_call(
    call: ast.Call,
    unit: "CompilationUnit",
    source_set: "SourceSet",
    options: "ScanOptions",
) -> bool:
    target = f"{options.registry_module}.{options.register_function}"
    return matches_target(qualified_name(call.func, unit, source_set), target, source_set)


def find_register_call(
    body: Sequence[ast.stmt],
    unit: "CompilationUnit",
    source_set: "SourceSet",
    options: "ScanOptions",
) -> Optional[ast.Call]:
    for node in iter_executed(body):
        if not isinstance(node, ast.Call) or not node.args:
            continue
        if isinstance(node.args[0], ast.Starred):
            continue
        if is_registration_call(node, unit, source_set, options):
            return node
    return None


def find_registration_sites(
    unit: "CompilationUnit",
    source_set: "SourceSet",
    options: "ScanOptions",
    warnings: List[str],
) -> List[RegistrationSite]:
    """At most one registration site per initializer entry point of ``unit``."""
    sites: List[RegistrationSite] = []
    for entry, scope, body in initializer_entries(unit, options.init_functions):
        call = find_register_call(body, unit, source_set, options)
        if call is None:
            if entry != MODULE_ENTRY:
                warnings.append(
                    f"{unit.location(scope.node)}: initializer {entry}() has no "
                    f"{options.registry_module}.{options.register_function} call"
                )
            continue
        sites.append(
            RegistrationSite(unit=unit, entry=entry, scope=scope, call=call, argument=call.args[0])
        )
    return sites
