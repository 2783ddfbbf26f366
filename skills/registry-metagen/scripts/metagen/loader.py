from __future__ import annotations

import ast
import sysconfig
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .console import progress
from .discovery import ToolState, list_repo_files, python_files
from .imports import module_name_for_path, package_for_module
from .symbols import Scope, Symbol, build_scopes


@dataclass(eq=False)
class CompilationUnit:
    path: str
    module: str
    is_package: bool
    tree: ast.Module
    scope: Scope
    node_scopes: Dict[ast.AST, Scope]

    @property
    def package(self) -> str:
        return package_for_module(self.module, self.is_package)

    def symbol_for(self, node: ast.Name) -> Optional[Symbol]:
        scope = self.node_scopes.get(node)
        if scope is None:
            return None
        return scope.lookup(node.id)

    def scope_of_node(self, node: ast.AST) -> Optional[Scope]:
        """The scope opened by a def/class/lambda node, if any."""
        for scope in self.scope.walk():
            if scope.node is node:
                return scope
        return None

    def location(self, node: ast.AST) -> str:
        line = getattr(node, "lineno", 0) or 0
        return f"{self.path}:{line}" if line else self.path

    @property
    def is_empty(self) -> bool:
        return not self.tree.body


PARSE_ERRORS = (SyntaxError, ValueError, RecursionError)
LOAD_ERRORS = (OSError, UnicodeDecodeError) + PARSE_ERRORS


@dataclass
class SourceSet:
    """Parsed modules of the scanned repo, plus modules found on ``search_paths``.

    Only ``units`` are scanned for registrations. Modules outside the repo
    (typically the installed registry package) are parsed on first reference
    so their constants and re-exports resolve, and are never scanned.
    """

    root: Path
    units: List[CompilationUnit] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    search_paths: List[Path] = field(default_factory=list)
    external_failures: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._by_module: Dict[str, CompilationUnit] = {}
        self._external: Dict[str, Optional[CompilationUnit]] = {}
        for unit in self.units:
            self._index(unit)

    def _index(self, unit: CompilationUnit) -> None:
        # first file wins when two roots produce the same module name
        if unit.module and unit.module not in self._by_module:
            self._by_module[unit.module] = unit

    def add(self, unit: CompilationUnit) -> None:
        self.units.append(unit)
        self._index(unit)

    def unit_for_module(self, module: str) -> Optional[CompilationUnit]:
        unit = self._by_module.get(module)
        if unit is None and module:
            unit = self._external_unit(module)
        return unit

    def _external_unit(self, module: str) -> Optional[CompilationUnit]:
        if module in self._external:
            return self._external[module]
        self._external[module] = None
        parts = module.split(".")
        for base in self.search_paths:
            candidates = (
                (base.joinpath(*parts, "__init__.py"), True),
                (base.joinpath(*parts[:-1], f"{parts[-1]}.py"), False),
            )
            for path, is_package in candidates:
                if not path.is_file():
                    continue
                try:
                    unit = build_unit(str(path), module, is_package, path.read_text(encoding="utf-8"))
                except LOAD_ERRORS as exc:
                    self.external_failures.append(f"{path}: could not load {module} ({exc.__class__.__name__}: {exc})")
                    return None
                self._external[module] = unit
                return unit
        return None

    def split_qualname(self, qualname: str) -> Optional[Tuple[CompilationUnit, List[str]]]:
        """Split ``pkg.mod.Name.attr`` into the longest known module and the rest.

        Repo modules win over modules on the search paths.
        """
        parts = qualname.split(".")
        for cut in range(len(parts), 0, -1):
            unit = self._by_module.get(".".join(parts[:cut]))
            if unit is not None:
                return unit, parts[cut:]
        if not self.search_paths:
            return None
        for cut in range(len(parts), 0, -1):
            unit = self._external_unit(".".join(parts[:cut]))
            if unit is not None:
                return unit, parts[cut:]
        return None


def default_search_paths() -> List[str]:
    """Installed-package directories of the running interpreter."""
    paths: List[str] = []
    installed = sysconfig.get_paths()
    for key in ("purelib", "platlib"):
        path = installed.get(key)
        if path and path not in paths:
            paths.append(path)
    return paths


def build_unit(path: str, module: str, is_package: bool, source: str) -> CompilationUnit:
    tree = ast.parse(source, filename=path)
    builder = build_scopes(tree, module, package_for_module(module, is_package))
    return CompilationUnit(
        path=path,
        module=module,
        is_package=is_package,
        tree=tree,
        scope=builder.scope,
        node_scopes=builder.node_scopes,
    )


def parse_unit(path: str, source: str, roots: Sequence[str]) -> CompilationUnit:
    module, is_package = module_name_for_path(path, roots)
    return build_unit(path, module, is_package, source)


def load_source_set(
    repo: Path,
    *,
    roots: Sequence[str],
    warnings: List[str],
    tools: Optional[ToolState] = None,
    files: Optional[Sequence[str]] = None,
    search_paths: Sequence[str] = (),
) -> SourceSet:
    """Parse every Python file under ``repo`` without importing any of it.

    ``search_paths`` are directories (relative ones are taken from ``repo``)
    where modules the repo imports but does not contain are looked up.
    """
    tools = tools or ToolState()
    if files is None:
        files = list_repo_files(repo, warnings, tools)
    resolved = [repo / path for path in search_paths]
    source_set = SourceSet(root=repo, search_paths=[path for path in resolved if path.is_dir()])
    paths = python_files(files)
    progress(f"Parsing {len(paths)} Python files...")
    for path in paths:
        try:
            source = (repo / path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            warnings.append(f"{path}: could not read source ({exc})")
            source_set.failed.append(path)
            continue
        try:
            unit = parse_unit(path, source, roots)
        except PARSE_ERRORS as exc:
            warnings.append(f"{path}: could not parse ({exc.__class__.__name__}: {exc})")
            source_set.failed.append(path)
            continue
        source_set.add(unit)
    progress(f"Parsed {len(source_set.units)} modules", done=True)
    return source_set
