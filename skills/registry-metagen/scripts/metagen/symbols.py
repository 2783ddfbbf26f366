"""Lexical scopes and symbols for one parsed module.

A ``Symbol`` is the identity of one name in one scope: two ``ast.Name`` nodes
refer to the same entity exactly when they resolve to the same ``Symbol``
object, whatever their spelling elsewhere in the file. Binding rules follow
Python's: any binding inside a function makes the name local to it unless it
is declared ``global`` or ``nonlocal``, and class bodies do not enclose the
functions defined in them.
"""
from __future__ import annotations

import ast
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Set

from .imports import absolute_import_name

FUNCTION_NODES = (ast.FunctionDef, ast.AsyncFunctionDef)
COMPREHENSION_NODES = (ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)


@dataclass(eq=False)
class Binding:
    kind: str  # assign | import | def | class | param | other
    node: ast.AST
    value: Optional[ast.expr] = None
    target: str = ""


@dataclass(eq=False)
class Symbol:
    name: str
    scope: "Scope"
    bindings: List[Binding] = field(default_factory=list)

    def definite_binding(self) -> Optional[Binding]:
        """The binding every use of this symbol sees, or None when rebound."""
        if len(self.bindings) == 1:
            return self.bindings[0]
        if self.bindings and all(b.kind == "import" for b in self.bindings):
            targets = {b.target for b in self.bindings}
            if len(targets) == 1:
                return self.bindings[0]
        return None

    def __repr__(self) -> str:
        return f"Symbol({self.scope.qualname}:{self.name})"


@dataclass(eq=False)
class Scope:
    kind: str  # module | class | function | comprehension
    node: ast.AST
    name: str
    parent: Optional["Scope"] = None
    symbols: Dict[str, Symbol] = field(default_factory=dict)
    global_names: Set[str] = field(default_factory=set)
    nonlocal_names: Set[str] = field(default_factory=set)
    star_imports: List[str] = field(default_factory=list)
    children: List["Scope"] = field(default_factory=list)

    @property
    def qualname(self) -> str:
        if self.parent is None:
            return self.name
        return f"{self.parent.qualname}.{self.name}"

    @property
    def body(self) -> Sequence[ast.AST]:
        body = getattr(self.node, "body", None)
        if isinstance(body, list):
            return body
        if body is not None:
            return [body]
        return []

    def module_scope(self) -> "Scope":
        scope = self
        while scope.parent is not None:
            scope = scope.parent
        return scope

    def symbol(self, name: str) -> Symbol:
        existing = self.symbols.get(name)
        if existing is None:
            existing = Symbol(name=name, scope=self)
            self.symbols[name] = existing
        return existing

    def lookup(self, name: str) -> Optional[Symbol]:
        """Resolve a load of ``name`` occurring directly in this scope."""
        module = self.module_scope()
        if name in self.global_names:
            return module.symbols.get(name)
        if name not in self.nonlocal_names and name in self.symbols:
            return self.symbols[name]
        scope = self.parent
        while scope is not None:
            if scope.kind == "class":
                scope = scope.parent
                continue
            if name in scope.global_names:
                return module.symbols.get(name)
            if name in scope.symbols and name not in scope.nonlocal_names:
                return scope.symbols[name]
            scope = scope.parent
        return None

    def class_scope(self, name: str) -> Optional["Scope"]:
        for child in self.children:
            if child.kind == "class" and child.name == name:
                return child
        return None

    def walk(self) -> Iterator["Scope"]:
        yield self
        for child in self.children:
            yield from child.walk()


class ScopeBuilder(ast.NodeVisitor):
    def __init__(self, module: str, package: str) -> None:
        self.module = module
        self.package = package
        self.scope: Optional[Scope] = None
        self.node_scopes: Dict[ast.AST, Scope] = {}
        self._pending: Dict[ast.AST, Binding] = {}

    def build(self, tree: ast.Module) -> Scope:
        root = Scope(kind="module", node=tree, name=self.module)
        self.scope = root
        self.node_scopes[tree] = root
        for stmt in tree.body:
            self.visit(stmt)
        return root

    def visit(self, node: ast.AST) -> None:
        self.node_scopes[node] = self.scope
        super().visit(node)

    def _push(self, kind: str, node: ast.AST, name: str) -> Scope:
        child = Scope(kind=kind, node=node, name=name, parent=self.scope)
        self.scope.children.append(child)
        self.scope = child
        return child

    def _pop(self, previous: Scope) -> None:
        self.scope = previous

    def _binding_scope(self, name: str) -> Scope:
        scope = self.scope
        while scope.kind == "comprehension" and scope.parent is not None:
            scope = scope.parent
        if name in scope.global_names:
            return scope.module_scope()
        if name in scope.nonlocal_names:
            outer = scope.parent
            while outer is not None:
                if outer.kind == "function" and name in outer.symbols:
                    return outer
                outer = outer.parent
        return scope

    def _bind(self, name: str, binding: Binding, *, local: bool = False) -> None:
        scope = self.scope if local else self._binding_scope(name)
        scope.symbol(name).bindings.append(binding)

    def _visit_all(self, nodes: Sequence[Optional[ast.AST]]) -> None:
        for node in nodes:
            if node is not None:
                self.visit(node)

    def _bind_arguments(self, args: ast.arguments) -> None:
        params = list(args.posonlyargs) + list(args.args) + list(args.kwonlyargs)
        if args.vararg is not None:
            params.append(args.vararg)
        if args.kwarg is not None:
            params.append(args.kwarg)
        for arg in params:
            self.node_scopes[arg] = self.scope
            self._bind(arg.arg, Binding(kind="param", node=arg), local=True)

    def _visit_argument_defaults(self, args: ast.arguments) -> None:
        self._visit_all(list(args.defaults) + list(args.kw_defaults))
        params = list(args.posonlyargs) + list(args.args) + list(args.kwonlyargs)
        params.extend(a for a in (args.vararg, args.kwarg) if a is not None)
        self._visit_all([a.annotation for a in params])

    def _visit_function(self, node: ast.AST) -> None:
        self._visit_all(node.decorator_list)
        self._visit_argument_defaults(node.args)
        self._visit_all([node.returns])
        self._bind(node.name, Binding(kind="def", node=node))
        previous = self.scope
        self._push("function", node, node.name)
        self._bind_arguments(node.args)
        self._collect_declarations(node.body)
        for stmt in node.body:
            self.visit(stmt)
        self._pop(previous)

    def _collect_declarations(self, body: Sequence[ast.stmt]) -> None:
        # global/nonlocal apply to the whole function body, including earlier lines
        stack: List[ast.AST] = list(body)
        while stack:
            current = stack.pop()
            if isinstance(current, ast.Global):
                self.scope.global_names.update(current.names)
            elif isinstance(current, ast.Nonlocal):
                self.scope.nonlocal_names.update(current.names)
            if isinstance(current, FUNCTION_NODES + (ast.ClassDef, ast.Lambda)):
                continue
            stack.extend(ast.iter_child_nodes(current))

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._visit_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._visit_function(node)

    def visit_Lambda(self, node: ast.Lambda) -> None:
        self._visit_argument_defaults(node.args)
        previous = self.scope
        self._push("function", node, "<lambda>")
        self._bind_arguments(node.args)
        self.visit(node.body)
        self._pop(previous)

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._visit_all(node.decorator_list)
        self._visit_all(node.bases)
        self._visit_all([kw.value for kw in node.keywords])
        self._bind(node.name, Binding(kind="class", node=node))
        previous = self.scope
        self._push("class", node, node.name)
        self._collect_declarations(node.body)
        for stmt in node.body:
            self.visit(stmt)
        self._pop(previous)

    def _visit_comprehension(self, node: ast.AST, elements: Sequence[ast.AST]) -> None:
        generators = node.generators
        if generators:
            # the first iterable is evaluated in the enclosing scope
            self.visit(generators[0].iter)
        previous = self.scope
        self._push("comprehension", node, "<comprehension>")
        for index, generator in enumerate(generators):
            if index:
                self.visit(generator.iter)
            self._bind_targets(generator.target, generator, local=True)
            self._visit_all(generator.ifs)
        self._visit_all(elements)
        self._pop(previous)

    def visit_ListComp(self, node: ast.ListComp) -> None:
        self._visit_comprehension(node, [node.elt])

    def visit_SetComp(self, node: ast.SetComp) -> None:
        self._visit_comprehension(node, [node.elt])

    def visit_GeneratorExp(self, node: ast.GeneratorExp) -> None:
        self._visit_comprehension(node, [node.elt])

    def visit_DictComp(self, node: ast.DictComp) -> None:
        self._visit_comprehension(node, [node.key, node.value])

    def _bind_targets(self, target: ast.AST, owner: ast.AST, *, local: bool = False) -> None:
        for sub in ast.walk(target):
            if isinstance(sub, ast.Name) and isinstance(sub.ctx, ast.Store):
                self.node_scopes[sub] = self.scope
                self._bind(sub.id, Binding(kind="other", node=owner), local=local)
            elif sub is not target:
                self.node_scopes.setdefault(sub, self.scope)

    def visit_Assign(self, node: ast.Assign) -> None:
        for target in node.targets:
            if isinstance(target, ast.Name):
                self._pending[target] = Binding(kind="assign", node=node, value=node.value)
        self.visit(node.value)
        self._visit_all(node.targets)

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:
        self.visit(node.annotation)
        if node.value is None:
            # a bare annotation declares but does not bind
            self.node_scopes[node.target] = self.scope
            return
        if isinstance(node.target, ast.Name):
            self._pending[node.target] = Binding(kind="assign", node=node, value=node.value)
        self.visit(node.value)
        self.visit(node.target)

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, ast.Store):
            binding = self._pending.pop(node, None) or Binding(kind="other", node=node)
            self._bind(node.id, binding)
        elif isinstance(node.ctx, ast.Del):
            self._bind(node.id, Binding(kind="other", node=node))

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:
        self._visit_all([node.type])
        if node.name:
            self._bind(node.name, Binding(kind="other", node=node))
        for stmt in node.body:
            self.visit(stmt)

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            if alias.asname:
                self._bind(alias.asname, Binding(kind="import", node=node, target=alias.name))
            else:
                head = alias.name.split(".", 1)[0]
                self._bind(head, Binding(kind="import", node=node, target=head))

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        module = absolute_import_name(node.module, node.level or 0, self.package)
        for alias in node.names:
            if alias.name == "*":
                if module:
                    self.scope.star_imports.append(module)
                continue
            name = alias.asname or alias.name
            target = f"{module}.{alias.name}" if module else ""
            kind = "import" if target else "other"
            self._bind(name, Binding(kind=kind, node=node, target=target))

    def visit_Global(self, node: ast.Global) -> None:
        self.scope.global_names.update(node.names)

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:
        self.scope.nonlocal_names.update(node.names)

    def visit_MatchAs(self, node: ast.AST) -> None:
        self.generic_visit(node)
        if getattr(node, "name", None):
            self._bind(node.name, Binding(kind="other", node=node))

    def visit_MatchStar(self, node: ast.AST) -> None:
        if getattr(node, "name", None):
            self._bind(node.name, Binding(kind="other", node=node))

    def visit_MatchMapping(self, node: ast.AST) -> None:
        self.generic_visit(node)
        if getattr(node, "rest", None):
            self._bind(node.rest, Binding(kind="other", node=node))


def build_scopes(tree: ast.Module, module: str, package: str) -> ScopeBuilder:
    builder = ScopeBuilder(module, package)
    builder.build(tree)
    return builder
