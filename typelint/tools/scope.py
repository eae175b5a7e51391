"""Lexical scopes and identifier bindings for a parsed JavaScript file.

Declarations are collected for the whole file first, so a reference can be
bound to a hoisted function or `var` declared further down. References are
resolved lazily by `ScopeAnalysis.get_binding` and memoized.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from tree_sitter import Node

from typelint.tools.jsparse import FUNCTION_NODES, named, node_key, params_of, text

logger = logging.getLogger(__name__)

BLOCK_NODES = {"statement_block", "for_statement", "for_in_statement", "class_body", "switch_body"}


@dataclass
class Binding:
    name: str
    kind: str
    node: Node
    site: Node
    declaration_kind: Optional[str] = None
    index: Optional[int] = None


@dataclass
class Scope:
    node: Node
    parent: Optional["Scope"]
    is_function: bool
    bindings: Dict[str, Binding] = field(default_factory=dict)

    def lookup(self, name: str) -> Optional[Binding]:
        cur: Optional[Scope] = self
        while cur is not None:
            hit = cur.bindings.get(name)
            if hit is not None:
                return hit
            cur = cur.parent
        return None

    def function_scope(self) -> "Scope":
        cur = self
        while not cur.is_function and cur.parent is not None:
            cur = cur.parent
        return cur


class ScopeAnalysis:
    def __init__(self, root: Node) -> None:
        self.root = root
        self._scopes: Dict[tuple, Scope] = {}
        self._declared: Dict[tuple, Binding] = {}
        self._refs: Dict[tuple, Optional[Binding]] = {}
        self.program = self._open(root, None, True)
        self._visit_children(root, self.program)

    # -- declaration pass ------------------------------------------------

    def _open(self, node: Node, parent: Optional[Scope], is_function: bool) -> Scope:
        scope = Scope(node, parent, is_function)
        self._scopes[node_key(node)] = scope
        return scope

    def _declare(self, scope: Scope, ident: Node, kind: str, site: Node, **extra) -> Binding:
        b = Binding(text(ident), kind, ident, site, **extra)
        scope.bindings[b.name] = b
        self._declared[node_key(ident)] = b
        return b

    def _visit_children(self, node: Node, scope: Scope) -> None:
        for child in node.named_children:
            self._visit(child, scope)

    def _visit(self, node: Node, scope: Scope) -> None:
        t = node.type
        if t in FUNCTION_NODES:
            self._visit_function(node, scope)
        elif t == "class_declaration":
            name = node.child_by_field_name("name")
            if name is not None:
                self._declare(scope, name, "class", node)
            self._visit_children(node, scope)
        elif t in ("lexical_declaration", "variable_declaration"):
            kind_node = node.child_by_field_name("kind")
            decl_kind = text(kind_node) if kind_node is not None else "var"
            target = scope.function_scope() if decl_kind == "var" else scope
            for declarator in named(node):
                if declarator.type != "variable_declarator":
                    continue
                for ident in _pattern_identifiers(declarator.child_by_field_name("name")):
                    self._declare(target, ident, "variable", declarator, declaration_kind=decl_kind)
                value = declarator.child_by_field_name("value")
                if value is not None:
                    self._visit(value, scope)
        elif t == "import_statement":
            self._visit_import(node, scope)
        elif t == "catch_clause":
            inner = self._open(node, scope, False)
            param = node.child_by_field_name("parameter")
            for ident in _pattern_identifiers(param):
                self._declare(inner, ident, "catch", node)
            body = node.child_by_field_name("body")
            if body is not None:
                self._visit_children(body, inner)
        elif t == "for_in_statement":
            inner = self._open(node, scope, False)
            kind_node = node.child_by_field_name("kind")
            left = node.child_by_field_name("left")
            if kind_node is not None:
                decl_kind = text(kind_node)
                target = inner.function_scope() if decl_kind == "var" else inner
                for ident in _pattern_identifiers(left):
                    self._declare(target, ident, "for", node, declaration_kind=decl_kind)
            skip = node_key(left) if left is not None else None
            for child in node.named_children:
                if node_key(child) != skip:
                    self._visit(child, inner)
        elif t in BLOCK_NODES:
            self._visit_children(node, self._open(node, scope, False))
        else:
            self._visit_children(node, scope)

    def _visit_function(self, node: Node, scope: Scope) -> None:
        name = node.child_by_field_name("name")
        inner = self._open(node, scope, True)
        if name is not None and name.type == "identifier":
            if node.type in ("function_declaration", "generator_function_declaration"):
                self._declare(scope, name, "function", node)
            else:
                self._declare(inner, name, "function", node)
        for i, param in enumerate(params_of(node)):
            for ident in _pattern_identifiers(param):
                self._declare(inner, ident, "param", node, index=i)
            if param.type == "assignment_pattern":
                right = param.child_by_field_name("right")
                if right is not None:
                    self._visit(right, inner)
        body = node.child_by_field_name("body")
        if body is None:
            return
        if body.type == "statement_block":
            self._scopes[node_key(body)] = inner
            self._visit_children(body, inner)
        else:
            self._visit(body, inner)

    def _visit_import(self, node: Node, scope: Scope) -> None:
        for clause in named(node):
            if clause.type != "import_clause":
                continue
            for part in named(clause):
                if part.type == "identifier":
                    self._declare(scope, part, "import_default", node)
                elif part.type == "namespace_import":
                    for ident in named(part):
                        if ident.type == "identifier":
                            self._declare(scope, ident, "import_namespace", node)
                elif part.type == "named_imports":
                    for spec in named(part):
                        if spec.type != "import_specifier":
                            continue
                        local = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                        if local is not None:
                            self._declare(scope, local, "import", spec)

    # -- lookups ---------------------------------------------------------

    def scope_for(self, node: Node) -> Scope:
        cur: Optional[Node] = node
        while cur is not None:
            hit = self._scopes.get(node_key(cur))
            if hit is not None:
                return hit
            cur = cur.parent
        return self.program

    def get_binding(self, ident: Node) -> Optional[Binding]:
        key = node_key(ident)
        declared = self._declared.get(key)
        if declared is not None:
            return declared
        if key in self._refs:
            return self._refs[key]
        hit = self.scope_for(ident).lookup(text(ident))
        self._refs[key] = hit
        if hit is None:
            logger.debug("Unbound identifier %s at line %d", text(ident), ident.start_point[0] + 1)
        return hit

    def bindings(self) -> Iterator[Binding]:
        return iter(self._declared.values())


def _pattern_identifiers(pattern: Optional[Node]) -> List[Node]:
    """Every identifier a (possibly destructuring) binding pattern introduces."""
    if pattern is None:
        return []
    if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
        return [pattern]
    if pattern.type == "assignment_pattern":
        return _pattern_identifiers(pattern.child_by_field_name("left"))
    if pattern.type == "pair_pattern":
        return _pattern_identifiers(pattern.child_by_field_name("value"))
    if pattern.type == "object_assignment_pattern":
        return _pattern_identifiers(pattern.child_by_field_name("left"))
    out: List[Node] = []
    if pattern.type in ("object_pattern", "array_pattern", "rest_pattern"):
        for child in named(pattern):
            out.extend(_pattern_identifiers(child))
    return out


def analyze_scope(root: Node) -> ScopeAnalysis:
    return ScopeAnalysis(root)
