"""Type resolver for JSDoc-annotated JavaScript.

`TypeResolver.resolve_type(node, file_info)` answers the type of any node:
- a declaration whose line carries a doc comment gets the declared type
- literals and operators get structural types
- identifiers are traced to their binding: declared functions, parameters,
  `const` initializers, and imports (resolved in the exporting file)
- anything else is `any`

Cross-file resolution is guarded: a (file, export) pair already being resolved
answers `any` instead of recursing forever through an import cycle.

CLI:
  typelint types file.js [--json]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from tree_sitter import Node

from typelint.tools.jsparse import (
    FUNCTION_NODES,
    JSX_NODES,
    enclosing_function,
    field,
    line_of,
    named,
    node_key,
    param_name,
    params_of,
    string_value,
    text,
    unparenthesize,
)
from typelint.tools.resolve import get_default_export, get_named_export, import_source
from typelint.tools.scope import Binding
from typelint.tools.session import AnalysisSession, FileInfo
from typelint.tools.types import (
    ANY,
    BOOLEAN,
    NULL,
    NUMBER,
    REGEXP,
    STRING,
    UNDEFINED,
    ArrayT,
    FunctionT,
    RecordT,
    Type,
    get_property,
    is_of_type,
    make_union,
    prim,
    return_type,
    unwrap,
)

logger = logging.getLogger(__name__)


class UnsupportedOperatorError(RuntimeError):
    pass


DECLARED_NODES = FUNCTION_NODES | {"variable_declarator", "array"}

# statements whose first line a doc comment may be attached to
_DECLARATION_WRAPPERS = {"variable_declarator", "lexical_declaration", "variable_declaration", "export_statement"}

LITERAL_TYPES: Dict[str, Type] = {
    "number": NUMBER,
    "string": STRING,
    "template_string": STRING,
    "true": BOOLEAN,
    "false": BOOLEAN,
    "null": NULL,
    "undefined": UNDEFINED,
    "regex": REGEXP,
}

BOOLEAN_OPS = {"==", "!=", "===", "!==", "<", ">", "<=", ">=", "instanceof", "in"}
NUMBER_OPS = {"-", "*", "/", "%", "**", "<<", ">>", ">>>", "&", "|", "^"}
LOGICAL_OPS = {"&&", "||", "??"}


def declaration_kind(declarator: Node) -> str:
    """`const`, `let` or `var` for the statement a declarator belongs to."""
    decl = declarator.parent
    kind = field(decl, "kind")
    return text(kind) if kind is not None else "var"


def _first_declarator(declarator: Node, decl: Node) -> bool:
    for child in named(decl):
        if child.type == "variable_declarator":
            return node_key(child) == node_key(declarator)
    return False


@dataclass
class CallSignature:
    name: str
    type: FunctionT
    params: Optional[List[Node]] = None
    file_info: Optional[FileInfo] = None


class TypeResolver:
    def __init__(self, session: AnalysisSession) -> None:
        self.session = session
        self._resolving: Set[Tuple[str, str]] = set()
        self._initializers: Set[tuple] = set()

    # -- declared types --------------------------------------------------

    def declared_for(self, node: Node, fi: FileInfo) -> Optional[Type]:
        lines = [line_of(node)]
        child, cur = node, node.parent
        while cur is not None and cur.type in _DECLARATION_WRAPPERS:
            # later declarators only see comments on their own line
            if child.type == "variable_declarator" and not _first_declarator(child, cur):
                break
            lines.append(line_of(cur))
            child, cur = cur, cur.parent
        for ln in dict.fromkeys(lines):
            t = fi.declared_type(ln)
            if t is not None:
                return t
        return None

    # -- entry point -----------------------------------------------------

    def resolve_type(self, node: Optional[Node], fi: FileInfo) -> Type:
        if node is None:
            return ANY
        kind = node.type
        if kind in DECLARED_NODES:
            declared = self.declared_for(node, fi)
            if declared is not None:
                return declared

        if kind in LITERAL_TYPES:
            return LITERAL_TYPES[kind]
        if kind in ("identifier", "shorthand_property_identifier"):
            return self._identifier(node, fi)
        if kind == "binary_expression":
            op = text(field(node, "operator"))
            return self._binary(op, field(node, "left"), field(node, "right"), fi)
        if kind == "unary_expression":
            return self._unary(text(field(node, "operator")))
        if kind == "update_expression":
            return NUMBER
        if kind == "ternary_expression":
            return make_union(
                self.resolve_type(field(node, "consequence"), fi),
                self.resolve_type(field(node, "alternative"), fi),
            )
        if kind == "parenthesized_expression":
            return self.resolve_type(unparenthesize(node), fi)
        if kind == "member_expression":
            obj = self.resolve_type(field(node, "object"), fi)
            return get_property(obj, text(field(node, "property")))
        if kind == "call_expression":
            callee = unparenthesize(field(node, "function"))
            if callee is None or callee.type == "member_expression":
                return ANY
            return return_type(self.resolve_type(callee, fi))
        if kind == "new_expression":
            return self._constructed(field(node, "constructor"), fi)
        if kind == "object":
            return self._object(node, fi)
        if kind == "array":
            return ArrayT(ANY)
        if kind == "assignment_expression":
            return self.resolve_type(field(node, "right"), fi)
        if kind == "augmented_assignment_expression":
            op = text(field(node, "operator"))[:-1]
            return self._binary(op, field(node, "left"), field(node, "right"), fi)
        if kind == "sequence_expression":
            parts = named(node)
            return self.resolve_type(parts[-1], fi) if parts else ANY
        if kind == "variable_declarator":
            if declaration_kind(node) != "const":
                return ANY
            return self._initializer(node, fi)
        if kind in JSX_NODES:
            return prim("JSXElement")
        return ANY

    # -- operators -------------------------------------------------------

    def _binary(self, op: str, left: Optional[Node], right: Optional[Node], fi: FileInfo) -> Type:
        if op in BOOLEAN_OPS:
            return BOOLEAN
        if op in NUMBER_OPS:
            return NUMBER
        if op == "+":
            lt = self.resolve_type(left, fi)
            rt = self.resolve_type(right, fi)
            if is_of_type(lt, STRING) or is_of_type(rt, STRING):
                return STRING
            return NUMBER
        if op in LOGICAL_OPS:
            return make_union(self.resolve_type(left, fi), self.resolve_type(right, fi))
        raise UnsupportedOperatorError(f"Unsupported binary operator: {op!r}")

    def _unary(self, op: str) -> Type:
        if op in ("!", "delete"):
            return BOOLEAN
        if op in ("+", "-", "~"):
            return NUMBER
        if op == "typeof":
            return STRING
        if op == "void":
            return UNDEFINED
        raise UnsupportedOperatorError(f"Unsupported unary operator: {op!r}")

    # -- structural shapes -----------------------------------------------

    def _constructed(self, ctor: Optional[Node], fi: FileInfo) -> Type:
        if ctor is None:
            return ANY
        name = text(ctor)
        alias = fi.typedefs.lookup(name)
        return alias if alias is not None else prim(name)

    def _object(self, node: Node, fi: FileInfo) -> RecordT:
        fields: Dict[str, Type] = {}
        for member in named(node):
            if member.type == "pair":
                key = field(member, "key")
                if key is None or key.type == "computed_property_name":
                    continue
                fields[string_value(key)] = self.resolve_type(field(member, "value"), fi)
            elif member.type == "shorthand_property_identifier":
                fields[text(member)] = self.resolve_type(member, fi)
            elif member.type == "method_definition":
                name = field(member, "name")
                if name is not None:
                    fields[string_value(name)] = self.resolve_type(member, fi)
        return RecordT(fields)

    def _initializer(self, declarator: Node, fi: FileInfo) -> Type:
        value = field(declarator, "value")
        if value is None:
            return ANY
        key = (fi.path,) + node_key(declarator)
        if key in self._initializers:
            logger.debug("Initializer cycle at %s:%d", fi.path, line_of(declarator))
            return ANY
        self._initializers.add(key)
        try:
            return self.resolve_type(value, fi)
        finally:
            self._initializers.discard(key)

    # -- identifiers -----------------------------------------------------

    def _identifier(self, node: Node, fi: FileInfo) -> Type:
        binding = fi.scope.get_binding(node) if fi.scope is not None else None
        if binding is None:
            return UNDEFINED if text(node) == "undefined" else ANY
        return self.binding_type(binding, fi)

    def binding_type(self, b: Binding, fi: FileInfo) -> Type:
        if b.kind == "function":
            declared = self.declared_for(b.site, fi)
            return declared if declared is not None else ANY
        if b.kind == "param":
            return self.signature_for(b.site, fi).params.get(b.name, ANY)
        if b.kind == "variable":
            name = field(b.site, "name")
            if name is None or name.type != "identifier":
                return ANY
            declared = self.declared_for(b.site, fi)
            if declared is not None:
                return declared
            if b.declaration_kind == "const":
                return self._initializer(b.site, fi)
            return ANY
        if b.kind in ("import", "import_default"):
            return self._imported(b, fi)
        return ANY

    def _import_target(self, b: Binding, fi: FileInfo) -> Optional[Tuple[str, FileInfo]]:
        spec = import_source(b.site)
        if spec is None:
            return None
        target = self.session.resolve_module(spec, fi.path)
        if target is None:
            logger.debug("Cannot resolve import %r from %s", spec, fi.path)
            return None
        if b.kind == "import_default":
            symbol = "default"
        else:
            symbol = string_value(field(b.site, "name"))
        return symbol, self.session.get_file_info(target)

    def _imported(self, b: Binding, fi: FileInfo) -> Type:
        hit = self._import_target(b, fi)
        if hit is None:
            return ANY
        symbol, other = hit
        return self.export_type(symbol, other)

    def _export_node(self, symbol: str, fi: FileInfo) -> Optional[Node]:
        if symbol == "default":
            return get_default_export(fi)
        return get_named_export(symbol, fi)

    def export_type(self, symbol: str, fi: FileInfo) -> Type:
        """Type of `symbol` as exported by `fi`, resolved in that file."""
        key = (fi.path, symbol)
        if key in self._resolving:
            logger.debug("Import cycle through %s in %s", symbol, fi.path)
            return ANY
        self._resolving.add(key)
        try:
            node = self._export_node(symbol, fi)
            if node is None:
                return ANY
            if node.type == "export_specifier":
                spec = import_source(node)
                target = self.session.resolve_module(spec, fi.path) if spec else None
                if target is None:
                    return ANY
                local = string_value(field(node, "name"))
                return self.export_type(local, self.session.get_file_info(target))
            return self.resolve_type(node, fi)
        finally:
            self._resolving.discard(key)

    # -- functions -------------------------------------------------------

    def signature_for(self, site: Node, fi: FileInfo) -> FunctionT:
        """Call-site view of a function: one argument per AST parameter."""
        declared = self.declared_for(site, fi)
        fn_t = unwrap(declared) if declared is not None else None
        if not isinstance(fn_t, FunctionT):
            fn_t = None
        args: List[Type] = []
        params: Dict[str, Type] = {}
        for i, p in enumerate(params_of(site)):
            name = param_name(p)
            t: Type = ANY
            if fn_t is not None:
                if name is not None and name in fn_t.params:
                    t = fn_t.params[name]
                elif i < len(fn_t.args):
                    t = fn_t.args[i]
            args.append(t)
            if name is not None:
                params[name] = t
        ret = fn_t.ret if fn_t is not None else ANY
        return FunctionT(ret, tuple(args), params)

    def function_site(self, ident: Node, fi: FileInfo) -> Optional[Tuple[Node, FileInfo]]:
        """The function node an identifier refers to, following consts and imports."""
        seen: Set[tuple] = set()
        node: Optional[Node] = ident
        while node is not None:
            key = (fi.path,) + node_key(node)
            if key in seen:
                return None
            seen.add(key)
            if node.type in FUNCTION_NODES:
                return node, fi
            if node.type == "variable_declarator":
                node = unparenthesize(field(node, "value"))
                continue
            if node.type == "export_specifier":
                spec = import_source(node)
                target = self.session.resolve_module(spec, fi.path) if spec else None
                if target is None:
                    return None
                fi = self.session.get_file_info(target)
                node = get_named_export(string_value(field(node, "name")), fi)
                continue
            if node.type != "identifier" or fi.scope is None:
                return None
            b = fi.scope.get_binding(node)
            if b is None:
                return None
            if b.kind == "function":
                node = b.site
            elif b.kind == "variable":
                node = b.site
            elif b.kind in ("import", "import_default"):
                hit = self._import_target(b, fi)
                if hit is None:
                    return None
                symbol, fi = hit
                node = self._export_node(symbol, fi)
            else:
                return None
        return None

    def call_signature(self, call: Node, fi: FileInfo) -> Optional[CallSignature]:
        callee = unparenthesize(field(call, "function"))
        if callee is None or callee.type != "identifier":
            return None
        name = text(callee)
        site = self.function_site(callee, fi)
        if site is not None:
            fn, site_fi = site
            return CallSignature(name, self.signature_for(fn, site_fi), params_of(fn), site_fi)
        t = unwrap(self.resolve_type(callee, fi))
        if isinstance(t, FunctionT):
            return CallSignature(name, t)
        return None

    def containing_function(self, node: Node) -> Optional[Node]:
        return enclosing_function(node)


# -------------------------
# CLI
# -------------------------

def _top_level_declarations(root: Node) -> List[Tuple[str, Node]]:
    out: List[Tuple[str, Node]] = []
    for stmt in named(root):
        decl = field(stmt, "declaration") if stmt.type == "export_statement" else stmt
        if decl is None:
            continue
        if decl.type in ("function_declaration", "generator_function_declaration", "class_declaration"):
            out.append((text(field(decl, "name")), decl))
        elif decl.type in ("lexical_declaration", "variable_declaration"):
            for declarator in named(decl):
                if declarator.type == "variable_declarator":
                    out.append((text(field(declarator, "name")), declarator))
    return out


def describe_file(path: Path, session: Optional[AnalysisSession] = None) -> List[Dict[str, object]]:
    session = session or AnalysisSession()
    fi = session.get_file_info(path)
    if fi.error is not None:
        raise OSError(fi.error)
    resolver = TypeResolver(session)
    return [
        {"name": name, "line": line_of(node), "type": resolver.resolve_type(node, fi).render()}
        for name, node in _top_level_declarations(fi.root)
    ]


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="typelint types")
    ap.add_argument("path", help="Path to a JavaScript source file")
    ap.add_argument("--json", action="store_true", help="Emit declarations as JSON")
    args = ap.parse_args(argv)

    try:
        decls = describe_file(Path(args.path))
    except OSError as e:
        print(f"Failed to read {args.path}: {e}", file=sys.stderr)
        return 3

    if args.json:
        print(json.dumps(decls, indent=2, ensure_ascii=False))
    else:
        for d in decls:
            print(f"{d['line']}: {d['name']}: {d['type']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
