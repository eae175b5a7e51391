"""Module resolver for JavaScript imports and exports.

Resolves:
- import specifiers: relative paths only (`./x`, `../y/z`, `/abs`); bare
  package names are left unresolved
- exports: the declaration node a file exports under a given name

Resolution strategy:
- try the path as written, then with each of EXTENSIONS appended, then
  `<path>/index<ext>`
- the first existing candidate wins

CLI:
  typelint resolve file.js [--out summary.json]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from tree_sitter import Node

from typelint.tools.jsparse import field, named, string_value, text

EXTENSIONS = (".js", ".mjs", ".cjs", ".jsx")

DECLARATION_NODES = {"function_declaration", "generator_function_declaration", "class_declaration"}


class ResolveError(RuntimeError):
    pass


def _candidates(target: Path) -> Iterator[Path]:
    yield target
    for ext in EXTENSIONS:
        yield target.with_name(target.name + ext)
    for ext in EXTENSIONS:
        yield target / f"index{ext}"


def resolve_module_path(
    specifier: str,
    from_path: str | Path,
    exists: Callable[[Path], bool] = Path.is_file,
) -> Optional[str]:
    if not specifier.startswith((".", "/")):
        return None
    base_dir = Path(from_path).parent
    target = (base_dir / specifier).resolve()
    for cand in _candidates(target):
        if exists(cand):
            return str(cand)
    return None


# -------------------------
# Imports / exports
# -------------------------

def iter_imports(root: Node) -> Iterator[Tuple[Node, str]]:
    for stmt in named(root):
        if stmt.type == "import_statement":
            source = field(stmt, "source")
            if source is not None:
                yield stmt, string_value(source)
        elif stmt.type == "export_statement":
            source = field(stmt, "source")
            if source is not None:
                yield stmt, string_value(source)


def import_source(node: Node) -> Optional[str]:
    """The module specifier of the import/export statement enclosing `node`."""
    cur: Optional[Node] = node
    while cur is not None and cur.type not in ("import_statement", "export_statement"):
        cur = cur.parent
    source = field(cur, "source")
    return string_value(source) if source is not None else None


def _is_default(stmt: Node) -> bool:
    return any(c.type == "default" for c in stmt.children)


def _export_clause(stmt: Node) -> Optional[Node]:
    for c in named(stmt):
        if c.type == "export_clause":
            return c
    return None


def _exported_declarations(stmt: Node) -> Iterator[Tuple[str, Node]]:
    decl = field(stmt, "declaration")
    if decl is None:
        return
    if decl.type in DECLARATION_NODES:
        name = field(decl, "name")
        if name is not None:
            yield text(name), decl
    elif decl.type in ("lexical_declaration", "variable_declaration"):
        for declarator in named(decl):
            name = field(declarator, "name")
            if declarator.type == "variable_declarator" and name is not None and name.type == "identifier":
                yield text(name), declarator


def _exported_specifiers(stmt: Node) -> Iterator[Tuple[str, Node]]:
    clause = _export_clause(stmt)
    if clause is None:
        return
    reexport = field(stmt, "source") is not None
    for spec in named(clause):
        if spec.type != "export_specifier":
            continue
        name = field(spec, "name")
        alias = field(spec, "alias")
        exported = string_value(alias if alias is not None else name)
        # a re-export has no local binding; hand back the specifier itself
        yield exported, spec if reexport else name


def get_named_export(symbol: str, file_info: Any) -> Optional[Node]:
    root = file_info.root
    if root is None:
        return None
    for stmt in named(root):
        if stmt.type != "export_statement":
            continue
        for name, node in _exported_declarations(stmt):
            if name == symbol:
                return node
        for name, node in _exported_specifiers(stmt):
            if name == symbol:
                return node
    return None


def get_default_export(file_info: Any) -> Optional[Node]:
    root = file_info.root
    if root is None:
        return None
    for stmt in named(root):
        if stmt.type == "export_statement" and _is_default(stmt):
            decl = field(stmt, "declaration") or field(stmt, "value")
            if decl is not None:
                return decl
    return get_named_export("default", file_info)


def export_names(file_info: Any) -> List[str]:
    root = file_info.root
    if root is None:
        return []
    names: List[str] = []
    for stmt in named(root):
        if stmt.type != "export_statement":
            continue
        if _is_default(stmt):
            names.append("default")
            continue
        names.extend(name for name, _ in _exported_declarations(stmt))
        names.extend(name for name, _ in _exported_specifiers(stmt))
    return names


def summarize(path: Path) -> Dict[str, Any]:
    from typelint.tools.session import AnalysisSession

    session = AnalysisSession(follow_imports=False)
    fi = session.get_file_info(path)
    if fi.error is not None:
        raise ResolveError(f"cannot read {path}: {fi.error}")
    imports = [
        {"source": spec, "resolved": session.resolve_module(spec, fi.path)}
        for _, spec in iter_imports(fi.root)
    ]
    return {
        "path": fi.path,
        "imports": imports,
        "exports": export_names(fi),
        "typedefs": list(fi.typedef_names),
    }


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="typelint resolve")
    ap.add_argument("path", help="Path to a JavaScript source file")
    ap.add_argument("--out", help="Write the summary to this file (default: stdout)")
    args = ap.parse_args(argv)

    try:
        summary = summarize(Path(args.path))
    except ResolveError as e:
        print(f"resolve error: {e}", file=sys.stderr)
        return 3

    out = json.dumps(summary, indent=2, ensure_ascii=False) + "\n"
    if args.out:
        Path(args.out).write_text(out, encoding="utf-8")
    else:
        sys.stdout.write(out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
