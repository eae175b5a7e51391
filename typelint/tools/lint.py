"""Lint host: run the type rules over JavaScript files.

Each rule module declares the node types it inspects; the host walks every
tree once and hands each node to the rules registered for its type. Rules
report through a RuleContext, which turns the node into a line/column Issue.

CLI:
  typelint lint [paths...] [--config typelint.json] [--json] [--verbose]

Exit codes:
  0 no errors
  2 errors reported, or invalid config
  3 a file could not be read
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from tree_sitter import Node

from typelint.tools.config import RULES, ConfigError, load_config, normalize_rules
from typelint.tools.jsparse import line_of, walk
from typelint.tools.resolve import EXTENSIONS
from typelint.tools.session import AnalysisSession, FileInfo
from typelint.tools.typecheck import TypeResolver
from typelint.tools.types import Type

logger = logging.getLogger(__name__)

SKIP_DIRS = {"node_modules", ".git"}


@dataclass
class Issue:
    rule: str
    path: str
    line: int
    column: int
    message: str
    severity: str = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule,
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "message": self.message,
            "severity": self.severity,
        }


@dataclass
class RuleContext:
    rule: str
    file_info: FileInfo
    resolver: TypeResolver
    options: Dict[str, Any]
    severity: str = "error"
    issues: List[Issue] = field(default_factory=list)

    def type_of(self, node: Optional[Node]) -> Type:
        return self.resolver.resolve_type(node, self.file_info)

    def report(self, node: Node, message: str) -> None:
        self.issues.append(
            Issue(self.rule, self.file_info.path, line_of(node), node.start_point[1] + 1, message, self.severity)
        )


class Linter:
    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        session: Optional[AnalysisSession] = None,
    ) -> None:
        self.settings = normalize_rules(config)
        self.session = session or AnalysisSession()
        self.resolver = TypeResolver(self.session)

    def lint_file_info(self, fi: FileInfo) -> List[Issue]:
        if fi.root is None:
            return []
        contexts: List[RuleContext] = []
        by_type: Dict[str, List[Tuple[ModuleType, RuleContext]]] = {}
        for name, (severity, options) in self.settings.items():
            mod = RULES[name]
            ctx = RuleContext(name, fi, self.resolver, options, severity)
            contexts.append(ctx)
            for node_type in mod.NODE_TYPES:
                by_type.setdefault(node_type, []).append((mod, ctx))

        for node in walk(fi.root):
            if not node.is_named:
                continue
            for mod, ctx in by_type.get(node.type, ()):
                mod.check(node, ctx)

        issues = [i for ctx in contexts for i in ctx.issues]
        return sorted(issues, key=lambda i: (i.line, i.column, i.rule))

    def lint_source(self, source: str, path: str | Path = "<input>.js") -> List[Issue]:
        return self.lint_file_info(self.session.add_source(path, source))

    def lint_file(self, path: str | Path) -> List[Issue]:
        fi = self.session.get_file_info(path)
        if fi.error is not None:
            raise OSError(fi.error)
        return self.lint_file_info(fi)


def iter_source_files(paths: Iterable[str | Path]) -> Iterable[Path]:
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            for child in sorted(p.rglob("*")):
                if child.suffix in EXTENSIONS and child.is_file() and not SKIP_DIRS & set(child.parts):
                    yield child
        else:
            yield p


def lint_source(source: str, path: str | Path = "<input>.js", config: Optional[Mapping[str, Any]] = None) -> List[Issue]:
    return Linter(config).lint_source(source, path)


def lint_file(path: str | Path, config: Optional[Mapping[str, Any]] = None) -> List[Issue]:
    return Linter(config).lint_file(path)


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="typelint lint")
    ap.add_argument("paths", nargs="+", help="JavaScript files or directories")
    ap.add_argument("--config", help="Path to a JSON rule configuration")
    ap.add_argument("--json", action="store_true", help="Emit issues as JSON")
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config) if args.config else None
        linter = Linter(config)
    except ConfigError as e:
        print(f"config error: {e}", file=sys.stderr)
        return 2

    issues: List[Issue] = []
    io_failed = False
    for path in iter_source_files(args.paths):
        try:
            issues.extend(linter.lint_file(path))
        except OSError as e:
            print(f"Failed to read {path}: {e}", file=sys.stderr)
            io_failed = True

    if args.json:
        print(json.dumps([i.to_dict() for i in issues], indent=2, ensure_ascii=False))
    else:
        for i in issues:
            print(f"{i.path}:{i.line}:{i.column} {i.severity} {i.message} [{i.rule}]")

    if io_failed:
        return 3
    has_errors = any(i.severity == "error" for i in issues)
    return 2 if has_errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
