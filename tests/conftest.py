from __future__ import annotations

from typing import Any, Callable, List

import pytest

from typelint.tools.jsparse import text, walk
from typelint.tools.lint import Linter
from typelint.tools.session import AnalysisSession, FileInfo
from typelint.tools.typecheck import TypeResolver
from typelint.tools.types import Type


def declarator(fi: FileInfo, name: str):
    for node in walk(fi.root):
        if node.type == "variable_declarator" and text(node.child_by_field_name("name")) == name:
            return node
    raise AssertionError(f"no declarator named {name}")


@pytest.fixture
def session() -> AnalysisSession:
    return AnalysisSession()


@pytest.fixture
def infer(session: AnalysisSession) -> Callable[..., Type]:
    """Resolved type of the initializer of variable `name` in `source`."""
    resolver = TypeResolver(session)

    def run(source: str, name: str = "x") -> Type:
        fi = session.add_source("/virtual/infer.js", source)
        return resolver.resolve_type(declarator(fi, name).child_by_field_name("value"), fi)

    return run


@pytest.fixture
def lint() -> Callable[..., List[str]]:
    """Messages reported by a single rule over `source`."""

    def run(source: str, rule: str, **options: Any) -> List[str]:
        entry: Any = ["error", options] if options else "error"
        linter = Linter({"rules": {rule: entry}})
        return [i.message for i in linter.lint_source(source, "/virtual/test.js")]

    return run
