"""A small "drop-in" integration layer for typelint.

Wires the analysis session, the type resolver and the rules into one API for
Python hosts (editors, build steps, test harnesses).

Typical usage:

    from typelint.engine import TypelintEngine

    eng = TypelintEngine()
    diag = eng.diagnose(["src/"])
    if diag.any_errors:
        ...
    t = eng.type_of_declaration("src/app.js", "main")

"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from typelint.tools.config import load_config
from typelint.tools.lint import Issue, Linter, iter_source_files
from typelint.tools.session import AnalysisSession
from typelint.tools.typecheck import describe_file


@dataclass
class Diagnostics:
    issues: List[Issue] = field(default_factory=list)
    unreadable: List[str] = field(default_factory=list)

    @property
    def any_errors(self) -> bool:
        return bool(self.unreadable) or any(i.severity == "error" for i in self.issues)

    def by_rule(self) -> Dict[str, List[Issue]]:
        out: Dict[str, List[Issue]] = {}
        for i in self.issues:
            out.setdefault(i.rule, []).append(i)
        return out


class TypelintEngine:
    def __init__(
        self,
        *,
        config: Optional[Mapping[str, Any]] = None,
        config_path: Optional[str | Path] = None,
        follow_imports: bool = True,
    ):
        if config is not None and config_path is not None:
            raise ValueError("pass either config or config_path, not both")
        if config_path is not None:
            config = load_config(config_path)
        self.config = config
        self.follow_imports = follow_imports
        self.reset()

    def reset(self) -> None:
        """Drop every cached file and typedef, e.g. after sources changed on disk."""
        self.session = AnalysisSession(follow_imports=self.follow_imports)
        self.linter = Linter(self.config, self.session)

    def lint_text(self, source: str, path: str | Path = "<input>.js") -> List[Issue]:
        return self.linter.lint_source(source, path)

    def lint_path(self, path: str | Path) -> List[Issue]:
        return self.linter.lint_file(path)

    def diagnose(self, paths: Sequence[str | Path]) -> Diagnostics:
        diag = Diagnostics()
        for p in iter_source_files(paths):
            try:
                diag.issues.extend(self.linter.lint_file(p))
            except OSError:
                diag.unreadable.append(str(p))
        return diag

    def types(self, path: str | Path) -> List[Dict[str, object]]:
        return describe_file(Path(path), self.session)

    def type_of_declaration(self, path: str | Path, name: str) -> Optional[str]:
        for d in self.types(path):
            if d["name"] == name:
                return str(d["type"])
        return None
