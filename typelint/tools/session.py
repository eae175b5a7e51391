"""Per-session module cache.

An AnalysisSession owns everything that outlives a single query: one FileInfo
per canonical path and the typedef table shared by every file. Nothing here is
process-global, so two sessions never see each other's files; `clear()` drops
both caches when sources change under a long-lived session.

A FileInfo is cached before it is populated. A file that imports (directly or
through a chain) the file currently being scanned gets the partially built
entry back instead of recursing into it again. A file whose scan fails is
dropped again, together with the typedefs it had registered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from tree_sitter import Node, Tree

from typelint.tools.builder import (
    GLOBAL,
    TypeBuilder,
    TypedefScope,
    TypedefTable,
    apply_scope_tags,
    typedef_tag,
)
from typelint.tools.doctags import Tag, parse_comment
from typelint.tools.jsparse import comments, is_doc_comment, parse_source, text
from typelint.tools.resolve import iter_imports, resolve_module_path
from typelint.tools.scope import ScopeAnalysis, analyze_scope
from typelint.tools.types import ANY, Alias, Type

logger = logging.getLogger(__name__)

ModuleResolver = Callable[..., Optional[str]]


@dataclass
class FileInfo:
    path: str
    typedefs: TypedefTable
    session: Optional["AnalysisSession"] = field(default=None, repr=False)
    source: str = ""
    tree: Optional[Tree] = field(default=None, repr=False)
    scope: Optional[ScopeAnalysis] = field(default=None, repr=False)
    typedef_names: List[str] = field(default_factory=list)
    declared: Dict[int, Type] = field(default_factory=dict)
    pending: Dict[int, Tuple[List[Tag], TypedefScope]] = field(default_factory=dict, repr=False)
    error: Optional[str] = None

    @property
    def root(self) -> Optional[Node]:
        return self.tree.root_node if self.tree is not None else None

    def builder(self, scope: TypedefScope = GLOBAL) -> TypeBuilder:
        resolver = None
        if self.session is not None:
            session = self.session

            def resolver(spec: str, name: Optional[str]) -> Optional[Type]:
                return session.import_typedef(spec, name, self.path)

        return TypeBuilder(self.typedefs, scope, resolver)

    def declared_type(self, line: int) -> Optional[Type]:
        """Type declared by the doc comment attached to `line`, built on first use."""
        hit = self.declared.get(line)
        if hit is not None:
            return hit
        entry = self.pending.pop(line, None)
        if entry is None:
            return None
        tags, scope = entry
        built = self.builder(scope).build_comment(tags)
        if built is not None:
            self.declared[line] = built
        return built

    def type_at_line(self, line: int) -> Type:
        t = self.declared_type(line)
        return ANY if t is None else t

    def has_declaration(self, line: int) -> bool:
        return line in self.declared or line in self.pending


class AnalysisSession:
    def __init__(
        self,
        *,
        follow_imports: bool = True,
        module_resolver: Optional[ModuleResolver] = None,
    ) -> None:
        self.follow_imports = follow_imports
        self.module_resolver = module_resolver or resolve_module_path
        self.typedefs = TypedefTable()
        self._files: Dict[str, FileInfo] = {}
        self._sources: Dict[str, str] = {}

    @staticmethod
    def canonical(path: str | Path) -> str:
        return str(Path(path).resolve())

    def __contains__(self, path: str | Path) -> bool:
        return self.canonical(path) in self._files

    def files(self) -> List[FileInfo]:
        return list(self._files.values())

    def clear(self) -> None:
        self._files.clear()
        self._sources.clear()
        self.typedefs.clear()

    def add_source(self, path: str | Path, source: str) -> FileInfo:
        """Register in-memory source for `path`, replacing any earlier version."""
        key = self.canonical(path)
        if key in self._files:
            del self._files[key]
            self.typedefs.discard_origin(key)
        self._sources[key] = source
        return self.get_file_info(key)

    def _exists(self, path: Path) -> bool:
        return str(path) in self._sources or path.is_file()

    def resolve_module(self, specifier: str, from_path: str | Path) -> Optional[str]:
        return self.module_resolver(specifier, from_path, exists=self._exists)

    def get_file_info(self, path: str | Path) -> FileInfo:
        key = self.canonical(path)
        fi = self._files.get(key)
        if fi is not None:
            return fi
        fi = FileInfo(path=key, typedefs=self.typedefs, session=self)
        self._files[key] = fi
        try:
            self._populate(fi)
        except Exception:
            self._files.pop(key, None)
            self.typedefs.discard_origin(key)
            raise
        return fi

    def import_typedef(self, specifier: str, name: Optional[str], from_path: str) -> Optional[Type]:
        """Typedef `name` as registered by the file `specifier` points at."""
        target = self.resolve_module(specifier, from_path)
        if target is None or name is None:
            return None
        self.get_file_info(target)
        return self.typedefs.lookup_origin(name, target)

    # -- population ------------------------------------------------------

    def _populate(self, fi: FileInfo) -> None:
        source = self._sources.get(fi.path)
        if source is None:
            try:
                source = Path(fi.path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Cannot read %s: %s", fi.path, e)
                fi.error = str(e)
                return
        fi.source = source
        fi.tree = parse_source(source)
        fi.scope = analyze_scope(fi.root)

        if self.follow_imports:
            for _, spec in iter_imports(fi.root):
                target = self.resolve_module(spec, fi.path)
                if target is None:
                    logger.debug("Unresolved import %r in %s", spec, fi.path)
                    continue
                self.get_file_info(target)

        self._scan_comments(fi)
        logger.debug(
            "Scanned %s: %d declarations, %d typedefs",
            fi.path, len(fi.pending), len(fi.typedef_names),
        )

    def _scan_comments(self, fi: FileInfo) -> None:
        scope = GLOBAL
        typedefs: List[Tuple[List[Tag], Alias, TypedefScope]] = []
        data = fi.source.encode("utf-8")
        for c in comments(fi.root):
            raw = text(c)
            if not is_doc_comment(raw):
                continue
            tags = parse_comment(raw)
            scope = apply_scope_tags(tags, scope)
            head = typedef_tag(tags)
            if head is not None:
                alias = self.typedefs.register(head.name, scope, origin=fi.path)
                typedefs.append((tags, alias, scope))
                fi.typedef_names.append(head.name)
                continue
            if tags:
                fi.pending[_documented_line(c, data)] = (tags, scope)

        # every placeholder is registered before any definition is built
        for tags, alias, td_scope in typedefs:
            fi.builder(td_scope).build_typedef(tags, alias)


def _documented_line(comment: Node, data: bytes) -> int:
    """The line a doc comment documents: its own when code follows it there, else the next."""
    end = comment.end_byte
    eol = data.find(b"\n", end)
    rest = data[end:] if eol < 0 else data[end:eol]
    if rest.strip():
        return comment.end_point[0] + 1
    return comment.end_point[0] + 2
