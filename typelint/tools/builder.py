"""Turn parsed documentation tags into Type values.

Typedefs are built in two steps so recursive and forward references work:
every `@typedef`/`@callback` of a file is first registered as an empty Alias,
then each definition is built (any reference to a typedef name yields that
Alias) and the Alias is bound to the finished type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from typelint.tools.doctags import (
    AllLiteral,
    ArrayType,
    FunctionType,
    ImportType,
    NameExpression,
    NonNullableType,
    NullLiteral,
    NullableType,
    OptionalType,
    RecordType,
    RestType,
    StringLiteralType,
    Tag,
    TypeApplication,
    TypeNode,
    UndefinedLiteral,
    UnionType,
)
from typelint.tools.types import (
    ANY,
    INVALID,
    NULL,
    STRING,
    UNDEFINED,
    Alias,
    AnyType,
    ArrayT,
    FunctionT,
    Prim,
    RecordT,
    Type,
    make_union,
    prim,
    unwrap,
)

logger = logging.getLogger(__name__)

PARAM_TAGS = {"param", "arg", "argument"}
RETURN_TAGS = {"return", "returns"}
PROPERTY_TAGS = {"property", "prop"}
TYPEDEF_TAGS = {"typedef", "callback"}
FUNCTION_TAGS = {"function", "func", "method", "callback"}

ImportResolver = Callable[[str, Optional[str]], Optional[Type]]


class TypeBuildError(RuntimeError):
    """A type syntax node outside the supported grammar reached the builder."""


class TypedefRedefinitionError(RuntimeError):
    pass


# -------------------------
# Typedef table
# -------------------------

@dataclass(frozen=True)
class TypedefScope:
    kind: str = "global"
    name: Optional[str] = None

    def render(self) -> str:
        return self.kind if self.name is None else f"{self.kind} {self.name}"


GLOBAL = TypedefScope()


class TypedefTable:
    """Typedef aliases keyed by (scope, name), shared by every file of a session."""

    def __init__(self) -> None:
        self._entries: Dict[Tuple[TypedefScope, str], Alias] = {}
        self._origins: Dict[Tuple[TypedefScope, str], Optional[str]] = {}

    def register(self, name: str, scope: TypedefScope = GLOBAL, origin: Optional[str] = None) -> Alias:
        key = (scope, name)
        if key in self._entries:
            where = self._origins.get(key) or "an earlier comment"
            raise TypedefRedefinitionError(
                f"typedef {name} is already defined in {scope.render()} scope (first defined in {where})"
            )
        alias = Alias(name)
        self._entries[key] = alias
        self._origins[key] = origin
        logger.debug("Registered typedef %s in %s scope", name, scope.render())
        return alias

    def lookup(self, name: str, scope: TypedefScope = GLOBAL) -> Optional[Alias]:
        hit = self._entries.get((scope, name))
        if hit is None and scope != GLOBAL:
            hit = self._entries.get((GLOBAL, name))
        return hit

    def lookup_origin(self, name: str, origin: str) -> Optional[Alias]:
        for key, where in self._origins.items():
            if where == origin and key[1] == name:
                return self._entries[key]
        return None

    def discard_origin(self, origin: str) -> None:
        for key in [k for k, o in self._origins.items() if o == origin]:
            del self._entries[key]
            del self._origins[key]

    def clear(self) -> None:
        self._entries.clear()
        self._origins.clear()

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def __len__(self) -> int:
        return len(self._entries)


def apply_scope_tags(tags: Sequence[Tag], current: TypedefScope) -> TypedefScope:
    """`@module NAME` and `@global` switch the scope later typedefs are filed under."""
    scope = current
    for t in tags:
        if t.tag == "module":
            scope = TypedefScope("module", t.name or None)
        elif t.tag == "global":
            scope = GLOBAL
    return scope


def typedef_tag(tags: Sequence[Tag]) -> Optional[Tag]:
    for t in tags:
        if t.tag in TYPEDEF_TAGS and t.name:
            return t
    return None


# -------------------------
# Builder
# -------------------------

class TypeBuilder:
    def __init__(
        self,
        typedefs: Optional[TypedefTable] = None,
        scope: TypedefScope = GLOBAL,
        import_resolver: Optional[ImportResolver] = None,
    ) -> None:
        self.typedefs = typedefs if typedefs is not None else TypedefTable()
        self.scope = scope
        self.import_resolver = import_resolver

    def build(self, node: Optional[TypeNode]) -> Type:
        if node is None:
            return ANY
        if isinstance(node, NameExpression):
            return self._named(node.name)
        if isinstance(node, UnionType):
            return make_union(*(self.build(e) for e in node.elements))
        if isinstance(node, RecordType):
            return RecordT({f.key: self.build(f.value) for f in node.fields})
        if isinstance(node, FunctionType):
            args = tuple(self.build(p) for p in node.params)
            return FunctionT(self.build(node.result), args, {})
        if isinstance(node, TypeApplication):
            base = node.expression.name
            if base == "Array" and node.applications:
                return ArrayT(self.build(node.applications[0]))
            return self._named(base)
        if isinstance(node, ArrayType):
            return ArrayT(self.build(node.element))
        if isinstance(node, OptionalType):
            return make_union(self.build(node.expression), UNDEFINED)
        if isinstance(node, NullableType):
            return make_union(self.build(node.expression), NULL)
        if isinstance(node, (NonNullableType, RestType)):
            return self.build(node.expression)
        if isinstance(node, AllLiteral):
            return ANY
        if isinstance(node, NullLiteral):
            return NULL
        if isinstance(node, UndefinedLiteral):
            return UNDEFINED
        if isinstance(node, StringLiteralType):
            return STRING
        if isinstance(node, ImportType):
            return self._imported(node)
        raise TypeBuildError(f"Unsupported type syntax: {type(node).__name__}")

    def _named(self, name: str) -> Type:
        alias = self.typedefs.lookup(name, self.scope)
        if alias is not None:
            return alias
        if name in ("*", "any"):
            return ANY
        if name in ("undefined", "void"):
            return UNDEFINED
        if name == "null":
            return NULL
        if name == "Array":
            return ArrayT(ANY)
        return prim(name)

    def _imported(self, node: ImportType) -> Type:
        if self.import_resolver is not None:
            hit = self.import_resolver(node.path, node.name)
            if hit is not None:
                return hit
        logger.debug("Unresolved import type %s from %s", node.name, node.path)
        return prim(node.name) if node.name else ANY

    def tag_type(self, tag: Tag) -> Type:
        t = self.build(tag.type)
        if tag.optional and not isinstance(t, AnyType):
            return make_union(t, UNDEFINED)
        return t

    # -- comments --------------------------------------------------------

    def build_comment(self, tags: Sequence[Tag]) -> Optional[Type]:
        """The type a declaring comment attaches to the code that follows it."""
        for t in tags:
            if t.tag == "type":
                return self.tag_type(t)
        if any(t.tag in PARAM_TAGS or t.tag in RETURN_TAGS or t.tag in FUNCTION_TAGS for t in tags):
            return self.function_from_tags(tags)
        return None

    def function_from_tags(self, tags: Sequence[Tag]) -> FunctionT:
        ret: Type = ANY
        for t in tags:
            if t.tag in RETURN_TAGS:
                ret = self.tag_type(t)
                break

        top: List[Tuple[Optional[str], Type]] = []
        nested: Dict[str, List[Tuple[List[str], Type]]] = {}
        for t in tags:
            if t.tag not in PARAM_TAGS:
                continue
            if t.name and "." in t.name:
                head, _, rest = t.name.partition(".")
                nested.setdefault(head.removesuffix("[]"), []).append((rest.split("."), self.tag_type(t)))
                continue
            top.append((t.name, self.tag_type(t)))

        args: List[Type] = []
        params: Dict[str, Type] = {}
        for name, typ in top:
            if name and name in nested:
                typ = self._with_fields(typ, nested[name])
            args.append(typ)
            if name:
                params[name] = typ
        return FunctionT(ret, tuple(args), params)

    def _record_from(self, entries: List[Tuple[List[str], Type]], seed: Optional[Dict[str, Type]] = None) -> RecordT:
        fields: Dict[str, Type] = dict(seed or {})
        deeper: Dict[str, List[Tuple[List[str], Type]]] = {}
        for path, typ in entries:
            if len(path) == 1:
                fields[path[0]] = typ
            else:
                deeper.setdefault(path[0], []).append((path[1:], typ))
        for name, sub in deeper.items():
            fields[name] = self._with_fields(fields.get(name, ANY), sub)
        return RecordT(fields)

    def _with_fields(self, base: Type, entries: List[Tuple[List[str], Type]]) -> Type:
        inner = unwrap(base)
        if isinstance(inner, RecordT):
            return self._record_from(entries, inner.fields)
        if isinstance(inner, AnyType) or (isinstance(inner, Prim) and inner.name in ("object", "Object")):
            return self._record_from(entries)
        return base

    # -- typedefs --------------------------------------------------------

    def build_typedef(self, tags: Sequence[Tag], alias: Alias) -> Alias:
        head = typedef_tag(tags)
        if head is None:
            raise TypeBuildError(f"No @typedef or @callback tag for {alias.name}")
        if head.tag == "callback":
            target: Type = self.function_from_tags(tags)
        else:
            props = [(t.name.split("."), self.tag_type(t)) for t in tags if t.tag in PROPERTY_TAGS and t.name]
            if props:
                base = self.build(head.type) if head.type is not None else ANY
                target = self._with_fields(base, props)
                if not isinstance(unwrap(target), RecordT):
                    target = self._record_from(props)
            elif head.type is not None:
                target = self.build(head.type)
            else:
                logger.warning("typedef %s has neither a type nor properties", alias.name)
                target = INVALID
        alias.bind(target)
        return alias


def build_type(
    tag_or_node: Union[Tag, TypeNode, None],
    tags: Optional[Sequence[Tag]] = None,
    typedefs: Optional[TypedefTable] = None,
    scope: TypedefScope = GLOBAL,
) -> Type:
    """Build one tag (or bare type syntax node) against a typedef table.

    A `@typedef`/`@callback` tag registers its placeholder in `typedefs` and is
    built from the whole `tags` list it came from.
    """
    table = typedefs if typedefs is not None else TypedefTable()
    builder = TypeBuilder(table, scope)
    if isinstance(tag_or_node, Tag):
        if tag_or_node.tag in TYPEDEF_TAGS and tag_or_node.name:
            alias = table.register(tag_or_node.name, scope)
            return builder.build_typedef(list(tags) if tags else [tag_or_node], alias)
        return builder.tag_type(tag_or_node)
    return builder.build(tag_or_node)
