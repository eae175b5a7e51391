"""Documentation-comment tags and the JSDoc type-expression grammar.

`parse_comment` splits a `/** ... */` block into Tag records.
`parse_type_expr` turns the text between a tag's braces into a small syntax
tree. The grammar is closed:

  name, a.b.c            NameExpression
  a|b, (a|b)             UnionType
  {a: T, b}              RecordType / FieldType
  function(T, U): R      FunctionType   (this:/new: parameters are dropped)
  Array.<T>, Map<K, V>   TypeApplication
  T[]                    ArrayType
  T=                     OptionalType
  ?T / !T / ...T         NullableType / NonNullableType / RestType
  *, null, undefined     AllLiteral / NullLiteral / UndefinedLiteral
  'text'                 StringLiteralType
  import('./x').Name     ImportType
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class TypeSyntaxError(ValueError):
    pass


# -------------------------
# Syntax nodes
# -------------------------

class TypeNode:
    pass


@dataclass(frozen=True)
class NameExpression(TypeNode):
    name: str


@dataclass(frozen=True)
class UnionType(TypeNode):
    elements: Tuple[TypeNode, ...]


@dataclass(frozen=True)
class FieldType(TypeNode):
    key: str
    value: Optional[TypeNode]


@dataclass(frozen=True)
class RecordType(TypeNode):
    fields: Tuple[FieldType, ...]


@dataclass(frozen=True)
class FunctionType(TypeNode):
    params: Tuple[TypeNode, ...]
    result: Optional[TypeNode]


@dataclass(frozen=True)
class TypeApplication(TypeNode):
    expression: NameExpression
    applications: Tuple[TypeNode, ...]


@dataclass(frozen=True)
class ArrayType(TypeNode):
    element: TypeNode


@dataclass(frozen=True)
class OptionalType(TypeNode):
    expression: TypeNode


@dataclass(frozen=True)
class NullableType(TypeNode):
    expression: TypeNode


@dataclass(frozen=True)
class NonNullableType(TypeNode):
    expression: TypeNode


@dataclass(frozen=True)
class RestType(TypeNode):
    expression: Optional[TypeNode]


@dataclass(frozen=True)
class AllLiteral(TypeNode):
    pass


@dataclass(frozen=True)
class NullLiteral(TypeNode):
    pass


@dataclass(frozen=True)
class UndefinedLiteral(TypeNode):
    pass


@dataclass(frozen=True)
class StringLiteralType(TypeNode):
    value: str


@dataclass(frozen=True)
class ImportType(TypeNode):
    path: str
    name: Optional[str]


# -------------------------
# Type expression parsing
# -------------------------

class _Tok:
    def __init__(self, kind: str, text: str) -> None:
        self.kind = kind
        self.text = text


_PUNCT = "|(){}[]<>,:=?!*."


def _tokenize(s: str) -> List[_Tok]:
    out: List[_Tok] = []
    i = 0
    while i < len(s):
        c = s[i]
        if c.isspace():
            i += 1
            continue
        if s.startswith("...", i):
            out.append(_Tok("...", "..."))
            i += 3
            continue
        if c in _PUNCT:
            out.append(_Tok(c, c))
            i += 1
            continue
        if c in "'\"`":
            j = s.find(c, i + 1)
            if j < 0:
                raise TypeSyntaxError(f"Unterminated string at {i}: {s[i:i+10]!r}")
            out.append(_Tok("STRING", s[i + 1:j]))
            i = j + 1
            continue
        j = i
        while j < len(s) and (s[j].isalnum() or s[j] in "_$"):
            j += 1
        if j == i:
            raise TypeSyntaxError(f"Invalid type char at {i}: {s[i:i+10]!r}")
        out.append(_Tok("IDENT", s[i:j]))
        i = j
    return out


class _Parser:
    def __init__(self, toks: List[_Tok]) -> None:
        self.toks = toks
        self.i = 0

    def peek(self, offset: int = 0) -> Optional[_Tok]:
        k = self.i + offset
        return self.toks[k] if k < len(self.toks) else None

    def accept(self, kind: str) -> Optional[_Tok]:
        t = self.peek()
        if t is not None and t.kind == kind:
            self.i += 1
            return t
        return None

    def expect(self, kind: str) -> _Tok:
        t = self.peek()
        if t is None or t.kind != kind:
            got = "end of input" if t is None else repr(t.text)
            raise TypeSyntaxError(f"Expected {kind!r}, got {got}")
        self.i += 1
        return t

    def at_end(self) -> bool:
        return self.i >= len(self.toks)

    def parse_top(self) -> TypeNode:
        t = self.parse_optional()
        if not self.at_end():
            raise TypeSyntaxError(f"Unexpected trailing token {self.peek().text!r}")
        return t

    def parse_optional(self) -> TypeNode:
        t = self.parse_union()
        if self.accept("="):
            return OptionalType(t)
        return t

    def parse_union(self) -> TypeNode:
        elems = [self.parse_prefixed()]
        while self.accept("|"):
            elems.append(self.parse_prefixed())
        if len(elems) == 1:
            return elems[0]
        return UnionType(tuple(elems))

    def parse_prefixed(self) -> TypeNode:
        if self.accept("?"):
            if self._at_terminator():
                return AllLiteral()
            return NullableType(self.parse_prefixed())
        if self.accept("!"):
            return NonNullableType(self.parse_prefixed())
        if self.accept("..."):
            if self._at_terminator():
                return RestType(None)
            return RestType(self.parse_prefixed())
        return self.parse_postfix()

    def _at_terminator(self) -> bool:
        t = self.peek()
        return t is None or t.kind in {",", ")", "}", ">", "=", "|", "]"}

    def parse_postfix(self) -> TypeNode:
        t = self.parse_primary()
        while self.peek() is not None and self.peek().kind == "[":
            nxt = self.peek(1)
            if nxt is None or nxt.kind != "]":
                break
            self.i += 2
            t = ArrayType(t)
        return t

    def parse_primary(self) -> TypeNode:
        if self.accept("("):
            inner = self.parse_union()
            self.expect(")")
            return inner
        if self.accept("{"):
            return self.parse_record()
        if self.accept("*"):
            return AllLiteral()
        tok = self.accept("STRING")
        if tok is not None:
            return StringLiteralType(tok.text)
        tok = self.expect("IDENT")
        nxt = self.peek()
        if tok.text == "function" and nxt is not None and nxt.kind == "(":
            return self.parse_function()
        if tok.text == "import" and nxt is not None and nxt.kind == "(":
            return self.parse_import()
        if tok.text == "null":
            return NullLiteral()
        if tok.text == "undefined":
            return UndefinedLiteral()
        return self.parse_name_rest(tok.text)

    def parse_name_rest(self, head: str) -> TypeNode:
        parts = [head]
        while self.peek() is not None and self.peek().kind == ".":
            nxt = self.peek(1)
            if nxt is not None and nxt.kind == "<":
                self.i += 1
                break
            if nxt is None or nxt.kind != "IDENT":
                raise TypeSyntaxError(f"Expected name after '.' in {'.'.join(parts)!r}")
            self.i += 2
            parts.append(nxt.text)
        name = NameExpression(".".join(parts))
        if self.accept("<"):
            apps = [self.parse_union()]
            while self.accept(","):
                apps.append(self.parse_union())
            self.expect(">")
            return TypeApplication(name, tuple(apps))
        return name

    def parse_record(self) -> TypeNode:
        fields: List[FieldType] = []
        if self.accept("}"):
            return RecordType(())
        while True:
            key = self.accept("IDENT") or self.accept("STRING")
            if key is None:
                raise TypeSyntaxError("Expected record key")
            value = None
            if self.accept(":"):
                value = self.parse_optional()
            fields.append(FieldType(key.text, value))
            if self.accept(","):
                continue
            self.expect("}")
            return RecordType(tuple(fields))

    def parse_function(self) -> TypeNode:
        self.expect("(")
        params: List[TypeNode] = []
        if not self.accept(")"):
            while True:
                head = self.peek()
                colon = self.peek(1)
                if head is not None and head.kind == "IDENT" and head.text in ("this", "new") \
                        and colon is not None and colon.kind == ":":
                    self.i += 2
                    self.parse_optional()
                else:
                    params.append(self.parse_optional())
                if self.accept(","):
                    continue
                self.expect(")")
                break
        result = None
        if self.accept(":"):
            result = self.parse_prefixed()
        return FunctionType(tuple(params), result)

    def parse_import(self) -> TypeNode:
        self.expect("(")
        path = self.expect("STRING").text
        self.expect(")")
        parts: List[str] = []
        while self.accept("."):
            parts.append(self.expect("IDENT").text)
        return ImportType(path, ".".join(parts) or None)


def parse_type_expr(expr: str) -> TypeNode:
    toks = _tokenize(expr)
    if not toks:
        raise TypeSyntaxError("Empty type expression")
    return _Parser(toks).parse_top()


# -------------------------
# Comment tags
# -------------------------

NAMED_TAGS = {"param", "arg", "argument", "property", "prop", "typedef", "callback", "module"}

_LEADING_STAR = re.compile(r"^[ \t]*\*(?!/) ?", re.MULTILINE)
_TAG_NAME = re.compile(r"@([A-Za-z_][\w-]*)")


@dataclass
class Tag:
    tag: str
    type: Optional[TypeNode] = None
    type_text: Optional[str] = None
    name: Optional[str] = None
    optional: bool = False
    default: Optional[str] = None
    description: str = ""


def comment_body(text: str) -> str:
    body = text
    if body.startswith("/**"):
        body = body[3:]
    elif body.startswith("/*"):
        body = body[2:]
    if body.endswith("*/"):
        body = body[:-2]
    return _LEADING_STAR.sub("", body)


def _split_blocks(body: str) -> List[str]:
    blocks: List[str] = []
    depth = 0
    start: Optional[int] = None
    for i, c in enumerate(body):
        if c == "{":
            depth += 1
        elif c == "}":
            depth = max(0, depth - 1)
        elif c == "@" and depth == 0 and (i == 0 or body[i - 1].isspace()):
            if start is not None:
                blocks.append(body[start:i])
            start = i
    if start is not None:
        blocks.append(body[start:])
    return blocks


def _read_braced(s: str) -> Tuple[Optional[str], str]:
    if not s.startswith("{"):
        return None, s
    depth = 0
    for i, c in enumerate(s):
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return s[1:i].strip(), s[i + 1:]
    return s[1:].strip(), ""


def _read_bracketed(s: str) -> Tuple[str, str]:
    depth = 0
    for i, c in enumerate(s):
        if c == "[":
            depth += 1
        elif c == "]":
            depth -= 1
            if depth == 0:
                return s[1:i].strip(), s[i + 1:]
    return s[1:].strip(), ""


def _parse_block(block: str) -> Optional[Tag]:
    m = _TAG_NAME.match(block)
    if m is None:
        return None
    tag = Tag(tag=m.group(1))
    rest = block[m.end():].lstrip()

    type_text, rest = _read_braced(rest)
    if type_text is not None:
        tag.type_text = type_text
        try:
            tag.type = parse_type_expr(type_text)
        except TypeSyntaxError as e:
            logger.warning("Ignoring malformed type {%s} on @%s: %s", type_text, tag.tag, e)
        rest = rest.lstrip()

    if tag.tag in NAMED_TAGS and rest:
        if rest.startswith("["):
            inner, rest = _read_bracketed(rest)
            name, eq, default = inner.partition("=")
            tag.name = name.strip()
            tag.optional = True
            tag.default = default.strip() if eq else None
        else:
            parts = rest.split(None, 1)
            tag.name = parts[0]
            rest = parts[1] if len(parts) > 1 else ""

    desc = rest.strip()
    if desc.startswith("-"):
        desc = desc[1:].strip()
    tag.description = desc
    return tag


def parse_comment(text: str) -> List[Tag]:
    """Split a raw block comment into its tags, in source order."""
    tags: List[Tag] = []
    for block in _split_blocks(comment_body(text)):
        tag = _parse_block(block)
        if tag is not None:
            tags.append(tag)
    return tags
