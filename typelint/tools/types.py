"""Structural type model for JSDoc-annotated JavaScript.

Variants
- AnyType: top; permissive as a target, opaque as a value
- InvalidType: bottom; compatible with nothing in either role
- Prim: named primitive (string, number, boolean, undefined, null, RegExp)
  or any other bare nominal name
- Alias: a named typedef reference, rebound exactly once
- UnionT, RecordT, ArrayT, FunctionT

Compatibility is answered by two mirror predicates:
- is_of_type(value, required): can `value` be used where `required` is expected?
- is_supertype_of(required, value): the same question asked from the other side

Each predicate handles the pairings it understands and hands anything else to
its mirror, so the variant that knows the combination gets to decide.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)


# -------------------------
# Type model
# -------------------------

class Type:
    def render(self, nested: bool = False) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class AnyType(Type):
    def render(self, nested: bool = False) -> str:
        return "any"


@dataclass(frozen=True)
class InvalidType(Type):
    def render(self, nested: bool = False) -> str:
        return "invalid"


@dataclass(frozen=True)
class Prim(Type):
    name: str

    def render(self, nested: bool = False) -> str:
        return self.name


@dataclass(eq=False)
class Alias(Type):
    """Named reference to a typedef.

    Created empty and registered before its definition is built, so the
    definition can refer back to it. `bind` fills it in exactly once.
    """

    name: str
    target: Optional[Type] = None
    bound: bool = field(default=False, repr=False)

    def bind(self, target: Type) -> None:
        if self.bound:
            raise RuntimeError(f"typedef {self.name} is already bound")
        cur: Optional[Type] = target
        while isinstance(cur, Alias):
            if cur is self:
                logger.warning("typedef %s resolves to itself; treating it as invalid", self.name)
                target = INVALID
                break
            cur = cur.target
        self.target = target
        self.bound = True

    def resolved(self) -> Type:
        cur: Type = self
        while isinstance(cur, Alias):
            if cur.target is None:
                return ANY
            cur = cur.target
        return cur

    def render(self, nested: bool = False) -> str:
        return self.name


@dataclass(frozen=True)
class UnionT(Type):
    members: Tuple[Type, ...]

    def render(self, nested: bool = False) -> str:
        inside = "|".join(m.render() for m in self.members)
        return f"({inside})" if nested else inside


@dataclass(frozen=True)
class RecordT(Type):
    fields: Dict[str, Type]

    def render(self, nested: bool = False) -> str:
        inside = ", ".join(f"{k}:{v.render()}" for k, v in self.fields.items())
        return f"{{{inside}}}"


@dataclass(frozen=True)
class ArrayT(Type):
    elem: Type

    def render(self, nested: bool = False) -> str:
        return f"{self.elem.render(nested=True)}[]"


@dataclass(frozen=True)
class FunctionT(Type):
    ret: Type
    args: Tuple[Type, ...] = ()
    params: Dict[str, Type] = field(default_factory=dict)

    @property
    def argument_count(self) -> int:
        return len(self.args)

    def render(self, nested: bool = False) -> str:
        inside = ",".join(a.render(nested=True) for a in self.args)
        return f"function({inside}):{self.ret.render(nested=True)}"


ANY = AnyType()
INVALID = InvalidType()
UNDEFINED = Prim("undefined")
NULL = Prim("null")
STRING = Prim("string")
NUMBER = Prim("number")
BOOLEAN = Prim("boolean")
REGEXP = Prim("RegExp")

_OBJECT_NAMES = {"object", "Object"}
_FUNCTION_NAMES = {"function", "Function"}


def prim(name: str) -> Prim:
    return Prim("".join(name.split()))


def make_union(*types: Type) -> Type:
    """Flatten, de-duplicate and collapse a union."""
    flat: List[Type] = []
    for t in _flatten(types):
        if not any(t is f or t == f for f in flat):
            flat.append(t)
    if not flat:
        return ANY
    if len(flat) == 1:
        return flat[0]
    return UnionT(tuple(flat))


def _flatten(types: Iterable[Type]) -> Iterable[Type]:
    for t in types:
        if isinstance(t, UnionT):
            yield from _flatten(t.members)
        else:
            yield t


def unwrap(t: Type) -> Type:
    return t.resolved() if isinstance(t, Alias) else t


def get_property(t: Type, name: str) -> Type:
    t = unwrap(t)
    if isinstance(t, RecordT):
        return t.fields.get(name, ANY)
    if isinstance(t, Prim) and t.name in ("undefined", "null"):
        return INVALID
    return ANY


def return_type(t: Type) -> Type:
    t = unwrap(t)
    if isinstance(t, FunctionT):
        return t.ret
    return ANY


def accepts_undefined(t: Type) -> bool:
    return is_of_type(UNDEFINED, t)


# -------------------------
# Compatibility
# -------------------------

_Seen = Set[Tuple[str, int, int]]


def is_of_type(value: Type, required: Type) -> bool:
    """value ⊑ required"""
    return _is_of_type(value, required, set())


def is_supertype_of(required: Type, value: Type) -> bool:
    return _is_supertype_of(required, value, set())


def _is_of_type(value: Type, required: Type, seen: _Seen) -> bool:
    if value is required:
        return True
    if isinstance(value, Alias):
        # a pair already under comparison holds unless proven otherwise
        key = ("of", id(value), id(required))
        if key in seen:
            return True
        seen.add(key)
        return _is_of_type(value.resolved(), required, seen)
    if isinstance(value, InvalidType):
        return False
    if isinstance(value, AnyType):
        return _is_supertype_of(required, value, seen)
    if isinstance(value, UnionT):
        return all(_is_of_type(m, required, seen) for m in value.members)
    if isinstance(value, Prim) and isinstance(required, Prim):
        return value.name == required.name
    if isinstance(value, RecordT) and isinstance(required, RecordT):
        return all(
            _is_of_type(value.fields.get(k, ANY), t, seen) for k, t in required.fields.items()
        )
    if isinstance(value, ArrayT) and isinstance(required, ArrayT):
        return _is_of_type(required.elem, value.elem, seen)
    if isinstance(value, FunctionT) and isinstance(required, FunctionT):
        if not _is_of_type(value.ret, required.ret, seen):
            return False
        n = min(len(required.args), len(value.args))
        return all(_is_of_type(required.args[i], value.args[i], seen) for i in range(n))
    if isinstance(value, FunctionT) and isinstance(required, Prim) and required.name in _FUNCTION_NAMES:
        return True
    return _is_supertype_of(required, value, seen)


def _is_supertype_of(required: Type, value: Type, seen: _Seen) -> bool:
    if required is value:
        return True
    if isinstance(required, Alias):
        key = ("super", id(required), id(value))
        if key in seen:
            return True
        seen.add(key)
        return _is_supertype_of(required.resolved(), value, seen)
    if isinstance(required, AnyType):
        return True
    if isinstance(required, InvalidType):
        return False
    if isinstance(required, UnionT):
        return any(_is_supertype_of(m, value, seen) for m in required.members)
    if isinstance(required, Prim):
        if isinstance(value, Prim):
            return value.name == required.name
        if isinstance(value, RecordT) and required.name in _OBJECT_NAMES:
            return True
        if isinstance(value, FunctionT) and required.name in _FUNCTION_NAMES:
            return True
    if isinstance(required, (RecordT, ArrayT, FunctionT)) and type(value) is type(required):
        return _is_of_type(value, required, seen)
    if isinstance(value, (Alias, UnionT)):
        return _is_of_type(value, required, seen)
    return False
