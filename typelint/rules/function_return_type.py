"""Returned values must match the enclosing function's declared return type.

Options:
- allowImplicitUndefineds: accept a bare `return;` even when the declared
  return type does not include `undefined`
"""

from __future__ import annotations

from typing import Any, Dict

from tree_sitter import Node

from typelint.tools.jsparse import named
from typelint.tools.types import AnyType, FunctionT, accepts_undefined, is_of_type, unwrap

NAME = "function-return-type-must-match"
NODE_TYPES = ("return_statement",)
SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {"allowImplicitUndefineds": {"type": "boolean"}},
    "additionalProperties": False,
}
DEFAULTS: Dict[str, Any] = {"allowImplicitUndefineds": False}


def check(node: Node, ctx) -> None:
    fn = ctx.resolver.containing_function(node)
    if fn is None:
        return
    fn_t = unwrap(ctx.type_of(fn))
    if not isinstance(fn_t, FunctionT) or isinstance(fn_t.ret, AnyType):
        return
    declared = fn_t.ret

    values = named(node)
    if not values:
        if not accepts_undefined(declared) and not ctx.options["allowImplicitUndefineds"]:
            ctx.report(node, f"returning an implicit undefined from a function declared to return {declared}")
        return

    actual = ctx.type_of(values[0])
    if isinstance(actual, AnyType):
        return
    if not is_of_type(actual, declared):
        ctx.report(node, f"returning {actual} from a function declared to return {declared}")
