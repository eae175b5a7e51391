"""Calls must pass as many arguments as the called function takes.

A parameter may be left out when it has a default value, is a rest
parameter, or is declared with a type that accepts `undefined`.
"""

from __future__ import annotations

from typing import Any, Dict

from tree_sitter import Node

from typelint.tools.jsparse import call_arguments, param_has_default, param_is_rest
from typelint.tools.types import AnyType, accepts_undefined

NAME = "function-args-length-must-match"
NODE_TYPES = ("call_expression",)
SCHEMA: Dict[str, Any] = {"type": "object", "additionalProperties": False}
DEFAULTS: Dict[str, Any] = {}


def _optional(declared) -> bool:
    return not isinstance(declared, AnyType) and accepts_undefined(declared)


def check(node: Node, ctx) -> None:
    sig = ctx.resolver.call_signature(node, ctx.file_info)
    if sig is None:
        return
    args = call_arguments(node)
    if args is None or any(a.type == "spread_element" for a in args):
        return
    given = len(args)

    declared = sig.type.args
    if sig.params is not None:
        total = len(sig.params)
        variadic = any(param_is_rest(p) for p in sig.params)
        required = sum(
            1
            for i, p in enumerate(sig.params)
            if not (param_has_default(p) or param_is_rest(p) or (i < len(declared) and _optional(declared[i])))
        )
    else:
        total = sig.type.argument_count
        variadic = False
        required = sum(1 for t in declared if not _optional(t))

    if total == 0 and not variadic:
        if given > 0:
            ctx.report(node, f"function {sig.name} expects no arguments but was called with {given}")
        return
    if given < required or (given > total and not variadic):
        ctx.report(node, f"function {sig.name} expects {total} arguments but was called with {given}")
