"""Call arguments must match the declared parameter types of the callee.

Options:
- ignoreTrailingUndefineds: do not report declared parameters the call
  leaves out (they are implicitly `undefined`)
"""

from __future__ import annotations

from typing import Any, Dict

from tree_sitter import Node

from typelint.tools.jsparse import call_arguments, param_has_default, param_is_rest
from typelint.tools.types import AnyType, accepts_undefined, is_of_type

NAME = "function-args-types-must-match"
NODE_TYPES = ("call_expression",)
SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {"ignoreTrailingUndefineds": {"type": "boolean"}},
    "additionalProperties": False,
}
DEFAULTS: Dict[str, Any] = {"ignoreTrailingUndefineds": False}


def check(node: Node, ctx) -> None:
    sig = ctx.resolver.call_signature(node, ctx.file_info)
    if sig is None:
        return
    args = call_arguments(node)
    if args is None:
        return

    for i, expected in enumerate(sig.type.args):
        if isinstance(expected, AnyType):
            continue
        shown = expected.render(nested=True)
        if i >= len(args):
            param = sig.params[i] if sig.params is not None and i < len(sig.params) else None
            if param is not None and (param_has_default(param) or param_is_rest(param)):
                continue
            if accepts_undefined(expected) or ctx.options["ignoreTrailingUndefineds"]:
                continue
            ctx.report(
                node,
                f"type {shown} expected for argument {i} in call to {sig.name} but undefined implicitly provided",
            )
            continue
        if args[i].type == "spread_element":
            return
        actual = ctx.type_of(args[i])
        if isinstance(actual, AnyType):
            continue
        if not is_of_type(actual, expected):
            ctx.report(node, f"type {shown} expected for argument {i} in call to {sig.name} but {actual} provided")
