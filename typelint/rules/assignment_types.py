"""Assignments and initializers must respect a variable's declared type."""

from __future__ import annotations

from typing import Any, Dict

from tree_sitter import Node

from typelint.tools.jsparse import field
from typelint.tools.types import AnyType, is_of_type

NAME = "assignment-types-must-match"
NODE_TYPES = ("assignment_expression", "variable_declarator")
SCHEMA: Dict[str, Any] = {"type": "object", "additionalProperties": False}
DEFAULTS: Dict[str, Any] = {}


def check(node: Node, ctx) -> None:
    if node.type == "variable_declarator":
        _check_initializer(node, ctx)
    else:
        _check_assignment(node, ctx)


def _check_initializer(node: Node, ctx) -> None:
    name = field(node, "name")
    value = field(node, "value")
    if value is None or name is None or name.type != "identifier":
        return
    declared = ctx.resolver.declared_for(node, ctx.file_info)
    if declared is None or isinstance(declared, AnyType):
        return
    actual = ctx.type_of(value)
    if isinstance(actual, AnyType):
        return
    if not is_of_type(actual, declared):
        ctx.report(node, f"can't initialize variable of type {declared} with value of type {actual}")


def _check_assignment(node: Node, ctx) -> None:
    declared = ctx.type_of(field(node, "left"))
    if isinstance(declared, AnyType):
        return
    actual = ctx.type_of(field(node, "right"))
    if isinstance(actual, AnyType):
        return
    if not is_of_type(actual, declared):
        ctx.report(node, f"can't assign type {actual} to variable of type {declared}")
