"""JavaScript parsing through tree-sitter.

The grammar comes from tree-sitter-language-pack; one parser per language is
created lazily and cached on a process-wide registry. The helpers below smooth
over the few places where tree-sitter's raw node API is awkward for analysis
(comment nodes mixed into children, byte-offset text, 0-based rows).
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional

from tree_sitter import Node, Parser, Tree
from tree_sitter_language_pack import get_language

logger = logging.getLogger(__name__)

FUNCTION_NODES = {
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
}

JSX_NODES = {"jsx_element", "jsx_self_closing_element", "jsx_fragment"}


class ParserRegistry:
    """Lazily created tree-sitter parsers, keyed by language name."""

    def __init__(self) -> None:
        self._parsers: Dict[str, Parser] = {}

    def get_parser(self, language: str = "javascript") -> Parser:
        language = language.lower()
        parser = self._parsers.get(language)
        if parser is None:
            parser = Parser(get_language(language))
            self._parsers[language] = parser
            logger.debug("Loaded %s parser", language)
        return parser


_registry: Optional[ParserRegistry] = None


def get_registry() -> ParserRegistry:
    global _registry
    if _registry is None:
        _registry = ParserRegistry()
    return _registry


def parse_source(source: str) -> Tree:
    tree = get_registry().get_parser("javascript").parse(source.encode("utf-8"))
    if tree.root_node.has_error:
        logger.debug("Source parsed with syntax errors")
    return tree


# -------------------------
# Node helpers
# -------------------------

def text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def line_of(node: Node) -> int:
    return node.start_point[0] + 1


def node_key(node: Node) -> tuple:
    return (node.start_byte, node.end_byte, node.type)


def named(node: Node) -> List[Node]:
    return [c for c in node.named_children if c.type != "comment"]


def field(node: Optional[Node], name: str) -> Optional[Node]:
    if node is None:
        return None
    return node.child_by_field_name(name)


def walk(root: Node) -> Iterator[Node]:
    """Depth-first, pre-order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def comments(root: Node) -> List[Node]:
    return [n for n in walk(root) if n.type == "comment"]


def is_doc_comment(raw: str) -> bool:
    return raw.startswith("/**") and not raw.startswith("/**/")


def string_value(node: Node) -> str:
    raw = text(node)
    if node.type == "string" and len(raw) >= 2 and raw[0] in "'\"":
        return raw[1:-1]
    return raw


def unparenthesize(node: Optional[Node]) -> Optional[Node]:
    while node is not None and node.type == "parenthesized_expression":
        inner = named(node)
        node = inner[0] if inner else None
    return node


def ancestors(node: Node) -> Iterator[Node]:
    cur = node.parent
    while cur is not None:
        yield cur
        cur = cur.parent


def enclosing_function(node: Node) -> Optional[Node]:
    for anc in ancestors(node):
        if anc.type in FUNCTION_NODES:
            return anc
    return None


# -------------------------
# Function parameters
# -------------------------

def params_of(fn: Node) -> List[Node]:
    single = fn.child_by_field_name("parameter")
    if single is not None:
        return [single]
    params = fn.child_by_field_name("parameters")
    if params is None:
        return []
    return named(params)


def param_name(param: Node) -> Optional[str]:
    if param.type == "identifier":
        return text(param)
    if param.type == "assignment_pattern":
        left = param.child_by_field_name("left")
        if left is not None and left.type == "identifier":
            return text(left)
        return None
    if param.type == "rest_pattern":
        for c in named(param):
            if c.type == "identifier":
                return text(c)
    return None


def param_has_default(param: Node) -> bool:
    return param.type == "assignment_pattern"


def param_is_rest(param: Node) -> bool:
    return param.type == "rest_pattern"


def call_arguments(call: Node) -> Optional[List[Node]]:
    """Argument expressions of a call; None for tagged templates."""
    args = call.child_by_field_name("arguments")
    if args is None or args.type != "arguments":
        return None
    return named(args)
