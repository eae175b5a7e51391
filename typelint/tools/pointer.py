"""JSON Pointers (RFC 6901) into rule configuration documents.

Config validation errors point at the offending entry, e.g.
`/rules/function-args-types-must-match/1/ignoreTrailingUndefineds`.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Union

Segment = Union[str, int]


def _escape(seg: Segment) -> str:
    return str(seg).replace("~", "~0").replace("/", "~1")


def _unescape(seg: str) -> str:
    return seg.replace("~1", "/").replace("~0", "~")


def join_pointer(segments: Iterable[Segment]) -> str:
    return "".join("/" + _escape(s) for s in segments)


def split_pointer(pointer: str) -> List[str]:
    if not pointer:
        return []
    if pointer[0] != "/":
        raise ValueError(f"JSON pointer must start with '/': {pointer!r}")
    return [_unescape(p) for p in pointer[1:].split("/")]


def rule_at(pointer: str) -> Optional[str]:
    """Name of the rule whose config entry `pointer` falls under."""
    segs = split_pointer(pointer)
    if len(segs) >= 2 and segs[0] == "rules":
        return segs[1]
    return None
