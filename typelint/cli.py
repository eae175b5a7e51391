#!/usr/bin/env python3
"""typelint unified CLI.

This CLI intentionally delegates argument parsing to the individual tool modules.
That keeps each tool usable both as:
- `typelint <tool> ...`
- `python -m typelint.tools.<tool> ...`

Commands:
- lint          Run the type rules over files or directories
- types         Print the resolved type of each top-level declaration
- resolve       Show a file's imports (with resolved paths), exports and typedefs
- version       Show current version

Example:
  typelint lint src/ --config typelint.json
"""

from __future__ import annotations

import sys
from typing import List, Optional

from typelint.tools import lint, resolve, typecheck


def _help() -> str:
    return (
        "typelint CLI\n\n"
        "Usage:\n"
        "  typelint <command> [args...]\n\n"
        "Commands:\n"
        "  lint          Check assignments, calls and returns against JSDoc types\n"
        "  types         Show resolved types of top-level declarations\n"
        "  resolve       Show imports, exports and typedefs of a file\n"
        "  version       Show current version\n"
    )


def _version() -> str:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("typelint")
    except PackageNotFoundError:
        return "unknown"


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] in {"-h", "--help", "help"}:
        sys.stdout.write(_help())
        return 0

    cmd, rest = argv[0], argv[1:]
    if cmd in {"--version", "-V", "version"}:
        print(_version())
        return 0
    if cmd == "lint":
        return lint.main(rest)
    if cmd == "types":
        return typecheck.main(rest)
    if cmd == "resolve":
        return resolve.main(rest)

    sys.stderr.write(f"Unknown command: {cmd}\n\n")
    sys.stderr.write(_help())
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
