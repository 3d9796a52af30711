"""Compatibility wrapper running ``lockstep bump`` from the repository root."""

from __future__ import annotations

import sys
import typing as typ

from lockstep.cli import main

USAGE = """\
Usage: {program} <version> [--commit]

Bump version across all tracked components.

Arguments:
  <version>    Semantic version (e.g., 0.9.3, 1.0.0)
  --commit     Automatically create a git commit (optional)
"""


def run(argv: typ.Sequence[str]) -> int:
    """Translate legacy script arguments into a ``lockstep bump`` invocation."""
    program, *arguments = argv or ("bump_version.py",)
    if not arguments or arguments[0].startswith("-"):
        print(USAGE.format(program=program), file=sys.stderr)
        return 1
    return main(["bump", *arguments])


if __name__ == "__main__":  # pragma: no cover - import-time compatibility shim
    raise SystemExit(run(sys.argv))
