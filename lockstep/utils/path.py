"""Filesystem helpers used across :mod:`lockstep`."""

from __future__ import annotations

from pathlib import Path

from plumbum import local


def normalise_workspace_root(value: Path | str | None) -> Path:
    """Return the absolute workspace root, defaulting to the current directory.

    ``~`` is expanded from plumbum's view of the environment, so ``HOME``
    set through ``local.env`` applies. Relative values resolve against the
    process's current directory at call time.
    """
    if value is None:
        return Path.cwd().resolve()
    expanded = Path(local.env.expanduser(str(value)))
    return (Path.cwd() / expanded).resolve(strict=False)
