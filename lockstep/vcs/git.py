"""Interfaces for invoking ``git`` within a workspace."""

from __future__ import annotations

import logging
import typing as typ

from plumbum import local
from plumbum.commands.processes import CommandNotFound

from lockstep.utils import normalise_workspace_root

if typ.TYPE_CHECKING:
    from pathlib import Path

    from plumbum.machines.local import LocalCommand

LOGGER = logging.getLogger(__name__)

# ``git diff-index --quiet`` exits with 1 when differences exist.
_DIFFERENCES_FOUND = 1


class GitError(RuntimeError):
    """Raised when ``git`` cannot be executed successfully."""


class GitExecutableNotFoundError(GitError):
    """Raised when the ``git`` executable is missing from ``PATH``."""

    def __init__(self) -> None:
        """Initialise the error with a descriptive message."""
        super().__init__("The 'git' executable could not be located.")


class GitInvocationError(GitError):
    """Raised when a ``git`` subcommand exits with a failure code."""

    def __init__(
        self, args: typ.Sequence[str], exit_code: int, stdout: str, stderr: str
    ) -> None:
        """Summarise the failing invocation for the caller."""
        self.exit_code = exit_code
        detail = (
            stderr.strip() or stdout.strip() or f"exited with status {exit_code}"
        )
        super().__init__(f"git {' '.join(args[:1])} failed: {detail}")


def _ensure_command() -> LocalCommand:
    """Return the ``git`` command object."""
    try:
        return local["git"]
    except CommandNotFound as exc:
        raise GitExecutableNotFoundError from exc


def _coerce_text(value: str | bytes) -> str:
    """Normalise process output to text."""
    return value.decode("utf-8") if isinstance(value, bytes) else value


def _invoke(workspace_root: Path | str | None, *args: str) -> tuple[int, str, str]:
    """Run ``git`` with ``args`` in the workspace and return its raw result."""
    command = _ensure_command()
    root_path = normalise_workspace_root(workspace_root)
    LOGGER.debug("Running git %s in %s", " ".join(args), root_path)
    exit_code, stdout, stderr = command.run(args, retcode=None, cwd=str(root_path))
    return exit_code, _coerce_text(stdout), _coerce_text(stderr)


def _run(workspace_root: Path | str | None, *args: str) -> str:
    """Run ``git`` and return its stdout, raising when it exits non-zero."""
    exit_code, stdout, stderr = _invoke(workspace_root, *args)
    if exit_code != 0:
        raise GitInvocationError(args, exit_code, stdout, stderr)
    return stdout


def has_uncommitted_changes(workspace_root: Path | str | None = None) -> bool:
    """Return ``True`` unless ``git`` confirms the tree matches ``HEAD``.

    A failing query (no repository, or no ``HEAD`` yet) cannot prove the tree
    is clean, so it counts as uncommitted changes.
    """
    exit_code, _, stderr = _invoke(
        workspace_root, "diff-index", "--quiet", "HEAD", "--"
    )
    if exit_code not in {0, _DIFFERENCES_FOUND}:
        LOGGER.warning(
            "git diff-index exited with status %s (%s); treating the working "
            "tree as having uncommitted changes",
            exit_code,
            stderr.strip() or "no output",
        )
    return exit_code != 0


def diff_stat(
    workspace_root: Path | str | None, paths: typ.Sequence[str]
) -> str:
    """Return ``git diff --stat`` output restricted to ``paths``."""
    return _run(workspace_root, "diff", "--stat", "--", *paths).rstrip()


def stage(workspace_root: Path | str | None, paths: typ.Sequence[str]) -> None:
    """Add ``paths`` to the index."""
    _run(workspace_root, "add", "--", *paths)


def commit(
    workspace_root: Path | str | None, message: str, paths: typ.Sequence[str]
) -> None:
    """Create a commit containing only ``paths`` with ``message``."""
    _run(workspace_root, "commit", "--message", message, "--", *paths)
