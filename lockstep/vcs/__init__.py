"""Version-control helpers for :mod:`lockstep`."""

from __future__ import annotations

from .git import (
    GitError,
    GitExecutableNotFoundError,
    GitInvocationError,
    commit,
    diff_stat,
    has_uncommitted_changes,
    stage,
)

__all__ = [
    "GitError",
    "GitExecutableNotFoundError",
    "GitInvocationError",
    "commit",
    "diff_stat",
    "has_uncommitted_changes",
    "stage",
]
