"""Utility helpers for the :mod:`lockstep` package."""

from __future__ import annotations

from .files import write_atomic_text
from .path import normalise_workspace_root

__all__ = ["normalise_workspace_root", "write_atomic_text"]
