"""Command implementations exposed by the :mod:`lockstep` CLI."""

from __future__ import annotations

from . import bump, check

__all__ = ["bump", "check"]
