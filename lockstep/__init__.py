"""Release version synchronisation for the beads repository.

Importing the package builds the Cyclopts application; :func:`main` is the
``lockstep`` console entry point.
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
