"""Compat modules exposing legacy script entrypoints."""

# Release runbooks invoke ``scripts/bump_version.py <version> [--commit]``;
# the wrapper forwards to :mod:`lockstep.cli` so both entry points share
# one implementation.
