"""Pytest configuration for the lockstep test-suite."""

from __future__ import annotations

import os
import typing as typ

import pytest

pytest_plugins = ("cmd_mox.pytest_plugin",)


@pytest.fixture(autouse=True)
def _restore_workspace_env() -> typ.Iterator[None]:
    """Ensure tests do not leak ``LOCKSTEP_WORKSPACE_ROOT`` between runs."""
    from lockstep.cli import WORKSPACE_ROOT_ENV_VAR

    original = os.environ.get(WORKSPACE_ROOT_ENV_VAR)
    try:
        yield
    finally:
        if original is None:
            os.environ.pop(WORKSPACE_ROOT_ENV_VAR, None)
        else:
            os.environ[WORKSPACE_ROOT_ENV_VAR] = original
