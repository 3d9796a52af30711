"""Test fixtures for :mod:`lockstep` unit tests."""

from __future__ import annotations

import shutil
import typing as typ

import pytest

from lockstep import config as config_module
from tests.helpers.workspace_helpers import (
    GitStub,
    init_git_repository,
    install_git_stub,
    write_sample_workspace,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from cmd_mox import CmdMox

requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git executable not available"
)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Return a workspace whose tracked files all record ``0.9.2``."""
    return write_sample_workspace(tmp_path / "repo")


@pytest.fixture
def git_stub(cmd_mox: CmdMox, monkeypatch: pytest.MonkeyPatch) -> GitStub:
    """Stub ``git`` with a clean working tree."""
    return install_git_stub(cmd_mox, monkeypatch)


@pytest.fixture
def git_workspace(workspace: Path) -> Path:
    """Return the sample workspace committed to a real git repository."""
    return init_git_repository(workspace)


@pytest.fixture
def default_config() -> config_module.LockstepConfig:
    """Return the default configuration."""
    return config_module.LockstepConfig()


def _make_config(**kwargs: str | tuple[str, ...]) -> config_module.LockstepConfig:
    """Construct a configuration instance with bump overrides for tests."""
    bump_config = config_module.BumpConfig(**kwargs)
    return config_module.LockstepConfig(bump=bump_config)
