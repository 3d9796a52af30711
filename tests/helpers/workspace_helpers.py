"""Shared test helpers for building tracked-file workspaces."""

from __future__ import annotations

import os
import typing as typ

from cmd_mox.ipc import Invocation, Response
from plumbum import local

from lockstep.tracking import DEFAULT_PLAN

if typ.TYPE_CHECKING:
    from pathlib import Path

    import pytest
    from cmd_mox import CmdMox

SAMPLE_FILES: typ.Final[dict[str, str]] = {
    "cmd/bd/version.go": (
        "package main\n"
        "\n"
        "// Version is the current bd release.\n"
        'const Version = "{version}"\n'
    ),
    ".claude-plugin/plugin.json": (
        "{\n"
        '  "name": "beads",\n'
        '  "description": "Issue tracker for coding agents",\n'
        '  "version": "{version}",\n'
        '  "author": {\n'
        '    "name": "Beads Maintainers"\n'
        "  }\n"
        "}\n"
    ),
    ".claude-plugin/marketplace.json": (
        "{\n"
        '  "name": "beads-marketplace",\n'
        '  "owner": {\n'
        '    "name": "Beads Maintainers"\n'
        "  },\n"
        '  "plugins": [\n'
        "    {\n"
        '      "name": "beads",\n'
        '      "source": "./",\n'
        '      "version": "{version}"\n'
        "    }\n"
        "  ]\n"
        "}\n"
    ),
    "integrations/beads-mcp/pyproject.toml": (
        "[project]\n"
        'name = "beads-mcp"\n'
        'version = "{version}"  # kept in sync by lockstep\n'
        'requires-python = ">=3.10"\n'
    ),
    "README.md": (
        "# beads\n"
        "\n"
        "**Status:** Alpha (v{version}), expect breaking changes.\n"
    ),
    "PLUGIN.md": (
        "# Plugin\n"
        "\n"
        "## Compatibility\n"
        "\n"
        "Plugin {version} requires bd CLI {version}+ to be installed.\n"
    ),
}

TRACKED_PATHS: typ.Final[tuple[str, ...]] = tuple(SAMPLE_FILES)


def render_sample(relative: str, version: str) -> str:
    """Return the sample content for ``relative`` recording ``version``."""
    return SAMPLE_FILES[relative].replace("{version}", version)


def write_sample_workspace(root: Path, version: str = "0.9.2") -> Path:
    """Populate ``root`` with every tracked file recording ``version``."""
    for relative in SAMPLE_FILES:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_sample(relative, version), encoding="utf-8")
    return root


def snapshot(root: Path) -> dict[str, str]:
    """Return the current text of every tracked file under ``root``."""
    return {
        relative: (root / relative).read_text(encoding="utf-8")
        for relative in SAMPLE_FILES
    }


def read_tracked_versions(root: Path) -> dict[str, str]:
    """Return the version each tracked file records, keyed by path."""
    return {
        tracked.path: tracked.accessor.read(
            tracked.resolve(root).read_text(encoding="utf-8")
        )
        for tracked in DEFAULT_PLAN
    }


class GitStub:
    """Answer ``git`` runs through cmd-mox without spawning a process."""

    def __init__(self, cmd_mox: CmdMox) -> None:
        """Forward invocations to ``cmd_mox`` and remember their arguments."""
        self._cmd_mox = cmd_mox
        self.calls: list[tuple[str, ...]] = []

    def run(
        self,
        args: typ.Sequence[str] = (),
        *,
        retcode: int | tuple[int, ...] | None = None,
        cwd: str | os.PathLike[str] | None = None,
    ) -> tuple[int, str, str]:
        """Return the response cmd-mox records for this invocation."""
        arguments = [str(argument) for argument in args]
        self.calls.append(tuple(arguments))
        invocation = Invocation(
            command="git",
            args=arguments,
            stdin="",
            env=dict(os.environ),
        )
        response = self._cmd_mox._handle_invocation(invocation)
        return response.exit_code, response.stdout, response.stderr

    def subcommands(self) -> list[str]:
        """Return the subcommands invoked so far, in order."""
        return [call[0] for call in self.calls]


def route_git_to_cmd_mox(
    cmd_mox: CmdMox, monkeypatch: pytest.MonkeyPatch
) -> GitStub:
    """Replace the ``git`` command object with one answered by cmd-mox."""
    from lockstep.vcs import git as git_module

    stub = GitStub(cmd_mox)
    monkeypatch.setattr(git_module, "_ensure_command", lambda: stub)
    return stub


def install_git_stub(
    cmd_mox: CmdMox,
    monkeypatch: pytest.MonkeyPatch,
    *,
    dirty: bool = False,
    exit_codes: dict[str, int] | None = None,
    outputs: dict[str, str] | None = None,
) -> GitStub:
    """Stub ``git`` with canned responses keyed by subcommand.

    ``diff-index`` reports a clean tree unless ``dirty`` is set; every other
    subcommand succeeds with empty output unless overridden.
    """
    codes = {"diff-index": 1 if dirty else 0}
    codes.update(exit_codes or {})
    canned = dict(outputs or {})

    def respond(invocation: Invocation) -> Response:
        subcommand = invocation.args[0]
        exit_code = codes.get(subcommand, 0)
        stderr = "" if exit_code in {0, 1} else f"fatal: {subcommand} failed"
        return Response(
            stdout=canned.get(subcommand, ""),
            stderr=stderr,
            exit_code=exit_code,
        )

    cmd_mox.stub("git").runs(respond)
    return route_git_to_cmd_mox(cmd_mox, monkeypatch)


def git(root: Path, *args: str) -> str:
    """Run a real ``git`` command in ``root`` and return its stdout."""
    _, stdout, _ = local["git"].run(args, cwd=str(root))
    return stdout


def init_git_repository(root: Path) -> Path:
    """Initialise ``root`` as a repository with every file committed."""
    git(root, "init", "--quiet")
    git(root, "config", "user.name", "Lockstep Tests")
    git(root, "config", "user.email", "lockstep@example.invalid")
    git(root, "config", "commit.gpgsign", "false")
    git(root, "add", "--all")
    git(root, "commit", "--quiet", "--message", "Initial import")
    return root
