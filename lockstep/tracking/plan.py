"""The synchronisation plan and the operations that apply it."""

from __future__ import annotations

import logging
import typing as typ

from lockstep.utils import write_atomic_text

from .formats import VERSION_PATTERN, JsonField, QuotedConstant, TextPhrase, TomlField
from .models import (
    ConsistencyReport,
    TrackedFile,
    TrackedFileError,
    VersionFieldError,
    VersionObservation,
    WorkspaceRootError,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

LOGGER = logging.getLogger(__name__)

CANONICAL_SOURCE: typ.Final[TrackedFile] = TrackedFile(
    path="cmd/bd/version.go",
    component="bd CLI",
    accessor=QuotedConstant("Version"),
)

DEFAULT_PLAN: typ.Final[tuple[TrackedFile, ...]] = (
    CANONICAL_SOURCE,
    TrackedFile(
        path=".claude-plugin/plugin.json",
        component="Plugin",
        accessor=JsonField(("version",)),
    ),
    TrackedFile(
        path=".claude-plugin/marketplace.json",
        component="Plugin",
        accessor=JsonField(("plugins", 0, "version")),
    ),
    TrackedFile(
        path="integrations/beads-mcp/pyproject.toml",
        component="MCP server",
        accessor=TomlField(("project", "version")),
    ),
    TrackedFile(
        path="README.md",
        component="Documentation",
        accessor=TextPhrase("Alpha (v{version})"),
    ),
    TrackedFile(
        path="PLUGIN.md",
        component="Documentation",
        accessor=TextPhrase("Plugin {version} requires bd CLI {version}+"),
    ),
)


def select_plan(
    exclude: typ.Collection[str] = (),
    plan: typ.Sequence[TrackedFile] = DEFAULT_PLAN,
) -> tuple[TrackedFile, ...]:
    """Return ``plan`` without the tracked paths listed in ``exclude``.

    The canonical source (the first entry) can never be excluded. Unknown
    exclusions are logged and otherwise ignored.
    """
    excluded = set(exclude)
    if not plan:
        message = "The synchronisation plan is empty."
        raise TrackedFileError(message)
    canonical = plan[0]
    if canonical.path in excluded:
        message = f"The canonical version source {canonical.path} cannot be excluded."
        raise TrackedFileError(message)
    known = {tracked.path for tracked in plan}
    if unknown := excluded - known:
        LOGGER.warning(
            "Ignoring exclusions that match no tracked file: %s",
            ", ".join(sorted(unknown)),
        )
    return tuple(tracked for tracked in plan if tracked.path not in excluded)


def ensure_workspace_root(
    workspace_root: Path, plan: typ.Sequence[TrackedFile] = DEFAULT_PLAN
) -> None:
    """Raise :class:`WorkspaceRootError` unless the canonical source exists."""
    canonical = plan[0]
    if not canonical.resolve(workspace_root).is_file():
        raise WorkspaceRootError(workspace_root, canonical.path)


def load_documents(
    workspace_root: Path, plan: typ.Sequence[TrackedFile]
) -> dict[str, str]:
    """Read every tracked file, keyed by its relative path."""
    missing = [
        tracked.path
        for tracked in plan
        if not tracked.resolve(workspace_root).is_file()
    ]
    if missing:
        message = f"Tracked file(s) not found: {', '.join(missing)}"
        raise TrackedFileError(message)
    return {
        tracked.path: tracked.resolve(workspace_root).read_text(encoding="utf-8")
        for tracked in plan
    }


def read_version(tracked: TrackedFile, text: str) -> str:
    """Return the ``MAJOR.MINOR.PATCH`` version recorded in ``text`` for ``tracked``.

    An empty or malformed value is an error rather than a version to bump from.
    """
    try:
        version = tracked.accessor.read(text)
    except VersionFieldError as exc:
        message = f"{tracked.path}: {exc}"
        raise TrackedFileError(message) from exc
    if VERSION_PATTERN.fullmatch(version) is None:
        message = (
            f"{tracked.path}: {tracked.accessor.describe()} records {version!r}, "
            "which is not a MAJOR.MINOR.PATCH version"
        )
        raise TrackedFileError(message)
    return version


def stage_documents(
    plan: typ.Sequence[TrackedFile],
    documents: typ.Mapping[str, str],
    target_version: str,
) -> dict[str, str]:
    """Return the rewritten contents of every tracked file, in memory only.

    Files whose field cannot be rewritten keep their original content so the
    verification pass reports them alongside any other problems.
    """
    staged: dict[str, str] = {}
    for tracked in plan:
        original = documents[tracked.path]
        try:
            staged[tracked.path] = tracked.accessor.write(original, target_version)
        except VersionFieldError as exc:
            LOGGER.debug("Could not rewrite %s: %s", tracked.path, exc)
            staged[tracked.path] = original
    return staged


def collect_report(
    plan: typ.Sequence[TrackedFile],
    documents: typ.Mapping[str, str],
    expected: str,
) -> ConsistencyReport:
    """Re-read each document's version field and compare it with ``expected``."""
    observations: list[VersionObservation] = []
    for tracked in plan:
        try:
            found: str | None = tracked.accessor.read(documents[tracked.path])
            detail = None
        except VersionFieldError as exc:
            found = None
            detail = str(exc)
        observations.append(
            VersionObservation(
                path=tracked.path,
                expected=expected,
                found=found,
                detail=detail,
            )
        )
    return ConsistencyReport(expected=expected, observations=tuple(observations))


def write_documents(
    workspace_root: Path,
    updates: typ.Mapping[str, str],
    originals: typ.Mapping[str, str],
) -> None:
    """Atomically persist ``updates``; restore earlier files if a write fails."""
    written: list[str] = []
    for relative, content in updates.items():
        try:
            write_atomic_text(workspace_root / relative, content)
        except OSError as exc:
            _restore(workspace_root, written, originals)
            message = (
                f"Failed to write {relative}: {exc}; "
                f"restored {len(written)} previously written file(s)."
            )
            raise TrackedFileError(message) from exc
        LOGGER.debug("Wrote %s", relative)
        written.append(relative)


def _restore(
    workspace_root: Path,
    written: typ.Sequence[str],
    originals: typ.Mapping[str, str],
) -> None:
    for relative in reversed(written):
        write_atomic_text(workspace_root / relative, originals[relative])
        LOGGER.info("Restored %s", relative)
