"""Version bumping command implementation."""

from __future__ import annotations

import logging
import typing as typ
from dataclasses import dataclass  # noqa: ICN003

from lockstep import vcs
from lockstep.tracking import (
    VERSION_PATTERN,
    InconsistentVersionsError,
    collect_report,
    ensure_workspace_root,
    load_documents,
    read_version,
    stage_documents,
    write_documents,
)
from lockstep.utils import normalise_workspace_root

from ._shared import describe_files, resolve_configuration, resolve_plan

if typ.TYPE_CHECKING:
    from pathlib import Path

    from lockstep.config import LockstepConfig
    from lockstep.tracking import ConsistencyReport, TrackedFile

LOGGER = logging.getLogger(__name__)

DIRTY_TREE_QUESTION = "You have uncommitted changes. Continue anyway?"

Confirm = typ.Callable[[str], bool]


class BumpError(RuntimeError):
    """Raised when a version bump cannot proceed."""


class InvalidVersionError(BumpError):
    """Raised when the requested version is not ``MAJOR.MINOR.PATCH``."""

    def __init__(self, value: str) -> None:
        """Quote the rejected value and the expected format."""
        super().__init__(
            f"Invalid version argument '{value}'. Expected semantic version "
            "format MAJOR.MINOR.PATCH (e.g. 0.9.3)."
        )


class DirtyWorkingTreeError(BumpError):
    """Raised when ``--commit`` is requested with uncommitted changes present."""

    def __init__(self) -> None:
        """Explain why the bump refuses to continue."""
        super().__init__(
            "Cannot auto-commit with existing uncommitted changes; "
            "commit or stash them first."
        )


class BumpCancelledError(BumpError):
    """Raised when the operator declines to continue with a dirty tree."""

    def __init__(self) -> None:
        """Describe the abort."""
        super().__init__("Aborted; no files were changed.")


@dataclass(frozen=True)
class BumpOptions:
    """Configuration options for bump operations."""

    commit: bool = False
    dry_run: bool = False
    configuration: LockstepConfig | None = None
    confirm: Confirm | None = None
    plan: typ.Sequence[TrackedFile] | None = None


@dataclass(frozen=True, slots=True)
class BumpResult:
    """Outcome of a bump, used to render the CLI summary."""

    workspace_root: Path
    previous_version: str
    target_version: str
    changed: tuple[str, ...]
    report: ConsistencyReport
    dry_run: bool = False
    commit_message: str | None = None
    diff_stat: str = ""


def validate_version(value: str) -> str:
    """Return ``value`` unchanged if it is a ``MAJOR.MINOR.PATCH`` version."""
    if VERSION_PATTERN.fullmatch(value) is None:
        raise InvalidVersionError(value)
    return value


def run(
    workspace_root: Path | str,
    target_version: str,
    options: BumpOptions | None = None,
) -> str:
    """Synchronise every tracked file to ``target_version`` and summarise."""
    options = BumpOptions() if options is None else options
    configuration = resolve_configuration(options.configuration)
    result = execute(
        workspace_root,
        target_version,
        BumpOptions(
            commit=options.commit,
            dry_run=options.dry_run,
            configuration=configuration,
            confirm=options.confirm,
            plan=options.plan,
        ),
    )
    return format_result(result, configuration)


def execute(
    workspace_root: Path | str,
    target_version: str,
    options: BumpOptions,
) -> BumpResult:
    """Apply ``target_version`` to every tracked file.

    Edits are staged in memory and verified before anything is written; a
    failed verification leaves every file untouched. Writes are atomic per
    file and earlier files are restored if a later write fails.
    """
    target_version = validate_version(target_version)
    if options.commit and options.dry_run:
        message = "--commit cannot be combined with --dry-run."
        raise BumpError(message)
    configuration = resolve_configuration(options.configuration)
    root_path = normalise_workspace_root(workspace_root)
    plan = resolve_plan(options.plan, configuration)

    ensure_workspace_root(root_path, plan)
    originals = load_documents(root_path, plan)
    canonical = plan[0]
    previous_version = read_version(canonical, originals[canonical.path])
    LOGGER.info("Bumping version: %s → %s", previous_version, target_version)

    if not options.dry_run:
        _preflight(root_path, commit=options.commit, confirm=options.confirm)

    staged = stage_documents(plan, originals, target_version)
    report = collect_report(plan, staged, target_version)
    if not report.consistent:
        raise InconsistentVersionsError(report)
    changed = tuple(
        tracked.path
        for tracked in plan
        if staged[tracked.path] != originals[tracked.path]
    )

    if options.dry_run or not changed:
        return BumpResult(
            workspace_root=root_path,
            previous_version=previous_version,
            target_version=target_version,
            changed=changed,
            report=report,
            dry_run=options.dry_run,
        )

    write_documents(root_path, {path: staged[path] for path in changed}, originals)
    report = collect_report(plan, load_documents(root_path, plan), target_version)
    if not report.consistent:
        raise InconsistentVersionsError(report)
    LOGGER.info(
        "Version updated to %s in %s", target_version, describe_files(len(changed))
    )

    stat = _diff_stat(root_path, changed)
    commit_message = None
    if options.commit:
        tracked_paths = [tracked.path for tracked in plan]
        commit_message = compose_commit_message(
            configuration.bump.commit_template,
            plan,
            previous_version,
            target_version,
        )
        vcs.stage(root_path, tracked_paths)
        vcs.commit(root_path, commit_message, tracked_paths)
        LOGGER.info("Created commit for version %s", target_version)

    return BumpResult(
        workspace_root=root_path,
        previous_version=previous_version,
        target_version=target_version,
        changed=changed,
        report=report,
        commit_message=commit_message,
        diff_stat=stat,
    )


def _preflight(root_path: Path, *, commit: bool, confirm: Confirm | None) -> None:
    """Refuse to mix unrelated working tree changes into the bump."""
    if not vcs.has_uncommitted_changes(root_path):
        return
    LOGGER.warning("Working tree at %s has uncommitted changes", root_path)
    if commit:
        raise DirtyWorkingTreeError
    if confirm is None or not confirm(DIRTY_TREE_QUESTION):
        raise BumpCancelledError


def _diff_stat(root_path: Path, changed: typ.Sequence[str]) -> str:
    """Return ``git diff --stat`` for the changed files, or ``""`` on failure."""
    try:
        return vcs.diff_stat(root_path, changed)
    except vcs.GitError as exc:
        LOGGER.warning("Could not summarise changes: %s", exc)
        return ""


def compose_commit_message(
    template: str,
    plan: typ.Sequence[TrackedFile],
    previous_version: str,
    target_version: str,
) -> str:
    """Render the commit message listing each component's transition."""
    components: list[str] = []
    for tracked in plan:
        if tracked.component not in components:
            components.append(tracked.component)
    lines = "\n".join(
        f"- {component}: {previous_version} → {target_version}"
        for component in components
    )
    return template.format(
        old=previous_version,
        new=target_version,
        components=lines,
    )


def format_result(result: BumpResult, configuration: LockstepConfig) -> str:
    """Summarise the bump outcome for CLI presentation."""
    transition = f"{result.previous_version} → {result.target_version}"
    if not result.changed:
        base = (
            "No tracked file changes required; all versions already "
            f"{result.target_version}."
        )
        if result.dry_run:
            return f"Dry run; {base[0].lower()}{base[1:]}"
        return base

    count = len(result.changed)
    if result.dry_run:
        header = (
            f"Dry run; would bump version {transition} in {describe_files(count)}:"
        )
    else:
        header = f"Bumped version {transition} in {describe_files(count)}:"
    lines = [header, *(f"- {path}" for path in result.changed)]
    lines.append(
        f"✓ All {describe_files(len(result.report.observations))} "
        f"record {result.target_version}."
    )
    if result.dry_run:
        return "\n".join(lines)

    if result.diff_stat:
        lines.extend(["", "Changed files:", result.diff_stat])
    git_settings = configuration.git
    push_hint = f"  git push {git_settings.remote} {git_settings.branch}"
    lines.append("")
    if result.commit_message is not None:
        subject = result.commit_message.splitlines()[0]
        lines.extend([f"✓ Commit created: {subject}", "Next steps:", push_hint])
    else:
        lines.extend(
            [
                "Review the changes above. To commit:",
                "  git add -A",
                f"  git commit -m 'chore: Bump version to {result.target_version}'",
                push_hint,
                "",
                "Or run with --commit to auto-commit:",
                f"  lockstep bump {result.target_version} --commit",
            ]
        )
    return "\n".join(lines)
