"""Consistency check command implementation."""

from __future__ import annotations

import typing as typ

from lockstep.tracking import (
    InconsistentVersionsError,
    collect_report,
    ensure_workspace_root,
    load_documents,
    read_version,
)
from lockstep.utils import normalise_workspace_root

from ._shared import describe_files, resolve_configuration, resolve_plan

if typ.TYPE_CHECKING:
    from pathlib import Path

    from lockstep.config import LockstepConfig
    from lockstep.tracking import TrackedFile


def run(
    workspace_root: Path | str,
    configuration: LockstepConfig | None = None,
    plan: typ.Sequence[TrackedFile] | None = None,
) -> str:
    """Verify that every tracked file records the canonical version."""
    configuration = resolve_configuration(configuration)
    root_path = normalise_workspace_root(workspace_root)
    selected = resolve_plan(plan, configuration)
    ensure_workspace_root(root_path, selected)
    documents = load_documents(root_path, selected)
    canonical = selected[0]
    expected = read_version(canonical, documents[canonical.path])
    report = collect_report(selected, documents, expected)
    if not report.consistent:
        raise InconsistentVersionsError(report)
    return f"✓ All {describe_files(len(report.observations))} record {expected}."
