"""Tracked-file discovery, rewriting and verification for :mod:`lockstep`."""

from __future__ import annotations

from .formats import VERSION_PATTERN, JsonField, QuotedConstant, TextPhrase, TomlField
from .models import (
    ConsistencyReport,
    InconsistentVersionsError,
    TrackedFile,
    TrackedFileError,
    TrackingError,
    VersionAccessor,
    VersionFieldError,
    VersionFieldNotFoundError,
    VersionObservation,
    WorkspaceRootError,
)
from .plan import (
    CANONICAL_SOURCE,
    DEFAULT_PLAN,
    collect_report,
    ensure_workspace_root,
    load_documents,
    read_version,
    select_plan,
    stage_documents,
    write_documents,
)

__all__ = [
    "CANONICAL_SOURCE",
    "DEFAULT_PLAN",
    "VERSION_PATTERN",
    "ConsistencyReport",
    "InconsistentVersionsError",
    "JsonField",
    "QuotedConstant",
    "TextPhrase",
    "TomlField",
    "TrackedFile",
    "TrackedFileError",
    "TrackingError",
    "VersionAccessor",
    "VersionFieldError",
    "VersionFieldNotFoundError",
    "VersionObservation",
    "WorkspaceRootError",
    "collect_report",
    "ensure_workspace_root",
    "load_documents",
    "read_version",
    "select_plan",
    "stage_documents",
    "write_documents",
]
