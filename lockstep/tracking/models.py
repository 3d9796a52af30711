"""Data structures describing tracked files and their version consistency."""

from __future__ import annotations

import typing as typ

import msgspec

if typ.TYPE_CHECKING:
    from pathlib import Path


class TrackingError(RuntimeError):
    """Base class for errors raised while reading or writing tracked files."""


class WorkspaceRootError(TrackingError):
    """Raised when the workspace root does not hold the canonical source."""

    def __init__(self, workspace_root: Path, canonical_path: str) -> None:
        """Describe the missing canonical source for ``workspace_root``."""
        super().__init__(
            f"Canonical version source {canonical_path} not found in "
            f"{workspace_root}; run from the repository root or pass "
            "--workspace-root."
        )


class TrackedFileError(TrackingError):
    """Raised when a tracked file is missing or cannot be written."""


class VersionFieldError(TrackingError):
    """Raised when a version field cannot be read or rewritten."""


class VersionFieldNotFoundError(VersionFieldError):
    """Raised when the expected version marker is absent from a document."""

    def __init__(self, description: str) -> None:
        """Name the accessor whose marker could not be located."""
        super().__init__(f"{description} not found")


class VersionAccessor(typ.Protocol):
    """Read and rewrite the version field of a single document format."""

    def describe(self) -> str:
        """Return a short human-readable description of the field."""
        ...

    def read(self, text: str) -> str:
        """Return the version recorded in ``text``."""
        ...

    def write(self, text: str, version: str) -> str:
        """Return ``text`` with its version field set to ``version``."""
        ...


class TrackedFile(msgspec.Struct, frozen=True, kw_only=True):
    """A file whose version field is kept in lockstep with the release."""

    path: str
    component: str
    accessor: VersionAccessor

    def resolve(self, workspace_root: Path) -> Path:
        """Return the absolute location of the file within ``workspace_root``."""
        return workspace_root / self.path


class VersionObservation(msgspec.Struct, frozen=True, kw_only=True):
    """The version read back from one tracked file."""

    path: str
    expected: str
    found: str | None
    detail: str | None = None

    @property
    def matches(self) -> bool:
        """Return ``True`` when the file records the expected version."""
        return self.found == self.expected

    def describe(self) -> str:
        """Summarise a mismatching observation for error output."""
        if self.found is None:
            return f"{self.path}: {self.detail or 'version field unreadable'}"
        return f"{self.path}: found {self.found}, expected {self.expected}"


class ConsistencyReport(msgspec.Struct, frozen=True, kw_only=True):
    """Ordered observations gathered from every tracked file."""

    expected: str
    observations: tuple[VersionObservation, ...]

    @property
    def consistent(self) -> bool:
        """Return ``True`` when every tracked file records ``expected``."""
        return all(observation.matches for observation in self.observations)

    @property
    def mismatches(self) -> tuple[VersionObservation, ...]:
        """Return the observations that disagree with ``expected``."""
        return tuple(
            observation for observation in self.observations if not observation.matches
        )


class InconsistentVersionsError(TrackingError):
    """Raised when tracked files disagree with the expected version."""

    def __init__(self, report: ConsistencyReport) -> None:
        """Render one line per offending file."""
        self.report = report
        lines = [f"Version mismatch detected (expected {report.expected}):"]
        lines.extend(f"✗ {observation.describe()}" for observation in report.mismatches)
        super().__init__("\n".join(lines))
