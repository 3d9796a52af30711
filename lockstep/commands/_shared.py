"""Shared helpers for command implementations."""

from __future__ import annotations

import typing as typ

from lockstep import config as config_module
from lockstep.tracking import select_plan

if typ.TYPE_CHECKING:
    from lockstep.config import LockstepConfig
    from lockstep.tracking import TrackedFile


def describe_files(count: int) -> str:
    """Return a human-friendly tracked file count summary."""
    label = "file" if count == 1 else "files"
    return f"{count} tracked {label}"


def resolve_configuration(configuration: LockstepConfig | None) -> LockstepConfig:
    """Return ``configuration`` or the active configuration when omitted."""
    if configuration is None:
        return config_module.current_configuration()
    return configuration


def resolve_plan(
    plan: typ.Sequence[TrackedFile] | None, configuration: LockstepConfig
) -> tuple[TrackedFile, ...]:
    """Apply the configured exclusions to ``plan`` or the default plan."""
    if plan is None:
        return select_plan(configuration.bump.exclude)
    return select_plan(configuration.bump.exclude, plan)
