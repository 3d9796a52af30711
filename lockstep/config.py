"""Configuration loading for the :mod:`lockstep` toolkit."""

from __future__ import annotations

import contextlib
import contextvars
import dataclasses as dc
import typing as typ
from collections import abc as cabc

from cyclopts import CycloptsError
from cyclopts.config import Toml

from lockstep.utils import normalise_workspace_root

if typ.TYPE_CHECKING:
    from pathlib import Path

CONFIG_FILENAME = "lockstep.toml"

DEFAULT_COMMIT_TEMPLATE = (
    "chore: Bump version to {new}\n"
    "\n"
    "Updated all component versions:\n"
    "{components}\n"
    "\n"
    "Generated by lockstep bump"
)

_TEMPLATE_FIELDS: typ.Final[dict[str, str]] = {
    "old": "0.0.0",
    "new": "0.0.1",
    "components": "- component: 0.0.0 → 0.0.1",
}


class ConfigurationError(RuntimeError):
    """Raised when the :mod:`lockstep` configuration is invalid."""


class ConfigurationNotLoadedError(ConfigurationError):
    """Raised when code accesses the configuration before it is loaded."""


@dc.dataclass(frozen=True, slots=True)
class BumpConfig:
    """Settings for the ``bump`` command."""

    exclude: tuple[str, ...] = ()
    commit_template: str = DEFAULT_COMMIT_TEMPLATE

    @classmethod
    def from_mapping(cls, mapping: cabc.Mapping[str, typ.Any] | None) -> BumpConfig:
        """Create a :class:`BumpConfig` from a TOML table mapping."""
        if mapping is None:
            return cls()
        unknown = set(mapping) - {"exclude", "commit_template"}
        if unknown:
            joined = ", ".join(sorted(unknown))
            message = f"Unknown bump option(s): {joined}."
            raise ConfigurationError(message)
        template = mapping.get("commit_template")
        return cls(
            exclude=_string_tuple(mapping.get("exclude"), "bump.exclude"),
            commit_template=(
                DEFAULT_COMMIT_TEMPLATE
                if template is None
                else _commit_template(template)
            ),
        )


@dc.dataclass(frozen=True, slots=True)
class GitConfig:
    """Remote details used when suggesting how to publish a bump."""

    remote: str = "origin"
    branch: str = "main"

    @classmethod
    def from_mapping(cls, mapping: cabc.Mapping[str, typ.Any] | None) -> GitConfig:
        """Create a :class:`GitConfig` from a TOML table mapping."""
        if mapping is None:
            return cls()
        unknown = set(mapping) - {"remote", "branch"}
        if unknown:
            joined = ", ".join(sorted(unknown))
            message = f"Unknown git option(s): {joined}."
            raise ConfigurationError(message)
        defaults = cls()
        return cls(
            remote=_string_value(mapping.get("remote"), "git.remote", defaults.remote),
            branch=_string_value(mapping.get("branch"), "git.branch", defaults.branch),
        )


@dc.dataclass(frozen=True, slots=True)
class LockstepConfig:
    """Strongly-typed representation of ``lockstep.toml``."""

    bump: BumpConfig = dc.field(default_factory=BumpConfig)
    git: GitConfig = dc.field(default_factory=GitConfig)

    @classmethod
    def from_mapping(cls, mapping: cabc.Mapping[str, typ.Any]) -> LockstepConfig:
        """Create a :class:`LockstepConfig` from a parsed configuration mapping."""
        unknown = set(mapping) - {"bump", "git"}
        if unknown:
            joined = ", ".join(sorted(unknown))
            message = f"Unknown configuration section(s): {joined}."
            raise ConfigurationError(message)
        return cls(
            bump=BumpConfig.from_mapping(
                _optional_mapping(mapping.get("bump"), "bump")
            ),
            git=GitConfig.from_mapping(_optional_mapping(mapping.get("git"), "git")),
        )


_active_config: contextvars.ContextVar[LockstepConfig] = contextvars.ContextVar(
    "lockstep_active_config"
)


def build_loader(workspace_root: Path) -> Toml:
    """Return a Cyclopts loader for ``lockstep.toml`` in ``workspace_root``.

    The file is optional; a missing file yields the default configuration.
    """
    resolved = normalise_workspace_root(workspace_root)
    return Toml(
        path=resolved / CONFIG_FILENAME,
        must_exist=False,
        search_parents=False,
        allow_unknown=True,
        use_commands_as_keys=True,
    )


def load_from_loader(loader: Toml) -> LockstepConfig:
    """Load and validate configuration using ``loader``."""
    try:
        raw = loader.config
    except (CycloptsError, ValueError) as exc:
        message = f"{loader.path}: {exc}"
        raise ConfigurationError(message) from exc
    if not isinstance(raw, cabc.Mapping):
        message = "Configuration root must be a TOML table."
        raise ConfigurationError(message)
    return LockstepConfig.from_mapping(raw)


def load_configuration(workspace_root: Path) -> LockstepConfig:
    """Load configuration for ``workspace_root`` using Cyclopts."""
    loader = build_loader(workspace_root)
    return load_from_loader(loader)


@contextlib.contextmanager
def use_configuration(configuration: LockstepConfig) -> typ.Iterator[None]:
    """Set ``configuration`` as the active configuration for the current context."""
    token = _active_config.set(configuration)
    try:
        yield
    finally:
        _active_config.reset(token)


def current_configuration() -> LockstepConfig:
    """Return the active configuration or raise if none has been set."""
    try:
        return _active_config.get()
    except LookupError as exc:
        message = "Configuration has not been loaded yet."
        raise ConfigurationNotLoadedError(message) from exc


def _validate_string_sequence(
    sequence: cabc.Sequence[typ.Any], field_name: str
) -> tuple[str, ...]:
    """Validate that ``sequence`` contains only strings and return them."""
    items: list[str] = []
    for index, entry in enumerate(sequence):
        if not isinstance(entry, str):
            message = (
                f"{field_name}[{index}] must be a string, got {type(entry).__name__}."
            )
            raise ConfigurationError(message)
        items.append(entry)
    return tuple(items)


def _string_tuple(value: object, field_name: str) -> tuple[str, ...]:
    """Return a tuple of strings derived from ``value``."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, cabc.Sequence) and not isinstance(value, str | bytes):
        return _validate_string_sequence(value, field_name)
    message = (
        f"{field_name} must be a string or a sequence of strings; "
        f"received {type(value).__name__}."
    )
    raise ConfigurationError(message)


def _string_value(value: object, field_name: str, default: str) -> str:
    """Return ``value`` when it is a non-empty string, else ``default`` for ``None``."""
    if value is None:
        return default
    if isinstance(value, str) and value.strip():
        return value
    message = f"{field_name} must be a non-empty string."
    raise ConfigurationError(message)


def _commit_template(value: object) -> str:
    """Validate a commit message template against the supported placeholders."""
    template = _string_value(value, "bump.commit_template", DEFAULT_COMMIT_TEMPLATE)
    try:
        template.format(**_TEMPLATE_FIELDS)
    except (KeyError, IndexError, ValueError) as exc:
        supported = ", ".join(f"{{{name}}}" for name in _TEMPLATE_FIELDS)
        message = (
            f"bump.commit_template is invalid ({exc!r}); "
            f"supported placeholders: {supported}."
        )
        raise ConfigurationError(message) from exc
    return template


def _optional_mapping(
    value: object, field_name: str
) -> cabc.Mapping[str, typ.Any] | None:
    """Ensure ``value`` is a mapping if provided."""
    if value is None:
        return None
    if isinstance(value, cabc.Mapping):
        return value
    message = f"{field_name} must be a TOML table; received {type(value).__name__}."
    raise ConfigurationError(message)
