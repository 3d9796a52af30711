"""Tests for ``lockstep.config``."""

from __future__ import annotations

import textwrap
import typing as typ

import pytest

from lockstep import config as config_module

if typ.TYPE_CHECKING:
    from pathlib import Path


def _write_config(tmp_path: Path, body: str) -> Path:
    config_path = tmp_path / config_module.CONFIG_FILENAME
    config_path.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
    return config_path


def test_load_configuration_parses_values(tmp_path: Path) -> None:
    """Load a representative configuration document."""
    _write_config(
        tmp_path,
        """
        [bump]
        exclude = ["PLUGIN.md"]
        commit_template = "release {new} (was {old})"

        [git]
        remote = "upstream"
        branch = "trunk"
        """,
    )

    configuration = config_module.load_configuration(tmp_path)

    assert configuration.bump.exclude == ("PLUGIN.md",)
    assert configuration.bump.commit_template == "release {new} (was {old})"
    assert configuration.git.remote == "upstream"
    assert configuration.git.branch == "trunk"


def test_load_configuration_without_file_uses_defaults(tmp_path: Path) -> None:
    """The configuration file is optional."""
    configuration = config_module.load_configuration(tmp_path)

    assert configuration == config_module.LockstepConfig()
    assert configuration.bump.commit_template == config_module.DEFAULT_COMMIT_TEMPLATE
    assert configuration.git.remote == "origin"


def test_load_configuration_applies_defaults(tmp_path: Path) -> None:
    """Missing tables fall back to default values."""
    _write_config(tmp_path, "# empty file still constitutes valid TOML")

    configuration = config_module.load_configuration(tmp_path)

    assert configuration.bump.exclude == ()
    assert configuration.git.branch == "main"


def test_single_string_exclude_is_accepted(tmp_path: Path) -> None:
    """A bare string is treated as a one-element list."""
    _write_config(
        tmp_path,
        """
        [bump]
        exclude = "README.md"
        """,
    )

    configuration = config_module.load_configuration(tmp_path)

    assert configuration.bump.exclude == ("README.md",)


@pytest.mark.parametrize(
    "body",
    [
        pytest.param('[bump]\nunexpected = "value"\n', id="unknown-bump-key"),
        pytest.param('[git]\ntag = "v1"\n', id="unknown-git-key"),
        pytest.param("[unknown]\nvalue = 1\n", id="unknown-section"),
        pytest.param("[bump]\nexclude = [1]\n", id="non-string-exclude"),
        pytest.param("[bump]\nexclude = 3\n", id="scalar-exclude"),
        pytest.param('[git]\nremote = ""\n', id="empty-remote"),
        pytest.param('bump = "flat"\n', id="bump-not-a-table"),
        pytest.param('[bump]\ncommit_template = "{tag}"\n', id="unknown-placeholder"),
        pytest.param('[bump]\ncommit_template = "{new"\n', id="unbalanced-brace"),
    ],
)
def test_invalid_configuration_raises(tmp_path: Path, body: str) -> None:
    """Unknown options and wrong types trigger configuration errors."""
    _write_config(tmp_path, body)

    with pytest.raises(config_module.ConfigurationError):
        config_module.load_configuration(tmp_path)


def test_malformed_toml_raises(tmp_path: Path) -> None:
    """Syntax errors are reported as configuration errors."""
    _write_config(tmp_path, "[bump\n")

    with pytest.raises(config_module.ConfigurationError):
        config_module.load_configuration(tmp_path)


def test_use_configuration_sets_context(tmp_path: Path) -> None:
    """The configuration context manager exposes the active configuration."""
    configuration = config_module.load_configuration(tmp_path)

    with pytest.raises(config_module.ConfigurationNotLoadedError):
        config_module.current_configuration()

    with config_module.use_configuration(configuration):
        assert config_module.current_configuration() is configuration

    with pytest.raises(config_module.ConfigurationNotLoadedError):
        config_module.current_configuration()


def test_nested_use_configuration_contexts() -> None:
    """Nested configuration contexts restore the previous configuration."""
    config_a = config_module.LockstepConfig()
    config_b = config_module.LockstepConfig(git=config_module.GitConfig(branch="dev"))

    with config_module.use_configuration(config_a):
        assert config_module.current_configuration() is config_a
        with config_module.use_configuration(config_b):
            assert config_module.current_configuration() is config_b
        assert config_module.current_configuration() is config_a

    with pytest.raises(config_module.ConfigurationNotLoadedError):
        config_module.current_configuration()
