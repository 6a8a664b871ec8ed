"""Tests for TOML configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from weavereg.config import DEFAULT_HOME_DIRNAME, load_config


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "weavereg.toml")

    assert config.home == (tmp_path / DEFAULT_HOME_DIRNAME).resolve()
    assert config.owner is None
    assert config.log_level == "WARNING"


def test_relative_home_resolves_against_config_dir(tmp_path: Path) -> None:
    path = tmp_path / "weavereg.toml"
    path.write_text('[registry]\nhome = "data/reg"\nowner = " human:admin "\nlog_level = "info"\n', encoding="utf-8")

    config = load_config(path)

    assert config.home == (tmp_path / "data" / "reg").resolve()
    assert config.owner == " human:admin "
    assert config.log_level == "INFO"


def test_absolute_home_kept(tmp_path: Path) -> None:
    target = tmp_path / "elsewhere"
    path = tmp_path / "weavereg.toml"
    path.write_text(f'[registry]\nhome = "{target.as_posix()}"\n', encoding="utf-8")

    assert load_config(path).home == target.resolve()


@pytest.mark.parametrize(
    "body",
    [
        '[registry]\nlog_level = "LOUD"\n',
        '[registry]\nowner = ""\n',
        "[registry]\nhome = 5\n",
        "[registry\n",
    ],
)
def test_invalid_config(tmp_path: Path, body: str) -> None:
    path = tmp_path / "weavereg.toml"
    path.write_text(body, encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path)
