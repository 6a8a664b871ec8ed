"""Tests for the click entrypoint wiring."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from weavereg import __version__
from weavereg.cli import cli
from weavereg.registry import WeaveRegistry


def test_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_uses_config_owner(tmp_path: Path) -> None:
    config = tmp_path / "weavereg.toml"
    config.write_text('[registry]\nhome = "reg"\nowner = "human:admin"\n', encoding="utf-8")

    result = CliRunner().invoke(cli, ["--config", str(config), "init"])

    assert result.exit_code == 0
    assert WeaveRegistry.open(tmp_path / "reg").owner == "human:admin"


def test_init_requires_owner(tmp_path: Path) -> None:
    config = tmp_path / "weavereg.toml"
    config.write_text("[registry]\n", encoding="utf-8")

    result = CliRunner().invoke(cli, ["--config", str(config), "init"])

    assert result.exit_code == 2
    assert "No owner given" in result.output
    assert not (tmp_path / ".weavereg").exists()


def test_show_via_home_option(tmp_path: Path) -> None:
    home = tmp_path / "reg"
    registry = WeaveRegistry.open(home, owner="human:admin")
    registry.create_weave("human:alice", "w1", "Docs")

    result = CliRunner().invoke(cli, ["--home", str(home), "show", "w1", "--json"])

    assert result.exit_code == 0
    assert '"label": "Docs"' in result.output


def test_missing_config_file_is_usage_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["--config", str(tmp_path / "absent.toml"), "owner"])
    assert result.exit_code == 2
