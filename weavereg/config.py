"""
Registry configuration loaded from TOML.

    [registry]
    home = ".weavereg"          # ledger directory, relative to this file
    owner = "human:alice"       # administrator used when initializing
    log_level = "WARNING"
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_FILENAME = "weavereg.toml"
DEFAULT_HOME_DIRNAME = ".weavereg"
DEFAULT_LOG_LEVEL = "WARNING"

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class RegistryConfig:
    home: Path
    owner: str | None = None
    log_level: str = DEFAULT_LOG_LEVEL

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=getattr(logging, self.log_level),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def default_config(base_dir: Path | None = None) -> RegistryConfig:
    base = base_dir or Path.cwd()
    return RegistryConfig(home=(base / DEFAULT_HOME_DIRNAME).resolve())


def load_config(path: Path | None = None) -> RegistryConfig:
    """
    Load configuration from `path` (default: ./weavereg.toml).

    A missing file yields defaults. Values present but of the wrong shape
    raise ValueError.
    """
    if path is None:
        path = Path.cwd() / DEFAULT_CONFIG_FILENAME
    if not path.exists():
        return default_config(path.parent)

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Failed to parse config TOML {path}: {e}") from e

    section = _coerce_dict(data.get("registry"))

    home_raw = section.get("home", DEFAULT_HOME_DIRNAME)
    if not isinstance(home_raw, str) or not home_raw.strip():
        raise ValueError("registry.home must be a non-empty string")
    home = Path(home_raw).expanduser()
    if not home.is_absolute():
        home = path.parent / home

    owner = section.get("owner")
    if owner is not None:
        if not isinstance(owner, str) or not owner.strip():
            raise ValueError("registry.owner must be a non-empty string")

    log_level = str(section.get("log_level", DEFAULT_LOG_LEVEL)).strip().upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"registry.log_level must be one of {', '.join(sorted(_LOG_LEVELS))}")

    return RegistryConfig(home=home.resolve(), owner=owner, log_level=log_level)
