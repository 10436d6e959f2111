"""Configuration parsing for claudx.

Parses .claudx/config.toml files for storage destination definitions.

Discovery searches the directory the user invoked the tool from (and its
parents), then the git repository root, then ~/.claudx. The starting
directory is always passed in explicitly because the collector runs on
behalf of a caller whose working directory arrives via CLAUDX_ORIGINAL_CWD.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from claudx.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".claudx"
CONFIG_FILE_NAME = "config.toml"

# Destination types a config may reference
VALID_DESTINATION_TYPES = frozenset({
    "sqlite",
    "datadog",
})

_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def expand_env(value: Any, environ: dict[str, str] | None = None) -> Any:
    """Expand ${VAR} references in string values, recursing into dicts.

    Unset variables expand to an empty string.
    """
    if environ is None:
        environ = dict(os.environ)
    if isinstance(value, str):
        return _ENV_REFERENCE.sub(lambda m: environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: expand_env(v, environ) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env(v, environ) for v in value]
    return value


@dataclass
class DestinationConfig:
    """Configuration for a single storage destination."""

    type: str
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> DestinationConfig:
        """Create a DestinationConfig from a dictionary.

        Args:
            data: Dictionary with a "type" and optional "options" table.
            index: Position of the entry in the config, used in errors.

        Returns:
            A configured DestinationConfig instance.

        Raises:
            ValueError: If the type is missing or options is not a table.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Destination #{index} must be a table")
        if "type" not in data:
            raise ValueError(f"Destination #{index} missing required field 'type'")
        dest_type = data["type"]
        if not isinstance(dest_type, str) or not dest_type:
            raise ValueError(f"Destination #{index} has invalid 'type' field")

        options = data.get("options", {})
        if not isinstance(options, dict):
            raise ValueError(
                f"Destination #{index} ({dest_type}) has invalid 'options': expected a table"
            )

        return cls(type=dest_type, options=expand_env(options))


def default_destinations() -> list[DestinationConfig]:
    """The destination list used when none is configured."""
    return [DestinationConfig(type="sqlite")]


@dataclass
class ClaudxConfig:
    """Main configuration container."""

    destinations: list[DestinationConfig] = field(default_factory=default_destinations)
    config_path: Path | None = None

    @classmethod
    def load(cls, path: Path) -> ClaudxConfig:
        """Load configuration from a file.

        Args:
            path: Path to the config file.

        Returns:
            Loaded configuration.

        Raises:
            FileNotFoundError: If the config file does not exist.
            ConfigError: If the config file is invalid.
        """
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
            return cls._from_dict(data, path)
        except (tomllib.TOMLDecodeError, ValueError) as e:
            raise ConfigError(f"Invalid config file {path}: {e}") from e

    @classmethod
    def load_or_default(cls, start_dir: Path | None = None) -> ClaudxConfig:
        """Discover and load configuration, or return the default.

        A missing or invalid file never raises; invalid files are logged.
        """
        if start_dir is None:
            start_dir = original_cwd()
        path = resolve_config_path(start_dir)
        if path is None:
            return cls()
        try:
            return cls.load(path)
        except (FileNotFoundError, ConfigError) as e:
            logger.warning(f"Error loading config file: {e}. Using default config.")
            return cls()

    @classmethod
    def _from_dict(cls, data: dict[str, Any], path: Path | None = None) -> ClaudxConfig:
        """Create a ClaudxConfig from a dictionary."""
        raw = data.get("destinations", [])
        if not isinstance(raw, list):
            raise ValueError("'destinations' must be an array of tables")

        destinations = [
            DestinationConfig.from_dict(entry, index) for index, entry in enumerate(raw)
        ]
        if not destinations:
            destinations = default_destinations()

        return cls(destinations=destinations, config_path=path)


def get_git_root(directory: Path) -> Path | None:
    """Get the root of the git repository containing directory."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            cwd=directory,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    if result.returncode == 0 and result.stdout.strip():
        return Path(result.stdout.strip())
    return None


def resolve_config_path(start_dir: Path, home: Path | None = None) -> Path | None:
    """Find the config file for a given starting directory.

    Search order: start_dir and its parents, the git repository root,
    then the home directory.

    Args:
        start_dir: Directory the user invoked the tool from.
        home: Home directory. Defaults to Path.home().

    Returns:
        Path to the first existing config file, or None.
    """
    start_dir = Path(start_dir)
    for parent in [start_dir, *start_dir.parents]:
        candidate = parent / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate

    if start_dir.is_dir():
        git_root = get_git_root(start_dir)
        if git_root is not None:
            candidate = git_root / CONFIG_DIR_NAME / CONFIG_FILE_NAME
            if candidate.is_file():
                return candidate

    if home is None:
        home = Path.home()
    candidate = home / CONFIG_DIR_NAME / CONFIG_FILE_NAME
    if candidate.is_file():
        return candidate

    return None


def original_cwd() -> Path:
    """The directory the user originally invoked the wrapped tool from.

    Falls back to $PWD, then the root directory, when the process working
    directory has been removed.
    """
    value = os.environ.get("CLAUDX_ORIGINAL_CWD")
    if value:
        return Path(value)
    try:
        return Path.cwd()
    except OSError:
        return Path(os.environ.get("PWD") or os.sep)


def claudx_home() -> Path:
    """Base directory for shims, backups and the default database."""
    value = os.environ.get("CLAUDX_HOME")
    if value:
        return Path(value)
    return Path.home() / CONFIG_DIR_NAME
