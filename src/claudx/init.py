"""Write a starter claudx configuration.

Creates <directory>/.claudx/config.toml with the local SQLite destination
enabled and a commented-out Datadog example.
"""

from __future__ import annotations

from pathlib import Path

from claudx.config import CONFIG_DIR_NAME, CONFIG_FILE_NAME

DEFAULT_CONFIG = """\
# claudx destinations, tried in order for reads and all written on save.
# String options may reference environment variables as ${VAR}.

[[destinations]]
type = "sqlite"

# [destinations.options]
# db_path = "~/.claudx/metrics.db"

# [[destinations]]
# type = "datadog"
#
# [destinations.options]
# api_key = "${DATADOG_API_KEY}"
# site = "datadoghq.com"
# service = "claudx"
# env = "development"
#
# [destinations.options.tags]
# team = "platform"
"""


def init_config(
    directory: Path | None = None,
    force: bool = False,
) -> tuple[bool, str]:
    """Create .claudx/config.toml in the given directory.

    Args:
        directory: Directory to initialize in. Defaults to the home directory,
                   which makes the config apply everywhere.
        force: Overwrite existing config if present.

    Returns:
        Tuple of (success, message).
    """
    if directory is None:
        directory = Path.home()

    directory = directory.expanduser().resolve()

    if not directory.is_dir():
        return False, f"Not a directory: {directory}"

    config_dir = directory / CONFIG_DIR_NAME
    config_path = config_dir / CONFIG_FILE_NAME

    if config_path.exists() and not force:
        return False, f"Already initialized: {config_path} (use --force to overwrite)"

    config_dir.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG)

    return True, f"Wrote default config to {config_path}"
