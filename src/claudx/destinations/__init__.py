"""Storage destinations for claudx metrics.

Destinations are selected by the ``type`` tag of a configured destination.
Unknown tags fail at construction time.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from claudx.destinations.base import DEFAULT_RECENT_LIMIT, Destination

if TYPE_CHECKING:
    from claudx.config import DestinationConfig


def create_destination(config: DestinationConfig) -> Destination:
    """Create a destination of the configured type.

    Args:
        config: The destination configuration.

    Returns:
        A constructed Destination.

    Raises:
        ValueError: If the type is unknown or the options are invalid.
    """
    options = config.options or {}

    if config.type == "sqlite":
        from claudx.destinations.sqlite import SQLiteDestination

        return SQLiteDestination(db_path=options.get("db_path"))

    if config.type == "datadog":
        from claudx.destinations.datadog import DatadogConfig, DatadogDestination

        return DatadogDestination(DatadogConfig.from_options(options))

    raise ValueError(f"Unsupported destination type: {config.type}")


__all__ = [
    "DEFAULT_RECENT_LIMIT",
    "Destination",
    "create_destination",
]
