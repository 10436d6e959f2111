"""Metrics manager: fans saves out to every configured destination.

Saves run concurrently, one thread per destination, and a failing or
hanging destination never blocks or cancels the others. Reads go to the
first read-capable destination that answers without raising.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from claudx.config import ClaudxConfig, DestinationConfig
from claudx.destinations import DEFAULT_RECENT_LIMIT, Destination, create_destination
from claudx.models import MetricsSummary, ToolMetric

logger = logging.getLogger(__name__)

DEFAULT_DESTINATION_TIMEOUT = 10.0  # seconds per save fan-out


@dataclass
class SaveOutcome:
    """Result of saving one metric to one destination."""

    destination: Destination
    success: bool
    error: str | None = None


class MetricsManager:
    """Owns the configured destinations for one process."""

    def __init__(
        self,
        config: ClaudxConfig | None = None,
        start_dir: Path | None = None,
        destination_timeout: float = DEFAULT_DESTINATION_TIMEOUT,
        factory: Callable[[DestinationConfig], Destination] = create_destination,
    ):
        """Initialize the manager.

        Args:
            config: Resolved configuration. If None, it is discovered from
                    start_dir when initialize() runs.
            start_dir: Directory to start config discovery from.
            destination_timeout: Seconds to wait for all destinations in
                                 one save before giving up on stragglers.
            factory: Builds a destination from its configuration.
        """
        self.config = config
        self.start_dir = start_dir
        self.destination_timeout = destination_timeout
        self._factory = factory
        self.destinations: list[Destination] = []

    def initialize(self) -> None:
        """Construct destinations in configured order.

        A destination that fails to construct is logged and skipped. If none
        succeed, a default SQLite destination is added. Calling it again on
        an initialized manager does nothing.
        """
        if self.destinations:
            return

        if self.config is None:
            self.config = ClaudxConfig.load_or_default(self.start_dir)

        logger.debug(
            f"Initializing with destinations: {[d.type for d in self.config.destinations]}"
        )

        for destination_config in self.config.destinations:
            try:
                self.destinations.append(self._factory(destination_config))
            except Exception as e:
                logger.error(f"Failed to initialize {destination_config.type} destination: {e}")

        if not self.destinations:
            logger.warning("No destinations initialized, falling back to SQLite")
            self.destinations.append(self._factory(DestinationConfig(type="sqlite")))

    def save_metric(self, metric: ToolMetric) -> list[SaveOutcome]:
        """Save a metric to every destination concurrently.

        Never raises. Destinations still running when the timeout expires
        are reported as failed and left to finish in the background.

        Returns:
            One outcome per destination, in configured order.
        """
        outcomes: list[SaveOutcome | None] = [None] * len(self.destinations)

        def task(index: int, destination: Destination) -> None:
            try:
                destination.save_metric(metric)
                outcomes[index] = SaveOutcome(destination, success=True)
            except Exception as e:
                logger.error(f"Error saving metric to {destination!r}: {e}")
                outcomes[index] = SaveOutcome(destination, success=False, error=str(e))

        threads = []
        for index, destination in enumerate(self.destinations):
            # Daemon threads so a hung destination cannot hold the process open
            thread = threading.Thread(target=task, args=(index, destination), daemon=True)
            thread.start()
            threads.append(thread)

        deadline = time.monotonic() + self.destination_timeout
        for thread in threads:
            thread.join(max(0.0, deadline - time.monotonic()))

        results: list[SaveOutcome] = []
        for destination, outcome in zip(self.destinations, outcomes):
            if outcome is None:
                logger.error(
                    f"Timed out after {self.destination_timeout}s saving metric to {destination!r}"
                )
                outcome = SaveOutcome(destination, success=False, error="timeout")
            results.append(outcome)
        return results

    def get_metrics_summary(self) -> list[MetricsSummary]:
        """Summary from the first read-capable destination that answers."""
        for destination in self._readable():
            try:
                return destination.get_metrics_summary()
            except Exception as e:
                logger.error(f"Error getting metrics summary from {destination!r}: {e}")
        return []

    def get_recent_metrics(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[ToolMetric]:
        """Recent metrics from the first read-capable destination that answers."""
        for destination in self._readable():
            try:
                return destination.get_recent_metrics(limit)
            except Exception as e:
                logger.error(f"Error getting recent metrics from {destination!r}: {e}")
        return []

    def _readable(self) -> list[Destination]:
        return [d for d in self.destinations if d.supports_reads]

    def close(self) -> None:
        """Close every destination, logging individual failures."""
        for destination in self.destinations:
            try:
                destination.close()
            except Exception as e:
                logger.error(f"Error closing {destination!r}: {e}")
        self.destinations = []

    def __enter__(self) -> MetricsManager:
        """Context manager entry - initializes destinations."""
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes destinations."""
        self.close()
