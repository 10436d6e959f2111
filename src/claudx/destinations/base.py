"""Storage destination interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from claudx.models import MetricsSummary, ToolMetric

DEFAULT_RECENT_LIMIT = 100


class Destination(ABC):
    """A sink (and optionally a source) for metric records.

    Attributes:
        name: Destination type tag, used in log messages.
        supports_reads: Whether the read queries return stored data. The
            metrics manager only asks read-capable destinations.
    """

    name: str = "destination"
    supports_reads: bool = True

    @abstractmethod
    def save_metric(self, metric: ToolMetric) -> None:
        """Persist one metric record."""

    @abstractmethod
    def get_metrics_summary(self) -> list[MetricsSummary]:
        """Summarize all stored metrics by tool name."""

    @abstractmethod
    def get_recent_metrics(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[ToolMetric]:
        """List the most recent metrics, newest first."""

    @abstractmethod
    def close(self) -> None:
        """Release any resources held by the destination."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"
