"""Datadog destination (push-only).

Each metric becomes three gauge series posted to the Datadog v1 series API.
Failed sends are buffered in memory and retried once on close.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field
from typing import Any

import httpx

from claudx.destinations.base import DEFAULT_RECENT_LIMIT, Destination
from claudx.models import MetricsSummary, ToolMetric

logger = logging.getLogger(__name__)

DEFAULT_SITE = "datadoghq.com"
DEFAULT_SERVICE = "claudx"
DEFAULT_ENV = "development"
REQUEST_TIMEOUT = 5.0  # seconds

VALID_SITES = frozenset({
    "datadoghq.com",
    "datadoghq.eu",
    "us3.datadoghq.com",
    "us5.datadoghq.com",
    "ap1.datadoghq.com",
    "ddog-gov.com",
})


@dataclass
class DatadogConfig:
    """Configuration for the Datadog destination."""

    api_key: str
    site: str = DEFAULT_SITE
    service: str = DEFAULT_SERVICE
    env: str = DEFAULT_ENV
    tags: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_options(cls, options: dict[str, Any]) -> DatadogConfig:
        """Create a DatadogConfig from destination options, applying defaults."""
        tags = options.get("tags") or {}
        if not isinstance(tags, dict):
            raise ValueError("Datadog 'tags' must be a table of key = value pairs")
        return cls(
            api_key=options.get("api_key") or "",
            site=options.get("site") or DEFAULT_SITE,
            service=options.get("service") or DEFAULT_SERVICE,
            env=options.get("env") or DEFAULT_ENV,
            tags={str(k): str(v) for k, v in tags.items()},
        )

    def validate(self) -> None:
        """Check required fields.

        Raises:
            ValueError: If a required field is missing or blank.
        """
        if not self.api_key or not self.api_key.strip():
            raise ValueError("Datadog API key is required")
        if not self.site or not self.site.strip():
            raise ValueError('Datadog site is required (e.g., "datadoghq.com", "datadoghq.eu")')
        if not self.service or not self.service.strip():
            raise ValueError("Datadog service name is required")
        if not self.env or not self.env.strip():
            raise ValueError("Datadog environment is required")

        if self.site not in VALID_SITES:
            logger.warning(
                f"Datadog: unknown site '{self.site}'. "
                f"Known sites: {', '.join(sorted(VALID_SITES))}"
            )


class DatadogDestination(Destination):
    """Pushes metrics to Datadog. Never supports read-back."""

    name = "datadog"
    supports_reads = False

    def __init__(self, config: DatadogConfig, client: httpx.Client | None = None):
        """Validate the configuration and prepare the HTTP client.

        Args:
            config: The Datadog configuration.
            client: Optional preconfigured HTTP client (used by tests).

        Raises:
            ValueError: If the configuration is invalid.
        """
        config.validate()
        self.config = config
        self.url = f"https://api.{config.site}/api/v1/series"
        self.host = socket.gethostname()
        self._client = client or httpx.Client(timeout=REQUEST_TIMEOUT)
        self._buffer: list[ToolMetric] = []

        logger.debug(
            f"Datadog destination created: site={config.site} "
            f"service={config.service} env={config.env}"
        )

    @property
    def buffered(self) -> list[ToolMetric]:
        """Metrics whose send failed and await a flush."""
        return list(self._buffer)

    def to_series(self, metric: ToolMetric) -> list[dict[str, Any]]:
        """Convert one metric into Datadog series points."""
        timestamp = int(metric.timestamp.timestamp())
        tags = [
            f"tool:{metric.tool_name}",
            f"success:{str(metric.success).lower()}",
            f"service:{self.config.service}",
            f"env:{self.config.env}",
            *(f"{k}:{v}" for k, v in self.config.tags.items()),
        ]

        values = (
            ("claudx.tool.duration", metric.duration),
            ("claudx.tool.input_tokens", metric.input_tokens),
            ("claudx.tool.output_tokens", metric.output_tokens),
        )
        return [
            {
                "metric": name,
                "points": [[timestamp, value]],
                "tags": tags,
                "host": self.host,
                "type": "gauge",
            }
            for name, value in values
        ]

    def _send(self, series: list[dict[str, Any]]) -> None:
        response = self._client.post(
            self.url,
            json={"series": series},
            headers={"DD-API-KEY": self.config.api_key},
        )
        if response.is_error:
            raise RuntimeError(
                f"Datadog API error: {response.status_code} {response.reason_phrase} - {response.text}"
            )
        logger.debug(f"Datadog: sent {len(series)} series")

    def save_metric(self, metric: ToolMetric) -> None:
        try:
            self._send(self.to_series(metric))
        except (httpx.HTTPError, RuntimeError) as e:
            logger.error(f"Datadog: failed to send metric for {metric.tool_name}: {e}")
            self._buffer.append(metric)

    def flush(self) -> bool:
        """Send all buffered metrics in one request.

        Returns:
            True if the buffer is empty afterwards.
        """
        if not self._buffer:
            return True

        series = [point for metric in self._buffer for point in self.to_series(metric)]
        try:
            self._send(series)
        except (httpx.HTTPError, RuntimeError) as e:
            logger.error(f"Datadog: failed to flush {len(self._buffer)} buffered metrics: {e}")
            return False

        logger.debug(f"Datadog: flushed {len(self._buffer)} buffered metrics")
        self._buffer.clear()
        return True

    def get_metrics_summary(self) -> list[MetricsSummary]:
        return []

    def get_recent_metrics(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[ToolMetric]:
        return []

    def close(self) -> None:
        logger.debug(f"Datadog: closing, {len(self._buffer)} buffered metrics")
        try:
            self.flush()
        finally:
            self._client.close()

    def __repr__(self) -> str:
        return f"<DatadogDestination {self.config.site} service={self.config.service}>"
