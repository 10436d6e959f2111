"""claudx - Tool execution metrics for AI coding agents.

claudx shims the executables an agent invokes, times every call, estimates
its token cost and records the result in pluggable storage destinations.
"""

__version__ = "0.1.4"

from claudx.config import ClaudxConfig, DestinationConfig, VALID_DESTINATION_TYPES
from claudx.errors import ClaudxError, ConfigError, ExecutableNotFoundError
from claudx.models import MetricsSummary, ShimConfig, ToolMetric

__all__ = [
    "ClaudxConfig",
    "DestinationConfig",
    "VALID_DESTINATION_TYPES",
    "ClaudxError",
    "ConfigError",
    "ExecutableNotFoundError",
    "MetricsSummary",
    "ShimConfig",
    "ToolMetric",
]
