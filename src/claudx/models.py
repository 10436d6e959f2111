"""Data models for recorded tool invocations and generated shims."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class ToolMetric:
    """One record per intercepted tool invocation.

    Records are immutable once built; a correction is a new record.

    Attributes:
        id: Unique identifier (uuid4), assigned when the invocation starts.
        tool_name: Canonical name used to group invocations.
        start_time: Monotonic start counter in nanoseconds.
        end_time: Monotonic end counter in nanoseconds.
        duration: Wall-clock duration in milliseconds.
        success: True iff the wrapped process exited with status 0.
        error_message: Failure description, present iff success is False.
        parameters: Invocation context ({"args": [...], "cwd": "..."}).
        timestamp: Wall-clock capture time (UTC).
        input_tokens: Estimated tokens of the command line.
        output_tokens: Estimated tokens of stdout + stderr.
        total_tokens: input_tokens + output_tokens.
    """

    id: str
    tool_name: str
    start_time: int
    end_time: int
    duration: float
    success: bool
    parameters: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error_message: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ToolMetric:
        """Create a ToolMetric from a tool_metrics table row.

        Args:
            row: Mapping of column name to stored value.

        Returns:
            The reconstructed ToolMetric.
        """
        parameters = row.get("parameters")
        return cls(
            id=row["id"],
            tool_name=row["tool_name"],
            start_time=int(row["start_time"]),
            end_time=int(row["end_time"]),
            duration=float(row["duration"]),
            success=row["success"] == 1,
            error_message=row.get("error_message") or None,
            parameters=json.loads(parameters) if parameters else {},
            timestamp=datetime.fromisoformat(row["timestamp"]),
            input_tokens=row.get("input_tokens") or 0,
            output_tokens=row.get("output_tokens") or 0,
            total_tokens=row.get("total_tokens") or 0,
        )


@dataclass
class MetricsSummary:
    """Aggregated statistics for one canonical tool name.

    Derived on demand from the full metric history, never stored.
    """

    tool_name: str
    total_calls: int = 0
    total_duration: float = 0.0
    avg_duration: float = 0.0
    min_duration: float = 0.0
    max_duration: float = 0.0
    success_rate: float = 1.0
    total_tokens: int = 0
    avg_tokens: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass
class ShimConfig:
    """Describes one generated shim."""

    executable: str
    original_path: str | None = None
    shim_path: str | None = None
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShimConfig:
        """Create a ShimConfig from a dictionary."""
        return cls(
            executable=data["executable"],
            original_path=data.get("original_path"),
            shim_path=data.get("shim_path"),
            enabled=data.get("enabled", True),
        )
