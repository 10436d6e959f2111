"""Local SQLite destination.

Each collector run is a short-lived process, so every insert is committed
before save_metric returns. WAL journaling plus a busy timeout lets many
collector processes write to the same file at once.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from claudx.config import claudx_home
from claudx.destinations.base import DEFAULT_RECENT_LIMIT, Destination
from claudx.models import MetricsSummary, ToolMetric

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = "metrics.db"
# Below the manager's per-destination save deadline
BUSY_TIMEOUT = 5.0  # seconds
CLOSE_TIMEOUT = 1.0  # seconds

SCHEMA = """
CREATE TABLE IF NOT EXISTS tool_metrics (
    id TEXT PRIMARY KEY,
    tool_name TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    duration REAL NOT NULL,
    success INTEGER NOT NULL,
    error_message TEXT,
    parameters TEXT,
    timestamp TEXT NOT NULL,
    input_tokens INTEGER NOT NULL DEFAULT 0,
    output_tokens INTEGER NOT NULL DEFAULT 0,
    total_tokens INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_tool_name ON tool_metrics(tool_name);
CREATE INDEX IF NOT EXISTS idx_timestamp ON tool_metrics(timestamp);
"""

INSERT_SQL = """
INSERT INTO tool_metrics
(id, tool_name, start_time, end_time, duration, success, error_message,
 parameters, timestamp, input_tokens, output_tokens, total_tokens)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

SUMMARY_SQL = """
SELECT
    tool_name,
    COUNT(*) AS total_calls,
    SUM(duration) AS total_duration,
    AVG(duration) AS avg_duration,
    MIN(duration) AS min_duration,
    MAX(duration) AS max_duration,
    AVG(CAST(success AS REAL)) AS success_rate,
    SUM(total_tokens) AS total_tokens,
    AVG(total_tokens) AS avg_tokens,
    SUM(input_tokens) AS input_tokens,
    SUM(output_tokens) AS output_tokens
FROM tool_metrics
GROUP BY tool_name
ORDER BY total_duration DESC
"""

RECENT_SQL = """
SELECT * FROM tool_metrics
ORDER BY timestamp DESC
LIMIT ?
"""


def default_db_path() -> Path:
    """Database path from CLAUDX_DB_PATH, or the default under the claudx home."""
    override = os.environ.get("CLAUDX_DB_PATH")
    if override:
        return Path(override)
    return claudx_home() / DEFAULT_DB_NAME


class SQLiteDestination(Destination):
    """Stores metrics in a local SQLite database file."""

    name = "sqlite"
    supports_reads = True

    def __init__(self, db_path: str | Path | None = None):
        """Open (creating if needed) the metrics database.

        Args:
            db_path: Path to the database file. Defaults to CLAUDX_DB_PATH or
                     ~/.claudx/metrics.db.
        """
        self.db_path = Path(db_path).expanduser() if db_path else default_db_path()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.debug(f"Initializing SQLite database at {self.db_path}")

        # The manager saves from a worker thread; access is serialized by _lock.
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = sqlite3.connect(
            str(self.db_path),
            timeout=BUSY_TIMEOUT,
            check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=FULL")
        with self._conn:
            self._conn.executescript(SCHEMA)

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SQLite destination is closed")
        return self._conn

    def save_metric(self, metric: ToolMetric) -> None:
        values = (
            metric.id,
            metric.tool_name,
            str(metric.start_time),
            str(metric.end_time),
            metric.duration,
            1 if metric.success else 0,
            metric.error_message,
            json.dumps(metric.parameters),
            metric.timestamp.isoformat(),
            metric.input_tokens,
            metric.output_tokens,
            metric.total_tokens,
        )
        logger.debug(f"Saving metric {metric.id} for {metric.tool_name}")
        with self._lock, self.conn:
            self.conn.execute(INSERT_SQL, values)

    def get_metrics_summary(self) -> list[MetricsSummary]:
        with self._lock:
            rows = self.conn.execute(SUMMARY_SQL).fetchall()

        return [
            MetricsSummary(
                tool_name=row["tool_name"],
                total_calls=row["total_calls"],
                total_duration=row["total_duration"] or 0.0,
                avg_duration=row["avg_duration"] or 0.0,
                min_duration=row["min_duration"] or 0.0,
                max_duration=row["max_duration"] or 0.0,
                success_rate=row["success_rate"] or 0.0,
                total_tokens=row["total_tokens"] or 0,
                avg_tokens=row["avg_tokens"] or 0.0,
                input_tokens=row["input_tokens"] or 0,
                output_tokens=row["output_tokens"] or 0,
            )
            for row in rows
        ]

    def get_recent_metrics(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[ToolMetric]:
        with self._lock:
            rows = self.conn.execute(RECENT_SQL, (limit,)).fetchall()
        return [ToolMetric.from_row(dict(row)) for row in rows]

    def count(self) -> int:
        """Number of stored metrics."""
        with self._lock:
            return self.conn.execute("SELECT COUNT(*) FROM tool_metrics").fetchone()[0]

    def count_older_than(self, cutoff: datetime) -> int:
        """Number of metrics captured before cutoff."""
        with self._lock:
            row = self.conn.execute(
                "SELECT COUNT(*) FROM tool_metrics WHERE timestamp < ?",
                (cutoff.isoformat(),),
            ).fetchone()
        return row[0]

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete metrics captured before cutoff.

        Args:
            cutoff: Timezone-aware UTC datetime.

        Returns:
            Number of rows removed.
        """
        with self._lock, self.conn:
            cursor = self.conn.execute(
                "DELETE FROM tool_metrics WHERE timestamp < ?",
                (cutoff.isoformat(),),
            )
        return cursor.rowcount

    def close(self) -> None:
        if self._conn is None:
            return
        # A save still waiting on a locked database holds _lock; its
        # connection is left for process exit to reclaim.
        if not self._lock.acquire(timeout=CLOSE_TIMEOUT):
            logger.warning(f"Timed out closing {self.db_path}: a write is still pending")
            return
        try:
            self._conn.close()
            self._conn = None
        finally:
            self._lock.release()

    def __repr__(self) -> str:
        return f"<SQLiteDestination {self.db_path}>"
