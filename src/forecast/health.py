"""Per-adapter health tracking for diagnostics."""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import structlog

from db import wal_connect

logger = structlog.get_logger().bind(source="source_health")

_SOURCE_HEALTH_DDL = """
CREATE TABLE IF NOT EXISTS source_health (
    source_id TEXT PRIMARY KEY,
    last_run_at TIMESTAMP,
    last_success_at TIMESTAMP,
    consecutive_errors INTEGER DEFAULT 0,
    total_runs INTEGER DEFAULT 0,
    total_errors INTEGER DEFAULT 0,
    last_error TEXT,
    last_windows INTEGER DEFAULT 0,
    last_duration_ms INTEGER
)
"""


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class SourceHealthTracker:
    """Record adapter outcomes so status pages can show which providers are failing."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with wal_connect(self.db_path) as conn:
            conn.execute(_SOURCE_HEALTH_DDL)

    def record_success(
        self, source_id: str, windows: int = 0, duration_ms: int | None = None
    ) -> None:
        """Reset the error streak and store the latest run metrics."""
        now = _utcnow()
        with wal_connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO source_health (source_id, last_run_at, last_success_at,
                    consecutive_errors, total_runs, total_errors, last_error,
                    last_windows, last_duration_ms)
                VALUES (?, ?, ?, 0, 1, 0, NULL, ?, ?)
                ON CONFLICT(source_id) DO UPDATE SET
                    last_run_at = excluded.last_run_at,
                    last_success_at = excluded.last_success_at,
                    consecutive_errors = 0,
                    total_runs = total_runs + 1,
                    last_error = NULL,
                    last_windows = excluded.last_windows,
                    last_duration_ms = excluded.last_duration_ms
                """,
                (source_id, now, now, windows, duration_ms),
            )

    def record_failure(self, source_id: str, error: str, duration_ms: int | None = None) -> None:
        """Increment the error streak."""
        now = _utcnow()
        error_truncated = (error or "")[:500]
        with wal_connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO source_health (source_id, last_run_at, last_success_at,
                    consecutive_errors, total_runs, total_errors, last_error,
                    last_windows, last_duration_ms)
                VALUES (?, ?, NULL, 1, 1, 1, ?, 0, ?)
                ON CONFLICT(source_id) DO UPDATE SET
                    last_run_at = excluded.last_run_at,
                    consecutive_errors = consecutive_errors + 1,
                    total_runs = total_runs + 1,
                    total_errors = total_errors + 1,
                    last_error = excluded.last_error,
                    last_windows = 0,
                    last_duration_ms = excluded.last_duration_ms
                """,
                (source_id, now, error_truncated, duration_ms),
            )
            row = conn.execute(
                "SELECT consecutive_errors FROM source_health WHERE source_id = ?",
                (source_id,),
            ).fetchone()
        if row and row[0] >= 3:
            logger.warning("source_consecutive_failures", source_id=source_id, count=row[0])

    def get_source_health(self, source_id: str) -> dict | None:
        with wal_connect(self.db_path, row_factory=True) as conn:
            row = conn.execute(
                "SELECT * FROM source_health WHERE source_id = ?",
                (source_id,),
            ).fetchone()
            return dict(row) if row else None

    def get_all_health(self) -> list[dict]:
        with wal_connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute("SELECT * FROM source_health ORDER BY source_id").fetchall()
            return [dict(r) for r in rows]

    def get_health_summary(self) -> list[dict]:
        """Health rows with computed status and error_rate per source."""
        rows = self.get_all_health()
        for r in rows:
            errs = r.get("consecutive_errors", 0) or 0
            if errs >= 3:
                r["status"] = "failing"
            elif errs >= 1:
                r["status"] = "degraded"
            else:
                r["status"] = "healthy"
            total = r.get("total_runs", 0) or 0
            total_err = r.get("total_errors", 0) or 0
            r["error_rate"] = round(total_err / total * 100, 1) if total else 0.0
        return rows
