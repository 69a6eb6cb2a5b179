"""SQLite cache of daily reports, one row per date key."""

import json
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import structlog

from db import wal_connect

from .clock import Clock
from .errors import StoreError
from .models import ReportArtifact, derive_status

logger = structlog.get_logger().bind(source="report_store")

DEFAULT_FRESHNESS_HOURS = 24
DEFAULT_RETAIN_DAYS = 7


class ReportStore:
    """Durable report cache.

    ``put`` is an upsert whose revision bump happens inside one SQLite write
    transaction, so revisions for a key strictly increase even across
    processes. Reads never touch the network.
    """

    def __init__(
        self,
        db_path: str | Path,
        freshness_hours: float = DEFAULT_FRESHNESS_HOURS,
        clock: Optional[Clock] = None,
    ):
        self.db_path = Path(db_path).expanduser()
        self.freshness = timedelta(hours=freshness_hours)
        self.clock = clock or Clock()
        self._init_tables()

    def _init_tables(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with wal_connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS daily_reports (
                    date_key TEXT PRIMARY KEY,
                    title TEXT NOT NULL DEFAULT '',
                    content TEXT NOT NULL,
                    generated_at TIMESTAMP NOT NULL,
                    generation_duration_ms INTEGER NOT NULL DEFAULT 0,
                    cost_units INTEGER NOT NULL DEFAULT 0,
                    revision INTEGER NOT NULL DEFAULT 1,
                    location TEXT DEFAULT '',
                    source TEXT DEFAULT 'template',
                    valid_until TIMESTAMP,
                    confidence_tier TEXT,
                    schedule_json TEXT DEFAULT '{}'
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_reports_generated ON daily_reports(generated_at)"
            )

    def get(self, date_key: str) -> Optional[ReportArtifact]:
        """Cached artifact for ``date_key`` with status derived from its age."""
        try:
            with wal_connect(self.db_path, row_factory=True) as conn:
                row = conn.execute(
                    "SELECT * FROM daily_reports WHERE date_key = ?", (date_key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"read failed for {date_key}: {e}") from e
        return self._row_to_artifact(row) if row else None

    def put(self, artifact: ReportArtifact) -> ReportArtifact:
        """Insert or replace the artifact for its date key.

        Returns:
            The stored artifact carrying its new revision.

        Raises:
            StoreError: the write did not commit.
        """
        try:
            conn = wal_connect(self.db_path)
            try:
                conn.execute("BEGIN IMMEDIATE")
                conn.execute(
                    """INSERT INTO daily_reports
                    (date_key, title, content, generated_at, generation_duration_ms,
                     cost_units, revision, location, source, valid_until,
                     confidence_tier, schedule_json)
                    VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?, ?, ?, ?)
                    ON CONFLICT(date_key) DO UPDATE SET
                        title = excluded.title,
                        content = excluded.content,
                        generated_at = excluded.generated_at,
                        generation_duration_ms = excluded.generation_duration_ms,
                        cost_units = excluded.cost_units,
                        revision = daily_reports.revision + 1,
                        location = excluded.location,
                        source = excluded.source,
                        valid_until = excluded.valid_until,
                        confidence_tier = excluded.confidence_tier,
                        schedule_json = excluded.schedule_json""",
                    (
                        artifact.date_key,
                        artifact.title,
                        artifact.content,
                        artifact.generated_at.isoformat(),
                        artifact.generation_duration_ms,
                        artifact.cost_units,
                        artifact.location,
                        artifact.source,
                        artifact.valid_until.isoformat() if artifact.valid_until else None,
                        artifact.confidence_tier,
                        json.dumps(artifact.schedule),
                    ),
                )
                revision = conn.execute(
                    "SELECT revision FROM daily_reports WHERE date_key = ?",
                    (artifact.date_key,),
                ).fetchone()[0]
                conn.commit()
            except BaseException:
                conn.rollback()
                raise
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StoreError(f"write failed for {artifact.date_key}: {e}") from e

        logger.info("report.stored", date_key=artifact.date_key, revision=revision)
        stored = artifact.with_status(
            derive_status(artifact.generated_at, self.clock.now(), self.freshness)
        )
        stored.revision = revision
        stored.persisted = True
        return stored

    def sweep(self, retain_days: int = DEFAULT_RETAIN_DAYS) -> int:
        """Delete artifacts whose date key is more than ``retain_days`` before today."""
        cutoff = self.clock.date_key(self.clock.today() - timedelta(days=retain_days))
        try:
            with wal_connect(self.db_path) as conn:
                cursor = conn.execute("DELETE FROM daily_reports WHERE date_key < ?", (cutoff,))
                deleted = cursor.rowcount
        except sqlite3.Error as e:
            raise StoreError(f"sweep failed: {e}") from e
        logger.info("report.swept", deleted=deleted, cutoff=cutoff)
        return deleted

    def latest(self) -> Optional[ReportArtifact]:
        with wal_connect(self.db_path, row_factory=True) as conn:
            row = conn.execute(
                "SELECT * FROM daily_reports ORDER BY date_key DESC LIMIT 1"
            ).fetchone()
        return self._row_to_artifact(row) if row else None

    def list_recent(self, days: int = 7) -> list[ReportArtifact]:
        """Artifacts from the last ``days`` days, newest first."""
        since = self.clock.date_key(self.clock.today() - timedelta(days=days))
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                "SELECT * FROM daily_reports WHERE date_key >= ? ORDER BY date_key DESC",
                (since,),
            ).fetchall()
        return [self._row_to_artifact(r) for r in rows]

    def get_stats(self, days: int = 30) -> dict:
        since = self.clock.date_key(self.clock.today() - timedelta(days=days))
        with wal_connect(self.db_path) as conn:
            row = conn.execute(
                """SELECT COUNT(*), AVG(cost_units), AVG(generation_duration_ms),
                          MAX(generated_at), SUM(cost_units)
                   FROM daily_reports WHERE date_key >= ?""",
                (since,),
            ).fetchone()
        total, avg_cost, avg_duration, latest_at, total_cost = row
        return {
            "total_reports": total or 0,
            "avg_cost_units": round(avg_cost or 0, 1),
            "avg_duration_ms": round(avg_duration or 0),
            "latest_report_at": latest_at,
            "total_cost_units": total_cost or 0,
        }

    def _row_to_artifact(self, row: sqlite3.Row) -> ReportArtifact:
        generated_at = datetime.fromisoformat(row["generated_at"])
        valid_until = row["valid_until"]
        try:
            schedule = json.loads(row["schedule_json"] or "{}")
        except json.JSONDecodeError:
            logger.warning("report.schedule_unreadable", date_key=row["date_key"])
            schedule = {}
        return ReportArtifact(
            date_key=row["date_key"],
            title=row["title"],
            content=row["content"],
            generated_at=generated_at,
            status=derive_status(generated_at, self.clock.now(), self.freshness),
            generation_duration_ms=row["generation_duration_ms"],
            cost_units=row["cost_units"],
            revision=row["revision"],
            location=row["location"] or "",
            source=row["source"] or "template",
            valid_until=datetime.fromisoformat(valid_until) if valid_until else None,
            confidence_tier=row["confidence_tier"],
            schedule=schedule,
        )
