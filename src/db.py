"""Shared SQLite helpers: WAL mode, busy timeout and row_factory defaults."""

import sqlite3
from pathlib import Path


def wal_connect(
    db_path: str | Path, row_factory: bool = False, timeout: float = 10.0
) -> sqlite3.Connection:
    """Open SQLite connection with WAL journal mode.

    Scheduler jobs and request handlers write from different threads, so every
    connection waits up to ``timeout`` seconds on a locked database instead of
    failing immediately.

    Args:
        db_path: Path to database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
        timeout: Seconds to wait for a competing writer.
    """
    conn = sqlite3.connect(str(db_path), timeout=timeout)
    conn.execute("PRAGMA journal_mode=WAL")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn
