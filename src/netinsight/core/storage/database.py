"""SQLite persistence for keyed JSON envelopes.

One connection per process, shared with the debounce timer thread and
serialized by :attr:`InsightDatabase.lock`. Schema changes are applied as
numbered migrations, each recorded in ``schema_version``.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

# Index i holds the script that upgrades version i to i + 1
_MIGRATIONS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS kv_blobs (
        key        TEXT PRIMARY KEY,
        value      TEXT NOT NULL,
        updated_at TEXT NOT NULL DEFAULT (datetime('now'))
    );
    CREATE INDEX IF NOT EXISTS idx_kv_blobs_updated ON kv_blobs(updated_at);
    """,
)

SCHEMA_VERSION = len(_MIGRATIONS)

_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


class DatabaseError(Exception):
    """Raised when database operations fail."""


class InsightDatabase:
    """Owns the SQLite connection backing :class:`SqliteBlobStore`.

    ``":memory:"`` gives a throwaway database for tests.

    Usage::

        with InsightDatabase("~/.netinsight/baseline.db") as db:
            db.put_blob("edge_ai_baseline_v1", payload)
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self.lock = threading.RLock()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Open the connection and migrate to the latest schema. Idempotent."""
        if self._conn is not None:
            return

        target = self._db_path
        if target != ":memory:":
            db_file = Path(target).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_file)
        conn = sqlite3.connect(target, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        self._conn = conn

        self._migrate()
        logger.info("Insight database ready: %s", self._db_path)

    def _migrate(self) -> None:
        conn = self.connection
        conn.executescript(_VERSION_TABLE)
        current = self.get_schema_version()
        for version in range(current, SCHEMA_VERSION):
            conn.executescript(_MIGRATIONS[version])
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version + 1,))
            conn.commit()
        if current < SCHEMA_VERSION:
            logger.info("Schema migrated from version %d to %d", current, SCHEMA_VERSION)

    def get_schema_version(self) -> int:
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the lock for one unit of work; commit on success, roll back on error."""
        with self.lock:
            conn = self.connection
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    # ------------------------------------------------------------------
    # kv_blobs
    # ------------------------------------------------------------------

    def get_blob(self, key: str) -> str | None:
        with self.lock:
            row = self.connection.execute(
                "SELECT value FROM kv_blobs WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row else None

    def put_blob(self, key: str, value: str) -> None:
        with self.transaction() as conn:
            conn.execute(
                """INSERT INTO kv_blobs (key, value, updated_at)
                   VALUES (?, ?, datetime('now'))
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                (key, value),
            )

    def delete_blob(self, key: str) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM kv_blobs WHERE key = ?", (key,))

    def list_keys(self) -> list[str]:
        with self.lock:
            rows = self.connection.execute("SELECT key FROM kv_blobs ORDER BY key").fetchall()
        return [row["key"] for row in rows]

    def close(self) -> None:
        with self.lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info("Insight database closed")

    def __enter__(self) -> InsightDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
