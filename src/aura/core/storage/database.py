"""SQLite database management for the Aura wellness data bank.

Handles connection lifecycle, schema creation, and migrations.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 2

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
-- One row per measurement event
CREATE TABLE IF NOT EXISTS health_data (
    id               TEXT PRIMARY KEY,
    user_id          TEXT NOT NULL,
    timestamp        TEXT NOT NULL,
    source           TEXT NOT NULL DEFAULT 'manual',

    -- Encrypted JSON blob (heart rate, steps, stress, sleep, mood)
    measurements_enc TEXT NOT NULL,

    created_at       TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Discovered patterns, keyed by their deterministic id within a user
CREATE TABLE IF NOT EXISTS wellness_patterns (
    user_id       TEXT NOT NULL,
    pattern_id    TEXT NOT NULL,
    type          TEXT NOT NULL,
    description   TEXT NOT NULL,
    confidence    REAL NOT NULL,
    metric        TEXT NOT NULL,
    trigger_tag   TEXT,
    day_of_week   INTEGER,
    hour_of_day   INTEGER,
    discovered_at TEXT NOT NULL,
    occurrences   INTEGER NOT NULL,
    PRIMARY KEY (user_id, pattern_id)
);

-- Predictions are never deduplicated: one row per prediction per run
CREATE TABLE IF NOT EXISTS wellness_predictions (
    id               TEXT PRIMARY KEY,
    user_id          TEXT NOT NULL,
    description      TEXT NOT NULL,
    type             TEXT NOT NULL,
    confidence       REAL NOT NULL,
    suggested_action TEXT NOT NULL,
    expires_at       TEXT NOT NULL,
    created_at       TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Indexes for common query patterns
CREATE INDEX IF NOT EXISTS idx_health_user_ts       ON health_data(user_id, timestamp);
CREATE INDEX IF NOT EXISTS idx_patterns_confidence  ON wellness_patterns(user_id, confidence);
CREATE INDEX IF NOT EXISTS idx_predictions_expiry   ON wellness_predictions(user_id, expires_at);
"""

# ---------------------------------------------------------------------------
# V2: Audit log table (PHI-free access logging)
# ---------------------------------------------------------------------------

_SCHEMA_V2 = """
CREATE TABLE IF NOT EXISTS audit_log (
    id              TEXT PRIMARY KEY,
    timestamp       TEXT NOT NULL DEFAULT (datetime('now')),
    action          TEXT NOT NULL,
    tool_name       TEXT,
    tool_input_hash TEXT,
    user_ref        TEXT,
    duration_ms     REAL,
    status          TEXT NOT NULL DEFAULT 'success',
    error_type      TEXT,
    metadata_json   TEXT
);

CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action    ON audit_log(action);
CREATE INDEX IF NOT EXISTS idx_audit_tool      ON audit_log(tool_name);
"""


class DatabaseError(Exception):
    """Raised when database operations fail."""


class WellnessDatabase:
    """SQLite database manager for the Aura wellness data bank.

    Supports both file-based and in-memory (`:memory:`) databases.
    In-memory mode is used for testing.

    Usage::

        db = WellnessDatabase(":memory:")
        db.initialize()
        conn = db.connection
        # ... use connection ...
        db.close()
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        """Initialize database manager.

        Args:
            db_path: Path to SQLite file, or ":memory:" for in-memory DB.
        """
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the active database connection.

        Raises:
            DatabaseError: If the database has not been initialized.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Create the database connection and ensure schema exists.

        For file-based databases, creates parent directories if needed.
        Idempotent: safe to call multiple times.
        """
        if self._conn is not None:
            return

        if self._db_path != ":memory:":
            db_file = Path(self._db_path).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            # FastMCP runs sync tools on a worker thread
            self._conn = sqlite3.connect(str(db_file), check_same_thread=False)
        else:
            self._conn = sqlite3.connect(":memory:", check_same_thread=False)

        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        self._ensure_schema()
        logger.info("Wellness database initialized: %s", self._db_path)

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and apply migrations."""
        conn = self.connection

        # V1: Core tables (CREATE IF NOT EXISTS is idempotent)
        conn.executescript(_SCHEMA_V1)

        cursor = conn.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        current_version = row[0] if row[0] is not None else 0

        # V2: Audit log table
        if current_version < 2:
            conn.executescript(_SCHEMA_V2)
            logger.info("Applied schema migration V2: audit_log table")

        if current_version < SCHEMA_VERSION:
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info(
                "Schema updated from version %d to %d", current_version, SCHEMA_VERSION
            )

    def get_schema_version(self) -> int:
        """Return the current schema version."""
        cursor = self.connection.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row[0] is not None else 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Wellness database closed")

    def __enter__(self) -> WellnessDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
