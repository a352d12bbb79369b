"""SQLite database management for the recovery assessment store.

Handles connection lifecycle, schema creation, and migrations.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
-- One row per scored patient-day
CREATE TABLE IF NOT EXISTS daily_assessments (
    id               TEXT PRIMARY KEY,
    patient_id       TEXT NOT NULL,
    assessment_date  TEXT NOT NULL,

    -- Encrypted JSON blobs (raw daily aggregate, alert details)
    daily_enc        TEXT,
    alerts_enc       TEXT,

    -- Unencrypted computed results (indexed history queries)
    post_op_week     INTEGER,
    activity_state   TEXT NOT NULL,
    score            INTEGER NOT NULL,
    protein_score    INTEGER NOT NULL,
    activity_score   INTEGER NOT NULL,
    adl_score        INTEGER NOT NULL,
    risk_level       TEXT NOT NULL,
    trend            TEXT NOT NULL DEFAULT 'unknown',

    created_at       TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE (patient_id, assessment_date)
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_assessments_patient ON daily_assessments(patient_id);
CREATE INDEX IF NOT EXISTS idx_assessments_date    ON daily_assessments(assessment_date);
CREATE INDEX IF NOT EXISTS idx_assessments_risk    ON daily_assessments(risk_level);
"""

# ---------------------------------------------------------------------------
# V2: Audit log table (PHI-free access and alert trail)
# ---------------------------------------------------------------------------

_SCHEMA_V2 = """
CREATE TABLE IF NOT EXISTS audit_log (
    id              TEXT PRIMARY KEY,
    timestamp       TEXT NOT NULL DEFAULT (datetime('now')),
    action          TEXT NOT NULL,
    tool_name       TEXT,
    tool_input_hash TEXT,
    patient_ref     TEXT,
    assessment_id   TEXT,
    duration_ms     REAL,
    status          TEXT NOT NULL DEFAULT 'success',
    error_type      TEXT,
    metadata_json   TEXT
);

CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action    ON audit_log(action);
CREATE INDEX IF NOT EXISTS idx_audit_patient   ON audit_log(patient_ref);
"""


class DatabaseError(Exception):
    """Raised when database operations fail."""


class RecoveryDatabase:
    """SQLite database manager for daily recovery assessments.

    Supports both file-based and in-memory (``:memory:``) databases.
    In-memory mode is used for testing.

    Usage::

        db = RecoveryDatabase(":memory:")
        db.initialize()
        conn = db.connection
        db.close()
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Active connection.

        Raises:
            DatabaseError: If :meth:`initialize` has not been called.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Open the connection and ensure the schema exists. Idempotent."""
        if self._conn is not None:
            return

        try:
            if self._db_path != ":memory:":
                db_file = Path(self._db_path).expanduser()
                db_file.parent.mkdir(parents=True, exist_ok=True)
                # Tool handlers may run on a different thread than the one that opened the DB
                self._conn = sqlite3.connect(str(db_file), check_same_thread=False)
            else:
                self._conn = sqlite3.connect(":memory:", check_same_thread=False)
        except (OSError, sqlite3.Error) as exc:
            raise DatabaseError(f"Cannot open database {self._db_path}: {exc}") from exc

        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        self._ensure_schema()
        logger.info("Recovery database initialized: %s", self._db_path)

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and apply migrations."""
        conn = self.connection
        conn.executescript(_SCHEMA_V1)

        row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        current_version = row[0] if row[0] is not None else 0

        if current_version < 2:
            conn.executescript(_SCHEMA_V2)
            logger.info("Applied schema migration V2: audit_log table")

        if current_version < SCHEMA_VERSION:
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            conn.commit()
            logger.info("Schema updated from version %d to %d", current_version, SCHEMA_VERSION)

    def get_schema_version(self) -> int:
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Recovery database closed")

    def __enter__(self) -> RecoveryDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
