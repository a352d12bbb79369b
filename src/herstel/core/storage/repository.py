"""Assessment repository: CRUD for the encrypted daily assessment store.

Mediates between ``DailyAssessmentRecord`` objects and SQLite, using
``FieldEncryptor`` for the raw daily data and alert details.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any

from herstel.core.storage.database import RecoveryDatabase
from herstel.core.storage.encryption import FieldEncryptor
from herstel.core.storage.models import DailyAssessmentRecord

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


def normalize_iso_date(value: str, name: str = "assessment_date") -> str:
    """Parse an ISO 8601 date and return it as YYYY-MM-DD.

    Dates are stored and compared as text, so every accepted spelling
    (e.g. "20260301" on Python 3.11+) must map to the extended form.

    Raises:
        RepositoryError: If the value is not an ISO date.
    """
    try:
        return date.fromisoformat(value).isoformat()
    except (TypeError, ValueError) as exc:
        raise RepositoryError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from exc


class AssessmentRepository:
    """CRUD repository for scored patient-days.

    One row per (patient, date): saving the same day again replaces it.

    Usage::

        db = RecoveryDatabase(":memory:")
        db.initialize()
        repo = AssessmentRepository(db, FieldEncryptor(key))

        repo.save_assessment(record)
        scores = repo.get_score_history("patient-1", before_date="2026-03-02")
    """

    def __init__(self, database: RecoveryDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Assessments
    # ------------------------------------------------------------------

    def save_assessment(self, record: DailyAssessmentRecord) -> str:
        """Insert or replace the assessment for ``record``'s patient and date.

        Returns:
            The stored assessment ID (the existing one when replacing).

        Raises:
            RepositoryError: If patient_id is empty or the date is invalid.
        """
        if not record.patient_id:
            raise RepositoryError("patient_id must not be empty")
        assessment_date = normalize_iso_date(record.assessment_date)

        conn = self._db.connection
        aid = record.id or self._new_id()
        created = record.created_at or self._now_iso()

        conn.execute(
            """INSERT INTO daily_assessments (
                id, patient_id, assessment_date, daily_enc, alerts_enc,
                post_op_week, activity_state, score, protein_score,
                activity_score, adl_score, risk_level, trend, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(patient_id, assessment_date) DO UPDATE SET
                daily_enc = excluded.daily_enc,
                alerts_enc = excluded.alerts_enc,
                post_op_week = excluded.post_op_week,
                activity_state = excluded.activity_state,
                score = excluded.score,
                protein_score = excluded.protein_score,
                activity_score = excluded.activity_score,
                adl_score = excluded.adl_score,
                risk_level = excluded.risk_level,
                trend = excluded.trend,
                created_at = excluded.created_at""",
            (
                aid,
                record.patient_id,
                assessment_date,
                self._enc.encrypt(record.daily_data),
                self._enc.encrypt(record.alerts or None),
                record.post_op_week,
                record.activity_state,
                record.score,
                record.protein_score,
                record.activity_score,
                record.adl_score,
                record.risk_level,
                record.trend,
                created,
            ),
        )
        conn.commit()

        row = conn.execute(
            "SELECT id FROM daily_assessments WHERE patient_id = ? AND assessment_date = ?",
            (record.patient_id, assessment_date),
        ).fetchone()
        stored_id = row[0]
        logger.info(
            "Saved assessment %s (date=%s, state=%s, score=%d)",
            stored_id,
            assessment_date,
            record.activity_state,
            record.score,
        )
        return stored_id

    def get_assessment(self, assessment_id: str) -> DailyAssessmentRecord | None:
        """Retrieve one assessment by ID, decrypting raw data."""
        row = self._db.connection.execute(
            "SELECT * FROM daily_assessments WHERE id = ?", (assessment_id,)
        ).fetchone()
        return self._row_to_record(row) if row is not None else None

    def get_assessments(
        self,
        patient_id: str | None = None,
        *,
        since: str | None = None,
        until: str | None = None,
        limit: int = 100,
    ) -> list[DailyAssessmentRecord]:
        """Query assessments with optional filters.

        Args:
            patient_id: Restrict to one patient.
            since: ISO date lower bound (inclusive).
            until: ISO date upper bound (inclusive).
            limit: Maximum results.

        Returns:
            Decrypted records, newest date first.
        """
        conditions: list[str] = []
        params: list[Any] = []

        if patient_id:
            conditions.append("patient_id = ?")
            params.append(patient_id)
        if since:
            conditions.append("assessment_date >= ?")
            params.append(normalize_iso_date(since, "since"))
        if until:
            conditions.append("assessment_date <= ?")
            params.append(normalize_iso_date(until, "until"))

        query = "SELECT * FROM daily_assessments"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY assessment_date DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_record(row) for row in rows]

    def get_latest_assessment(self, patient_id: str) -> DailyAssessmentRecord | None:
        results = self.get_assessments(patient_id, limit=1)
        return results[0] if results else None

    def count_assessments(self, patient_id: str | None = None) -> int:
        conn = self._db.connection
        if patient_id:
            row = conn.execute(
                "SELECT COUNT(*) FROM daily_assessments WHERE patient_id = ?", (patient_id,)
            ).fetchone()
        else:
            row = conn.execute("SELECT COUNT(*) FROM daily_assessments").fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Score history (unencrypted, indexed)
    # ------------------------------------------------------------------

    def get_score_history(
        self,
        patient_id: str,
        *,
        before_date: str | None = None,
        limit: int = 30,
    ) -> list[int]:
        """Recovery Index scores for a patient, oldest to newest.

        Args:
            patient_id: The patient.
            before_date: Only days strictly before this ISO date.
            limit: Maximum number of most recent scores.
        """
        conditions = ["patient_id = ?"]
        params: list[Any] = [patient_id]
        if before_date:
            conditions.append("assessment_date < ?")
            params.append(normalize_iso_date(before_date, "before_date"))

        query = (
            "SELECT score FROM daily_assessments WHERE "
            + " AND ".join(conditions)
            + " ORDER BY assessment_date DESC LIMIT ?"
        )
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [row[0] for row in reversed(rows)]

    def get_state_history(
        self,
        patient_id: str,
        *,
        limit: int = 30,
    ) -> list[tuple[str, str, str]]:
        """(assessment_date, activity_state, risk_level) tuples, newest first."""
        rows = self._db.connection.execute(
            """SELECT assessment_date, activity_state, risk_level
               FROM daily_assessments WHERE patient_id = ?
               ORDER BY assessment_date DESC LIMIT ?""",
            (patient_id, limit),
        ).fetchall()
        return [(row[0], row[1], row[2]) for row in rows]

    # ------------------------------------------------------------------
    # Deletion / data retention
    # ------------------------------------------------------------------

    def delete_assessment(self, assessment_id: str) -> bool:
        """Delete one assessment. Returns False when the ID is unknown."""
        conn = self._db.connection
        cursor = conn.execute("DELETE FROM daily_assessments WHERE id = ?", (assessment_id,))
        conn.commit()
        if cursor.rowcount:
            logger.info("Deleted assessment %s", assessment_id)
            return True
        return False

    def purge_before(self, before_date: str) -> int:
        """Delete all assessments dated strictly before ``before_date``.

        Returns:
            Number of assessments deleted.
        """
        conn = self._db.connection
        cursor = conn.execute(
            "DELETE FROM daily_assessments WHERE assessment_date < ?",
            (normalize_iso_date(before_date, "before_date"),),
        )
        conn.commit()
        count = cursor.rowcount
        if count:
            logger.info("Purged %d assessments older than %s", count, before_date)
        return count

    def purge_before_days(self, days: int) -> int:
        """Delete assessments older than ``days`` days (UTC)."""
        cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).date().isoformat()
        return self.purge_before(cutoff)

    def delete_patient_data(self, patient_id: str) -> int:
        """Delete every assessment for a patient. Returns rows deleted."""
        conn = self._db.connection
        cursor = conn.execute("DELETE FROM daily_assessments WHERE patient_id = ?", (patient_id,))
        conn.commit()
        logger.warning("Deleted all assessments for a patient: %d rows removed", cursor.rowcount)
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _row_to_record(self, row: Any) -> DailyAssessmentRecord:
        return DailyAssessmentRecord(
            id=row["id"],
            patient_id=row["patient_id"],
            assessment_date=row["assessment_date"],
            daily_data=self._enc.decrypt(row["daily_enc"]),
            post_op_week=row["post_op_week"],
            activity_state=row["activity_state"],
            score=row["score"],
            protein_score=row["protein_score"],
            activity_score=row["activity_score"],
            adl_score=row["adl_score"],
            risk_level=row["risk_level"],
            trend=row["trend"],
            alerts=self._enc.decrypt(row["alerts_enc"]) or [],
            created_at=row["created_at"],
        )
