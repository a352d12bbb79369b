"""Audit logger: PHI-free trail of tool calls, deletions and clinician alerts.

Nothing identifying is written in clear:

* ``tool_input_hash``: SHA-256 of the canonical JSON tool input.
* ``patient_ref``: SHA-256 of the patient id, so events for one patient
  can be grouped without storing who they are.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from herstel.core.storage.database import RecoveryDatabase

logger = logging.getLogger(__name__)


def _hash_input(data: Any) -> str:
    """SHA-256 of canonical JSON, or empty string when not serializable."""
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()
    except (TypeError, ValueError):
        return ""


def patient_reference(patient_id: str | None) -> str | None:
    """Stable pseudonymous reference for a patient id."""
    if not patient_id:
        return None
    return hashlib.sha256(f"patient:{patient_id}".encode()).hexdigest()


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                     # 'tool_invocation' | 'data_delete' | 'clinician_alert'
    tool_name: str = ""
    tool_input_hash: str = ""
    patient_ref: str | None = None
    assessment_id: str | None = None
    duration_ms: float | None = None
    status: str = "success"         # 'success' | 'failure'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Records audit events to the ``audit_log`` table.

    Writes are committed immediately. A failed write is logged and reported
    as an empty event id rather than failing the tool call that caused it.

    Usage::

        audit = AuditLogger(db)
        audit.log_tool_call(
            "daily_recovery_assessment",
            {"patient_id": "p-1", "assessment_date": "2026-03-02"},
            patient_id="p-1",
        )
    """

    def __init__(self, database: RecoveryDatabase) -> None:
        self._db = database

    # ---------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------

    def log_event(self, event: AuditEvent) -> str:
        """Insert an audit event and return its UUID ('' on failure)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":")) if event.metadata else None
        )

        try:
            conn = self._db.connection
            conn.execute(
                """INSERT INTO audit_log
                   (id, timestamp, action, tool_name, tool_input_hash, patient_ref,
                    assessment_id, duration_ms, status, error_type, metadata_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    event_id,
                    now,
                    event.action,
                    event.tool_name or None,
                    event.tool_input_hash or None,
                    event.patient_ref,
                    event.assessment_id,
                    event.duration_ms,
                    event.status,
                    event.error_type,
                    metadata_json,
                ),
            )
            conn.commit()
        except Exception:
            logger.exception("Failed to write audit event: event lost")
            return ""

        return event_id

    def log_tool_call(
        self,
        tool_name: str,
        tool_input: Any = None,
        *,
        patient_id: str | None = None,
        assessment_id: str | None = None,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log a tool invocation. ``tool_input`` is hashed, never stored."""
        return self.log_event(AuditEvent(
            action="tool_invocation",
            tool_name=tool_name,
            tool_input_hash=_hash_input(tool_input) if tool_input else "",
            patient_ref=patient_reference(patient_id),
            assessment_id=assessment_id,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata or {},
        ))

    def log_clinician_alert(
        self,
        *,
        patient_id: str,
        assessment_id: str | None,
        alerts: list[dict[str, Any]],
        tool_name: str = "",
    ) -> str:
        """Record that alerts were raised. Only categories and severities are kept."""
        return self.log_event(AuditEvent(
            action="clinician_alert",
            tool_name=tool_name,
            patient_ref=patient_reference(patient_id),
            assessment_id=assessment_id,
            metadata={
                "alert_count": len(alerts),
                "categories": sorted({a.get("category", "") for a in alerts}),
                "alarm": any(a.get("severity") == "alarm" for a in alerts),
            },
        ))

    def log_data_delete(
        self,
        *,
        tool_name: str = "",
        patient_id: str | None = None,
        assessment_id: str | None = None,
        count: int = 0,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log a deletion event."""
        return self.log_event(AuditEvent(
            action="data_delete",
            tool_name=tool_name,
            patient_ref=patient_reference(patient_id),
            assessment_id=assessment_id,
            metadata={**(metadata or {}), "records_deleted": count},
        ))

    # ---------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------

    def get_events(
        self,
        *,
        action: str | None = None,
        tool_name: str | None = None,
        patient_id: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query audit events, newest first."""
        conditions: list[str] = []
        params: list[Any] = []

        if action:
            conditions.append("action = ?")
            params.append(action)
        if tool_name:
            conditions.append("tool_name = ?")
            params.append(tool_name)
        if patient_id:
            conditions.append("patient_ref = ?")
            params.append(patient_reference(patient_id))
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, action: str | None = None, since: str | None = None) -> int:
        conditions: list[str] = []
        params: list[Any] = []
        if action:
            conditions.append("action = ?")
            params.append(action)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)
        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        row = self._db.connection.execute(f"SELECT COUNT(*) FROM audit_log{where}", params).fetchone()
        return row[0]
