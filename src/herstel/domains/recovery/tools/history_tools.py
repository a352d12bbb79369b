"""MCP tools for stored recovery history: listing, trends, retention, audit.

Only registered when the encrypted assessment store is enabled. Deletions
are audit-logged.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from herstel.core.audit.logger import AuditLogger
    from herstel.core.storage.repository import AssessmentRepository
    from herstel.domains.recovery.domain_logic.trend_analyzer import RecoveryTrendAnalyzer

from herstel.core.storage.repository import RepositoryError

logger = logging.getLogger(__name__)


def register_history_tools(
    mcp: FastMCP,
    repository: AssessmentRepository,
    trend_analyzer: RecoveryTrendAnalyzer,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register assessment history tools on the MCP server."""

    @mcp.tool
    async def recovery_history(
        ctx: Context,
        patient_id: str,
        since: str = "",
        until: str = "",
        limit: int = 14,
    ) -> str:
        """List a patient's stored daily assessments, newest first.

        Args:
            patient_id: Patient identifier.
            since: Earliest date to include (ISO 8601), optional.
            until: Latest date to include (ISO 8601), optional.
            limit: Maximum number of days to return.
        """
        try:
            records = repository.get_assessments(
                patient_id, since=since or None, until=until or None, limit=limit
            )
        except RepositoryError as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        entries = [
            {
                "assessment_id": r.id,
                "assessment_date": r.assessment_date,
                "post_op_week": r.post_op_week,
                "activity_state": r.activity_state,
                **r.score_breakdown(),
                "risk_level": r.risk_level,
                "trend": r.trend,
                "alert_count": len(r.alerts),
            }
            for r in records
        ]
        return json.dumps({"status": "ok", "count": len(entries), "entries": entries}, indent=2)

    @mcp.tool
    async def recovery_trend_analysis(
        ctx: Context,
        patient_id: str,
        limit: int = 30,
    ) -> str:
        """Analyze a patient's Recovery Index and activity states over recent days.

        Args:
            patient_id: Patient identifier.
            limit: Number of most recent scored days to include.
        """
        score_trend = trend_analyzer.compute_score_trend(patient_id, limit=limit)
        if score_trend["data_points"] < 2:
            return json.dumps({
                "status": "insufficient_data",
                "data_points": score_trend["data_points"],
                "message": "At least 2 assessed days are needed for trend analysis.",
            })

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="recovery_trend_analysis",
                tool_input={"patient_id": patient_id, "limit": limit},
                patient_id=patient_id,
            )

        return json.dumps({
            "status": "ok",
            "score_trend": score_trend,
            "state_summary": trend_analyzer.summarize_states(patient_id, limit=limit),
        }, indent=2)

    @mcp.tool
    async def delete_assessment(ctx: Context, assessment_id: str) -> str:
        """Permanently delete one stored daily assessment.

        Args:
            assessment_id: The UUID of the assessment to delete.
        """
        if not repository.delete_assessment(assessment_id):
            return json.dumps({
                "status": "not_found",
                "assessment_id": assessment_id,
                "message": "No assessment found with that ID.",
            })

        if audit_logger is not None:
            audit_logger.log_data_delete(
                tool_name="delete_assessment", assessment_id=assessment_id, count=1
            )
        return json.dumps({"status": "deleted", "assessment_id": assessment_id})

    @mcp.tool
    async def purge_old_assessments(ctx: Context, older_than_days: int = 365) -> str:
        """Delete all stored assessments older than a number of days.

        Args:
            older_than_days: Delete days older than this (default: 365).
        """
        if older_than_days < 1:
            return json.dumps({"status": "error", "message": "older_than_days must be at least 1"})

        count = repository.purge_before_days(older_than_days)
        if audit_logger is not None:
            audit_logger.log_data_delete(
                tool_name="purge_old_assessments",
                count=count,
                metadata={"older_than_days": older_than_days},
            )
        return json.dumps({
            "status": "purged",
            "assessments_deleted": count,
            "older_than_days": older_than_days,
        })

    @mcp.tool
    async def delete_patient_data(ctx: Context, patient_id: str, confirm: bool = False) -> str:
        """Delete every stored assessment for a patient.

        Args:
            patient_id: Patient identifier.
            confirm: Must be true; protects against accidental calls.
        """
        if not confirm:
            return json.dumps({
                "status": "confirmation_required",
                "message": "Set confirm=true to delete all assessments for this patient.",
                "assessments_stored": repository.count_assessments(patient_id),
            })

        count = repository.delete_patient_data(patient_id)
        if audit_logger is not None:
            audit_logger.log_data_delete(
                tool_name="delete_patient_data", patient_id=patient_id, count=count
            )
        return json.dumps({"status": "deleted", "assessments_deleted": count})

    if audit_logger is not None:

        @mcp.tool
        async def audit_summary(ctx: Context, days: int = 30) -> str:
            """View recent tool usage, deletions and clinician alerts.

            The audit trail holds no health data: tool inputs and patient ids
            are stored only as hashes.

            Args:
                days: Number of days to look back (default: 30).
            """
            since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
            events = audit_logger.get_events(since=since, limit=20)
            return json.dumps({
                "status": "ok",
                "period_days": days,
                "total_events": audit_logger.count_events(since=since),
                "clinician_alerts": audit_logger.count_events(action="clinician_alert", since=since),
                "deletions": audit_logger.count_events(action="data_delete", since=since),
                "recent_events": [
                    {
                        "timestamp": e.get("timestamp"),
                        "action": e.get("action"),
                        "tool_name": e.get("tool_name"),
                        "status": e.get("status"),
                        "duration_ms": e.get("duration_ms"),
                    }
                    for e in events
                ],
            }, indent=2)
