"""Data models for the assessment persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class DailyAssessmentRecord:
    """A stored, scored patient-day.

    ``daily_data`` (the raw aggregate) is encrypted at rest. Scores, state and
    risk tier are stored in plain columns for indexed history queries.
    """

    id: str
    patient_id: str
    assessment_date: str  # ISO 8601 date, e.g. '2026-03-02'

    # Encrypted JSON blob
    daily_data: dict[str, Any] | None = None

    # Unencrypted computed results
    post_op_week: int | None = None
    activity_state: str = ""
    score: int = 0
    protein_score: int = 0
    activity_score: int = 0
    adl_score: int = 0
    risk_level: str = ""
    trend: str = "unknown"

    alerts: list[dict[str, Any]] = field(default_factory=list)
    created_at: str = ""

    def score_breakdown(self) -> dict[str, int]:
        return {
            "score": self.score,
            "protein_score": self.protein_score,
            "activity_score": self.activity_score,
            "adl_score": self.adl_score,
        }
