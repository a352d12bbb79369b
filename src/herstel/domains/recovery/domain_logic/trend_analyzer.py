"""Longitudinal Recovery Index analysis from stored daily assessments."""

from __future__ import annotations

import logging
import statistics
from collections import Counter
from typing import Any

from herstel.core.storage.repository import AssessmentRepository
from herstel.domains.recovery.domain_logic.activity_models import ActivityState
from herstel.domains.recovery.domain_logic.recovery_index import calculate_trend

logger = logging.getLogger(__name__)


class RecoveryTrendAnalyzer:
    """Computes score trends and state patterns for one patient.

    Usage::

        analyzer = RecoveryTrendAnalyzer(repository)
        trend = analyzer.compute_score_trend("patient-1", limit=14)
        states = analyzer.summarize_states("patient-1")
    """

    def __init__(self, repository: AssessmentRepository) -> None:
        self._repo = repository

    def compute_score_trend(self, patient_id: str, *, limit: int = 30) -> dict[str, Any]:
        """Trend statistics over the most recent ``limit`` scored days.

        ``direction`` compares the latest score with the mean of the three
        days before it, the same rule used when a day is assessed.
        """
        scores = self._repo.get_score_history(patient_id, limit=limit)

        if not scores:
            return {"patient_id": patient_id, "data_points": 0, "status": "no_data"}

        current = scores[-1]
        previous = scores[:-1]
        std_val = statistics.stdev(scores) if len(scores) > 1 else 0.0

        return {
            "patient_id": patient_id,
            "current": current,
            "previous": previous[-1] if previous else None,
            "mean": round(statistics.mean(scores), 2),
            "median": statistics.median(scores),
            "min": min(scores),
            "max": max(scores),
            "std_dev": round(std_val, 2),
            "direction": calculate_trend(current, previous),
            "data_points": len(scores),
        }

    def summarize_states(self, patient_id: str, *, limit: int = 30) -> dict[str, Any]:
        """Count activity states and high-risk days over recent history."""
        history = self._repo.get_state_history(patient_id, limit=limit)
        if not history:
            return {"patient_id": patient_id, "data_points": 0, "status": "no_data"}

        counts = Counter(state for _, state, _ in history)
        state_counts = {s.value: counts.get(s.value, 0) for s in ActivityState}
        most_frequent = counts.most_common(1)[0][0]

        return {
            "patient_id": patient_id,
            "data_points": len(history),
            "state_counts": state_counts,
            "most_frequent_state": most_frequent,
            "days_at_high_risk": sum(1 for _, _, risk in history if risk == "high"),
            "latest_state": history[0][1],
            "latest_date": history[0][0],
        }
