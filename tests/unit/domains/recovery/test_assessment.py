"""Tests for the end-to-end daily recovery assessment."""

from __future__ import annotations

import json

from herstel.domains.recovery.domain_logic.activity_models import ActivityState
from herstel.domains.recovery.domain_logic.assessment import assess_recovery_day
from herstel.domains.recovery.domain_logic.daily_aggregate import DailyAggregate


def _good_day(**overrides) -> DailyAggregate:
    defaults = dict(
        protein=90,
        calories=1900,
        steps=2000,
        activity_minutes=20,
        movement_moments=8,
        fatigue_score=2,
        pain_score=2,
        sleep_hours=8,
    )
    defaults.update(overrides)
    return DailyAggregate(**defaults)


class TestAssessRecoveryDay:
    def test_good_day(self):
        assessment = assess_recovery_day(
            _good_day(), protein_target=90, step_target=2000, post_op_week=2
        )
        assert assessment.evaluation.state == ActivityState.ADEQUATE
        assert assessment.index.score == 100
        assert assessment.index.risk_level == "low"
        assert assessment.trend == "unknown"
        assert not assessment.notable
        assert assessment.alerts == []

    def test_empty_day(self):
        assessment = assess_recovery_day(DailyAggregate(), protein_target=90, step_target=2000)
        assert assessment.evaluation.state == ActivityState.DATA_SPARSE
        assert assessment.index.score == 0
        assert assessment.index.risk_level == "high"
        assert assessment.notable
        assert [a["category"] for a in assessment.alerts] == ["recovery_index", "data"]

    def test_trend_uses_previous_scores(self):
        assessment = assess_recovery_day(
            _good_day(protein=45, steps=1000, movement_moments=3),
            protein_target=90,
            step_target=2000,
            previous_scores=[95, 95, 95],
        )
        assert assessment.trend == "declining"
        assert any(a["category"] == "trend" for a in assessment.alerts)

    def test_safety_flags_raise_alarms(self):
        assessment = assess_recovery_day(
            _good_day(safety_flags=["fever"]), protein_target=90, step_target=2000
        )
        assert assessment.alerts[0]["category"] == "safety"
        assert assessment.alerts[0]["value"] == "fever"

    def test_to_dict(self):
        data = assess_recovery_day(
            _good_day(), protein_target=90, step_target=2000, post_op_week=2
        ).to_dict()
        assert data["activity_state"] == "ADEQUATE"
        assert data["recovery_index"]["score"] == 100
        assert data["guidance"]["label"] == "Op koers"
        assert data["guidance"]["risk_label"] == "Goed herstel"
        assert data["guidance"]["risk_color"] == "green"
        assert data["trend"] == "unknown"
        # Must be JSON-serializable for the MCP tools
        json.dumps(data)
