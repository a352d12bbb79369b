"""Tests for RecoveryTrendAnalyzer."""

from __future__ import annotations

import pytest

from herstel.domains.recovery.domain_logic.trend_analyzer import RecoveryTrendAnalyzer


@pytest.fixture
def analyzer(assessment_repository):
    return RecoveryTrendAnalyzer(assessment_repository)


class TestComputeScoreTrend:
    def test_no_data(self, analyzer):
        result = analyzer.compute_score_trend("patient-1")
        assert result["data_points"] == 0
        assert result["status"] == "no_data"

    def test_single_day(self, analyzer, assessment_repository, make_record):
        assessment_repository.save_assessment(make_record("2026-03-01", 72))
        result = analyzer.compute_score_trend("patient-1")
        assert result["current"] == 72
        assert result["previous"] is None
        assert result["std_dev"] == 0.0
        assert result["direction"] == "unknown"

    def test_statistics(self, analyzer, assessment_repository, make_record):
        for day, score in [("2026-03-01", 60), ("2026-03-02", 65), ("2026-03-03", 70), ("2026-03-04", 80)]:
            assessment_repository.save_assessment(make_record(day, score))

        result = analyzer.compute_score_trend("patient-1")
        assert result["current"] == 80
        assert result["previous"] == 70
        assert result["mean"] == 68.75
        assert result["median"] == 67.5
        assert result["min"] == 60
        assert result["max"] == 80
        # 80 against the mean of 60, 65, 70
        assert result["direction"] == "improving"
        assert result["data_points"] == 4

    def test_limit_keeps_most_recent_days(self, analyzer, assessment_repository, make_record):
        for day, score in [("2026-03-01", 10), ("2026-03-02", 60), ("2026-03-03", 62)]:
            assessment_repository.save_assessment(make_record(day, score))

        result = analyzer.compute_score_trend("patient-1", limit=2)
        assert result["data_points"] == 2
        assert result["min"] == 60

    def test_other_patients_ignored(self, analyzer, assessment_repository, make_record):
        assessment_repository.save_assessment(make_record("2026-03-01", 40, patient_id="other"))
        assert analyzer.compute_score_trend("patient-1")["status"] == "no_data"


class TestSummarizeStates:
    def test_no_data(self, analyzer):
        assert analyzer.summarize_states("patient-1")["status"] == "no_data"

    def test_counts_states(self, analyzer, assessment_repository, make_record):
        days = [
            ("2026-03-01", 40, "DATA_SPARSE"),
            ("2026-03-02", 60, "UNDERSTIMULATED"),
            ("2026-03-03", 62, "UNDERSTIMULATED"),
            ("2026-03-04", 90, "ADEQUATE"),
        ]
        for day, score, state in days:
            assessment_repository.save_assessment(make_record(day, score, activity_state=state))

        summary = analyzer.summarize_states("patient-1")
        assert summary["data_points"] == 4
        assert summary["state_counts"]["UNDERSTIMULATED"] == 2
        assert summary["state_counts"]["OVERREACHED"] == 0
        assert len(summary["state_counts"]) == 6
        assert summary["most_frequent_state"] == "UNDERSTIMULATED"
        assert summary["days_at_high_risk"] == 1
        assert summary["latest_state"] == "ADEQUATE"
        assert summary["latest_date"] == "2026-03-04"
