"""Tests for AssessmentRepository: CRUD with in-memory SQLite."""

from __future__ import annotations

import sys
from datetime import datetime, timezone

import pytest

from herstel.core.storage.repository import RepositoryError, normalize_iso_date

# date.fromisoformat accepts basic and week formats from Python 3.11
requires_full_isoformat = pytest.mark.skipif(
    sys.version_info < (3, 11), reason="basic ISO dates need Python 3.11+"
)


class TestNormalizeIsoDate:
    def test_extended_date_unchanged(self):
        assert normalize_iso_date("2026-03-01") == "2026-03-01"

    @requires_full_isoformat
    @pytest.mark.parametrize("value", ["20260301", "2026-W09-7"])
    def test_other_iso_spellings_normalized(self, value):
        assert normalize_iso_date(value) == "2026-03-01"

    @pytest.mark.parametrize("value", ["yesterday", "03/01/2026", "", None])
    def test_invalid_raises(self, value):
        with pytest.raises(RepositoryError, match="before_date"):
            normalize_iso_date(value, "before_date")


class TestSaveAndGet:
    def test_save_and_get(self, assessment_repository, make_record):
        aid = assessment_repository.save_assessment(make_record("2026-03-01", 85))
        record = assessment_repository.get_assessment(aid)
        assert record is not None
        assert record.patient_id == "patient-1"
        assert record.score == 85
        assert record.risk_level == "low"
        assert record.daily_data["fatigue_score"] == 4.0
        assert record.created_at

    def test_alerts_round_trip(self, assessment_repository, make_record):
        alerts = [{"severity": "alarm", "category": "safety", "value": "fever"}]
        aid = assessment_repository.save_assessment(make_record("2026-03-01", alerts=alerts))
        assert assessment_repository.get_assessment(aid).alerts == alerts

    def test_raw_data_is_encrypted_at_rest(self, assessment_repository, recovery_db, make_record):
        assessment_repository.save_assessment(make_record("2026-03-01"))
        row = recovery_db.connection.execute("SELECT daily_enc FROM daily_assessments").fetchone()
        assert "fatigue_score" not in row[0]

    def test_get_unknown_returns_none(self, assessment_repository):
        assert assessment_repository.get_assessment("missing") is None

    def test_same_day_is_replaced(self, assessment_repository, make_record):
        first = assessment_repository.save_assessment(make_record("2026-03-01", 40))
        second = assessment_repository.save_assessment(make_record("2026-03-01", 90))
        assert first == second
        assert assessment_repository.count_assessments() == 1
        assert assessment_repository.get_assessment(first).score == 90

    def test_empty_patient_id_rejected(self, assessment_repository, make_record):
        with pytest.raises(RepositoryError, match="patient_id"):
            assessment_repository.save_assessment(make_record("2026-03-01", patient_id=""))

    def test_invalid_date_rejected(self, assessment_repository, make_record):
        with pytest.raises(RepositoryError, match="ISO date"):
            assessment_repository.save_assessment(make_record("03/01/2026"))


class TestQueries:
    @pytest.fixture
    def populated(self, assessment_repository, make_record):
        for day, score in [("2026-03-01", 50), ("2026-03-02", 60), ("2026-03-03", 70)]:
            assessment_repository.save_assessment(make_record(day, score))
        assessment_repository.save_assessment(make_record("2026-03-02", 20, patient_id="other"))
        return assessment_repository

    def test_newest_first(self, populated):
        dates = [r.assessment_date for r in populated.get_assessments("patient-1")]
        assert dates == ["2026-03-03", "2026-03-02", "2026-03-01"]

    def test_date_filters(self, populated):
        records = populated.get_assessments("patient-1", since="2026-03-02", until="2026-03-02")
        assert [r.score for r in records] == [60]

    def test_invalid_filter_date_raises(self, populated):
        with pytest.raises(RepositoryError):
            populated.get_assessments("patient-1", since="yesterday")

    def test_all_patients(self, populated):
        assert len(populated.get_assessments()) == 4

    def test_latest(self, populated):
        assert populated.get_latest_assessment("patient-1").assessment_date == "2026-03-03"
        assert populated.get_latest_assessment("nobody") is None

    def test_count(self, populated):
        assert populated.count_assessments() == 4
        assert populated.count_assessments("patient-1") == 3

    def test_score_history_oldest_first(self, populated):
        assert populated.get_score_history("patient-1") == [50, 60, 70]

    def test_score_history_before_date_is_exclusive(self, populated):
        assert populated.get_score_history("patient-1", before_date="2026-03-03") == [50, 60]

    def test_score_history_limit_keeps_recent(self, populated):
        assert populated.get_score_history("patient-1", limit=2) == [60, 70]

    def test_state_history(self, populated):
        history = populated.get_state_history("patient-1", limit=2)
        assert history == [("2026-03-03", "ADEQUATE", "low"), ("2026-03-02", "ADEQUATE", "medium")]


class TestDeletion:
    def test_delete_assessment(self, assessment_repository, make_record):
        aid = assessment_repository.save_assessment(make_record("2026-03-01"))
        assert assessment_repository.delete_assessment(aid) is True
        assert assessment_repository.get_assessment(aid) is None
        assert assessment_repository.delete_assessment(aid) is False

    def test_purge_before(self, assessment_repository, make_record):
        for day in ["2026-01-01", "2026-02-01", "2026-03-01"]:
            assessment_repository.save_assessment(make_record(day))
        assert assessment_repository.purge_before("2026-02-01") == 1
        assert assessment_repository.count_assessments() == 2

    def test_purge_before_days(self, assessment_repository, make_record):
        today = datetime.now(timezone.utc).date().isoformat()
        assessment_repository.save_assessment(make_record("2020-01-01"))
        assessment_repository.save_assessment(make_record(today))
        assert assessment_repository.purge_before_days(30) == 1
        assert assessment_repository.get_latest_assessment("patient-1").assessment_date == today

    def test_delete_patient_data(self, assessment_repository, make_record):
        assessment_repository.save_assessment(make_record("2026-03-01"))
        assessment_repository.save_assessment(make_record("2026-03-02"))
        assessment_repository.save_assessment(make_record("2026-03-01", patient_id="other"))
        assert assessment_repository.delete_patient_data("patient-1") == 2
        assert assessment_repository.count_assessments() == 1


@requires_full_isoformat
class TestDateNormalization:
    def test_basic_format_is_same_day(self, assessment_repository, make_record):
        first = assessment_repository.save_assessment(make_record("20260301", 40))
        second = assessment_repository.save_assessment(make_record("2026-03-01", 90))
        assert first == second
        assert assessment_repository.count_assessments("patient-1") == 1
        assert assessment_repository.get_assessment(first).assessment_date == "2026-03-01"

    def test_history_order_with_mixed_spellings(self, assessment_repository, make_record):
        for day, score in [("20260301", 10), ("2026-03-02", 20), ("2026-03-03", 30)]:
            assessment_repository.save_assessment(make_record(day, score))

        assert assessment_repository.get_score_history(
            "patient-1", before_date="20260304"
        ) == [10, 20, 30]
        dates = [r.assessment_date for r in assessment_repository.get_assessments("patient-1")]
        assert dates == ["2026-03-03", "2026-03-02", "2026-03-01"]
