"""Tests for clinician alert generation."""

from __future__ import annotations

from herstel.domains.recovery.domain_logic.activity_models import ActivityState
from herstel.domains.recovery.domain_logic.alerts import generate_clinician_alerts, is_notable
from herstel.domains.recovery.domain_logic.recovery_index import RecoveryIndexResult


def _result(score: int, risk_level: str) -> RecoveryIndexResult:
    return RecoveryIndexResult(
        score=score, protein_score=0, activity_score=0, adl_score=0, risk_level=risk_level
    )


LOW = _result(85, "low")
MEDIUM = _result(60, "medium")
HIGH = _result(30, "high")


class TestIsNotable:
    def test_good_day_is_not_notable(self):
        assert not is_notable(ActivityState.ADEQUATE, LOW)

    def test_high_risk_is_notable(self):
        assert is_notable(ActivityState.ADEQUATE, HIGH)

    def test_notable_states(self):
        assert is_notable("DATA_SPARSE", LOW)
        assert is_notable(ActivityState.OVERREACHED, MEDIUM)
        assert not is_notable(ActivityState.STALLING, MEDIUM)


class TestGenerateClinicianAlerts:
    def test_no_alerts_on_good_day(self):
        assert generate_clinician_alerts(ActivityState.ADEQUATE, LOW, trend="stable") == []

    def test_high_risk_raises_alarm(self):
        alerts = generate_clinician_alerts(ActivityState.UNDERSTIMULATED, HIGH)
        assert len(alerts) == 1
        alert = alerts[0]
        assert alert["severity"] == "alarm"
        assert alert["category"] == "recovery_index"
        assert alert["value"] == 30
        assert alert["threshold"] == 50

    def test_each_safety_flag_raises_alarm(self):
        alerts = generate_clinician_alerts(
            ActivityState.ADEQUATE, LOW, safety_flags=["fever", "chest_pain"]
        )
        assert [a["value"] for a in alerts] == ["fever", "chest_pain"]
        assert all(a["severity"] == "alarm" and a["category"] == "safety" for a in alerts)

    def test_overreached_warning(self):
        alerts = generate_clinician_alerts(ActivityState.OVERREACHED, MEDIUM)
        assert len(alerts) == 1
        assert alerts[0]["severity"] == "warning"
        assert alerts[0]["category"] == "activity_state"

    def test_data_sparse_warning(self):
        alerts = generate_clinician_alerts("DATA_SPARSE", MEDIUM)
        assert [a["category"] for a in alerts] == ["data"]

    def test_declining_trend_warning(self):
        alerts = generate_clinician_alerts(ActivityState.ADEQUATE, LOW, trend="declining")
        assert len(alerts) == 1
        assert alerts[0]["category"] == "trend"
        assert alerts[0]["threshold"] == -10

    def test_alarms_sorted_before_warnings(self):
        alerts = generate_clinician_alerts(
            ActivityState.DATA_SPARSE, HIGH, trend="declining", safety_flags=["fever"]
        )
        severities = [a["severity"] for a in alerts]
        assert severities == ["alarm", "alarm", "warning", "warning"]
        assert [a["category"] for a in alerts] == ["recovery_index", "safety", "data", "trend"]

    def test_alert_dict_keys(self):
        alert = generate_clinician_alerts(ActivityState.ADEQUATE, HIGH)[0]
        assert set(alert) == {"severity", "category", "metric", "value", "threshold", "message"}
