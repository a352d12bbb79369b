"""Clinician alerts derived from a day's activity state and Recovery Index."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

from herstel.domains.recovery.domain_logic.activity_models import (
    ActivityState,
    Trend,
    parse_activity_state,
)
from herstel.domains.recovery.domain_logic.recovery_index import (
    MEDIUM_RISK_MIN_SCORE,
    TREND_DELTA,
    RecoveryIndexResult,
)

NOTABLE_STATES = frozenset({ActivityState.DATA_SPARSE, ActivityState.OVERREACHED})

_SEVERITY_ORDER = {"alarm": 0, "warning": 1}


@dataclass(frozen=True)
class ClinicianAlert:
    """A single clinician-facing alert."""

    severity: str  # 'warning' | 'alarm'
    category: str  # 'recovery_index' | 'safety' | 'activity_state' | 'data' | 'trend'
    metric: str
    value: float | str
    threshold: float | str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def is_notable(state: ActivityState | str, result: RecoveryIndexResult) -> bool:
    """True when a day deserves clinician attention."""
    return result.risk_level == "high" or parse_activity_state(state) in NOTABLE_STATES


def generate_clinician_alerts(
    state: ActivityState | str,
    result: RecoveryIndexResult,
    *,
    trend: Trend | None = None,
    safety_flags: Iterable[str] = (),
) -> list[dict[str, Any]]:
    """Build graduated alerts for one assessed day.

    Returns:
        Alert dicts, alarms before warnings.
    """
    state = parse_activity_state(state)
    alerts: list[ClinicianAlert] = []

    if result.risk_level == "high":
        alerts.append(
            ClinicianAlert(
                severity="alarm",
                category="recovery_index",
                metric="recovery_index",
                value=result.score,
                threshold=MEDIUM_RISK_MIN_SCORE,
                message="Herstelindex below 50 - consider escalation",
            )
        )

    for flag in safety_flags:
        alerts.append(
            ClinicianAlert(
                severity="alarm",
                category="safety",
                metric="safety_flag",
                value=flag,
                threshold="none",
                message=f"Patient reported safety concern: {flag}",
            )
        )

    if state is ActivityState.OVERREACHED:
        alerts.append(
            ClinicianAlert(
                severity="warning",
                category="activity_state",
                metric="activity_state",
                value=state.value,
                threshold=ActivityState.OVERREACHED.value,
                message="Activity outpacing recovery capacity - recommend an active recovery day",
            )
        )
    elif state is ActivityState.DATA_SPARSE:
        alerts.append(
            ClinicianAlert(
                severity="warning",
                category="data",
                metric="activity_state",
                value=state.value,
                threshold=ActivityState.DATA_SPARSE.value,
                message="No activity reported today - check in with the patient",
            )
        )

    if trend == "declining":
        alerts.append(
            ClinicianAlert(
                severity="warning",
                category="trend",
                metric="recovery_index_trend",
                value=trend,
                threshold=-TREND_DELTA,
                message="Herstelindex declining against recent days",
            )
        )

    alerts.sort(key=lambda a: _SEVERITY_ORDER[a.severity])
    return [a.to_dict() for a in alerts]
