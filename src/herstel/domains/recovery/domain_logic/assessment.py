"""Daily recovery assessment: aggregate -> state -> index -> trend -> alerts.

This is the main entry point for scoring a patient-day. All computation is
deterministic; score history must be passed in explicitly.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from herstel.domains.recovery.domain_logic.activity_models import ActivityEvaluation, Trend
from herstel.domains.recovery.domain_logic.activity_state_engine import evaluate_activity
from herstel.domains.recovery.domain_logic.alerts import generate_clinician_alerts, is_notable
from herstel.domains.recovery.domain_logic.daily_aggregate import DailyAggregate
from herstel.domains.recovery.domain_logic.guidance import risk_guidance, state_guidance
from herstel.domains.recovery.domain_logic.recovery_index import (
    RecoveryIndexResult,
    calculate_recovery_index,
    calculate_trend,
)


@dataclass
class RecoveryAssessment:
    """Everything the presentation and alerting layers need for one day."""

    evaluation: ActivityEvaluation
    index: RecoveryIndexResult
    trend: Trend
    notable: bool
    alerts: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        guidance = state_guidance(self.evaluation.state)
        risk = risk_guidance(self.index.risk_level)
        return {
            **self.evaluation.to_dict(),
            "recovery_index": self.index.to_dict(),
            "trend": self.trend,
            "guidance": {
                **guidance.to_dict(),
                "risk_label": risk.label,
                "risk_color": risk.color,
            },
            "notable": self.notable,
            "alerts": self.alerts,
        }


def assess_recovery_day(
    aggregate: DailyAggregate,
    *,
    protein_target: float,
    step_target: float,
    post_op_week: int | None = None,
    previous_scores: Sequence[float] = (),
) -> RecoveryAssessment:
    """Score one patient-day.

    Args:
        aggregate: The day's nutrition, activity and check-in data.
        protein_target: Daily protein target in grams.
        step_target: Daily step target; also the classifier's steps target.
        post_op_week: Week since surgery (None -> week 1 goals).
        previous_scores: Earlier Recovery Index scores, oldest to newest.
    """
    evaluation = evaluate_activity(aggregate.to_activity_inputs(step_target, post_op_week))
    index = calculate_recovery_index(
        daily_protein=aggregate.protein,
        protein_target=protein_target,
        daily_steps=aggregate.steps or 0,
        step_target=step_target,
        activity_state=evaluation.state,
    )
    trend = calculate_trend(index.score, previous_scores)

    return RecoveryAssessment(
        evaluation=evaluation,
        index=index,
        trend=trend,
        notable=is_notable(evaluation.state, index),
        alerts=generate_clinician_alerts(
            evaluation.state,
            index,
            trend=trend,
            safety_flags=aggregate.safety_flags,
        ),
    )
