"""Recovery Index (Herstelindex) calculator.

Unified 0-100 score combining:
    Protein adherence        0-33
    Step goal adherence      0-33
    ADL capability (state)   0-34
"""

from __future__ import annotations

import math
import statistics
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any

from herstel.domains.recovery.domain_logic.activity_models import (
    ActivityState,
    RiskLevel,
    Trend,
    parse_activity_state,
)

PROTEIN_SCORE_MAX = 33
ACTIVITY_SCORE_MAX = 33
ADL_SCORE_MAX = 34

# Clinically weighted, not proportional to any state ordering.
ADL_SCORE_BY_STATE: MappingProxyType[ActivityState, int] = MappingProxyType({
    ActivityState.ADEQUATE: 34,
    ActivityState.UNDERSTIMULATED: 20,
    ActivityState.STALLING: 14,
    ActivityState.FATIGUE_LIMITED: 17,
    ActivityState.OVERREACHED: 10,
    ActivityState.DATA_SPARSE: 0,
})

LOW_RISK_MIN_SCORE = 70
MEDIUM_RISK_MIN_SCORE = 50

TREND_MIN_HISTORY = 2
TREND_WINDOW = 3
TREND_DELTA = 10


@dataclass(frozen=True)
class RecoveryIndexResult:
    """Recovery Index with its additive breakdown."""

    score: int
    protein_score: int
    activity_score: int
    adl_score: int
    risk_level: RiskLevel

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def _adherence_score(actual: float, target: float, max_points: int) -> int:
    if target is None or target <= 0 or actual is None:
        ratio = 0.0
    else:
        ratio = max(0.0, min(actual / target, 1.0))
    return min(round_half_up(ratio * max_points), max_points)


def risk_level_for_score(score: int) -> RiskLevel:
    """Map a 0-100 score to a risk tier (lower bounds inclusive)."""
    if score >= LOW_RISK_MIN_SCORE:
        return "low"
    if score >= MEDIUM_RISK_MIN_SCORE:
        return "medium"
    return "high"


def adl_score_for_state(state: ActivityState | str) -> int:
    return ADL_SCORE_BY_STATE[parse_activity_state(state)]


def calculate_recovery_index(
    daily_protein: float,
    protein_target: float,
    daily_steps: float,
    step_target: float,
    activity_state: ActivityState | str,
) -> RecoveryIndexResult:
    """Compute the Recovery Index for one day.

    A target of zero or less yields a ratio of 0 for that component rather
    than a division error.

    Raises:
        ValueError: If ``activity_state`` is not a known state name.
    """
    protein_score = _adherence_score(daily_protein, protein_target, PROTEIN_SCORE_MAX)
    activity_score = _adherence_score(daily_steps, step_target, ACTIVITY_SCORE_MAX)
    adl_score = adl_score_for_state(activity_state)

    score = protein_score + activity_score + adl_score

    return RecoveryIndexResult(
        score=score,
        protein_score=protein_score,
        activity_score=activity_score,
        adl_score=adl_score,
        risk_level=risk_level_for_score(score),
    )


def calculate_trend(current_score: float, previous_scores: Sequence[float]) -> Trend:
    """Compare today's score with the mean of the last three earlier scores.

    Args:
        current_score: Today's Recovery Index.
        previous_scores: Earlier scores ordered oldest to newest.

    Returns:
        'improving', 'declining', 'stable', or 'unknown' when fewer than two
        earlier scores exist.
    """
    if len(previous_scores) < TREND_MIN_HISTORY:
        return "unknown"

    recent = list(previous_scores)[-TREND_WINDOW:]
    diff = current_score - statistics.mean(recent)

    if diff >= TREND_DELTA:
        return "improving"
    if diff <= -TREND_DELTA:
        return "declining"
    return "stable"
